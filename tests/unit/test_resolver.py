"""
Unit tests for the Permission Resolver.

Tests cover:
- Exact, wildcard and self-scoped matching, in order
- Ownership delegation for self-scoped grants
- Malformed grants never matching
"""

import pytest

from capgate.errors import InvalidPermissionError
from capgate.policy.resolver import PermissionResolver
from capgate.policy.token import PermissionToken
from capgate.schema import DecisionReason, ResourceContext


class SpyVerifier:
    """Ownership verifier that records calls and returns a fixed answer."""

    def __init__(self, owned: bool = True) -> None:
        self.owned = owned
        self.calls: list[tuple[int, ResourceContext]] = []

    def __call__(self, principal_id: int, ctx: ResourceContext) -> tuple[bool, str]:
        self.calls.append((principal_id, ctx))
        return self.owned, "spy"


def resolve(granted, permission, principal_id=42, ctx=None, resolver=None):
    """Resolve one permission against a set of grants."""
    resolver = resolver or PermissionResolver()
    return resolver.resolve(
        frozenset(granted),
        PermissionToken.parse(permission),
        principal_id,
        ctx or ResourceContext(),
    )


class TestExactMatch:
    """Tests for exact grants."""

    def test_exact_grant_allows(self) -> None:
        """The exact permission string allows."""
        decision = resolve({"usuarios:read"}, "usuarios:read")
        assert decision.allowed is True
        assert decision.reason is DecisionReason.EXACT_MATCH
        assert decision.grant == "usuarios:read"

    def test_exact_does_not_consult_ownership(self) -> None:
        """Exact grants never call the ownership verifier."""
        spy = SpyVerifier(owned=False)
        decision = resolve(
            {"usuarios:read"},
            "usuarios:read",
            ctx=ResourceContext(path_id=1),
            resolver=PermissionResolver(spy),
        )
        assert decision.allowed is True
        assert spy.calls == []

    def test_other_action_not_granted(self) -> None:
        """A grant for another action does not allow."""
        decision = resolve({"usuarios:read"}, "usuarios:delete")
        assert decision.allowed is False
        assert decision.reason is DecisionReason.MISSING_PERMISSION

    def test_other_module_not_granted(self) -> None:
        """A grant for another module does not allow."""
        decision = resolve({"usuarios:read"}, "roles:read")
        assert decision.reason is DecisionReason.MISSING_PERMISSION


class TestWildcardMatch:
    """Tests for module:* grants."""

    def test_wildcard_grants_any_action(self) -> None:
        """module:* allows every action of the module."""
        decision = resolve({"resultados:*"}, "resultados:delete")
        assert decision.allowed is True
        assert decision.reason is DecisionReason.WILDCARD_MATCH
        assert decision.grant == "resultados:*"

    def test_wildcard_grants_self_scoped_without_ownership(self) -> None:
        """module:* covers module:x_self on anyone's resources."""
        spy = SpyVerifier(owned=False)
        decision = resolve(
            {"inscripciones:*"},
            "inscripciones:delete_self",
            principal_id=1,
            ctx=ResourceContext(path_id=99),
            resolver=PermissionResolver(spy),
        )
        assert decision.reason is DecisionReason.WILDCARD_MATCH
        assert spy.calls == []

    def test_wildcard_is_per_module(self) -> None:
        """A wildcard on one module does not reach another."""
        decision = resolve({"foros:*"}, "talleres:read")
        assert decision.reason is DecisionReason.MISSING_PERMISSION

    def test_wildcard_requirement_needs_wildcard_grant(self) -> None:
        """Requiring module:* is not satisfied by individual actions."""
        decision = resolve({"foros:read", "foros:create"}, "foros:*")
        assert decision.reason is DecisionReason.MISSING_PERMISSION


class TestSelfScoped:
    """Tests for module:action_self grants."""

    def test_owner_allowed(self) -> None:
        """The owner of the resource is allowed."""
        decision = resolve(
            {"foros:read_self"},
            "foros:read_self",
            principal_id=42,
            ctx=ResourceContext(path_id=42),
        )
        assert decision.allowed is True
        assert decision.reason is DecisionReason.SELF_OWNED
        assert decision.grant == "foros:read_self"
        assert decision.ownership_rule == "path_id"

    def test_non_owner_denied(self) -> None:
        """Holding the exact _self string is not enough: ownership decides."""
        decision = resolve(
            {"foros:read_self"},
            "foros:read_self",
            principal_id=42,
            ctx=ResourceContext(path_id=43),
        )
        assert decision.allowed is False
        assert decision.reason is DecisionReason.NOT_OWNER
        assert decision.ownership_rule == "path_id"

    def test_verifier_receives_principal_and_context(self) -> None:
        """The verifier is called with the principal id and context."""
        spy = SpyVerifier()
        ctx = ResourceContext(body_user_id=5)
        resolve({"foros:read_self"}, "foros:read_self", 5, ctx, PermissionResolver(spy))
        assert spy.calls == [(5, ctx)]

    def test_plain_request_never_matches_self_grant(self) -> None:
        """The resolver never appends _self to a plain requirement."""
        decision = resolve({"foros:read_self"}, "foros:read")
        assert decision.reason is DecisionReason.MISSING_PERMISSION

    def test_unscoped_grant_does_not_satisfy_self_requirement(self) -> None:
        """A plain grant does not satisfy a _self requirement."""
        decision = resolve({"foros:read"}, "foros:read_self")
        assert decision.reason is DecisionReason.MISSING_PERMISSION

    def test_other_self_action_not_granted(self) -> None:
        """A _self grant for another action does not allow."""
        decision = resolve({"foros:read_self"}, "foros:delete_self")
        assert decision.reason is DecisionReason.MISSING_PERMISSION


class TestMalformedGrants:
    """Tests for malformed strings on either side."""

    def test_malformed_grants_never_match(self) -> None:
        """Malformed granted strings never allow."""
        granted = {"foros", "foros:read:x", "foros-read", ":read"}
        decision = resolve(granted, "foros:read")
        assert decision.reason is DecisionReason.MISSING_PERMISSION

    def test_malformed_requirement_raises(self) -> None:
        """resolve_string() rejects a malformed requirement."""
        with pytest.raises(InvalidPermissionError):
            PermissionResolver().resolve_string(
                {"foros:read"}, "foros", 1, ResourceContext()
            )

    def test_resolve_string(self) -> None:
        """resolve_string() parses and resolves."""
        decision = PermissionResolver().resolve_string(
            {"foros:read"}, "foros:read", 1, ResourceContext()
        )
        assert decision.allowed is True


class TestDeterminism:
    """Resolution is a pure function of its inputs."""

    def test_same_inputs_same_decision(self) -> None:
        """Identical inputs give identical decisions."""
        ctx = ResourceContext(path_id=7)
        first = resolve({"foros:read_self"}, "foros:read_self", 42, ctx)
        second = resolve({"foros:read_self"}, "foros:read_self", 42, ctx)
        assert first == second
