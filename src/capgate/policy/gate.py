"""
Authorization gate.

The gate is the route-facing entry point. Route guards are built once, when
routes are declared, and evaluated per request:

    gate = AuthorizationGate(PermissionCatalog.default())
    delete_guard = gate.require_any(["inscripciones:delete", "inscripciones:delete_self"])

    decision = delete_guard.check(principal, ResourceContext(path_id=42))
    if not decision.allowed:
        return decision.status_code, decision.error_body()

Every check walks the same states exactly once:

    Start -> PrincipalCheck -> RoleCheck -> PermissionCheck -> Allowed | Denied

Nothing escapes the gate as an exception: unknown roles, missing grants,
failed ownership checks and unexpected errors all come back as a Decision.
Only internal errors are logged above DEBUG.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

from capgate.errors import UnknownRoleError
from capgate.policy.resolver import PermissionResolver
from capgate.policy.token import PermissionToken
from capgate.schema import Combinator, Decision, DecisionReason, Principal, ResourceContext

if TYPE_CHECKING:
    from capgate.catalog import PermissionSource

logger = logging.getLogger(__name__)

DecisionListener = Callable[[Principal | None, Decision], None]


@dataclass(frozen=True)
class Requirement:
    """
    What a guard asks for: permissions plus how to combine them.

    Attributes:
        permissions: Required permission strings, in declaration order
        combinator: ALL or ANY
        tokens: Parsed form of permissions
    """

    permissions: tuple[str, ...]
    combinator: Combinator
    tokens: tuple[PermissionToken, ...]

    @classmethod
    def build(cls, permissions: Iterable[str] | str, combinator: Combinator) -> "Requirement":
        """
        Validate and parse a permission list.

        Raises:
            ValueError: If no permission is given
            InvalidPermissionError: If a permission is malformed
        """
        if isinstance(permissions, str):
            permissions = [permissions]
        permissions = tuple(permissions)
        if not permissions:
            raise ValueError("A guard needs at least one permission")
        tokens = tuple(PermissionToken.parse(p) for p in permissions)
        return cls(permissions, combinator, tokens)


class Guard:
    """
    A requirement bound to a gate; call it per request.

    Usage:
        guard = gate.require_all(["usuarios:delete"])
        decision = guard(principal, ctx)
    """

    def __init__(self, gate: "AuthorizationGate", requirement: Requirement) -> None:
        self.gate = gate
        self.requirement = requirement

    @property
    def permissions(self) -> tuple[str, ...]:
        return self.requirement.permissions

    @property
    def combinator(self) -> Combinator:
        return self.requirement.combinator

    def check(
        self,
        principal: Principal | None,
        ctx: ResourceContext | None = None,
    ) -> Decision:
        return self.gate.evaluate(self.requirement, principal, ctx)

    __call__ = check

    def __repr__(self) -> str:
        return f"Guard({self.combinator.value}, {list(self.permissions)!r})"


class AuthorizationGate:
    """
    Route-facing authorization entry point.

    Attributes:
        source: Where role grants come from (a PermissionCatalog, or a live
            store in deployments that look roles up per request)
        resolver: Single-permission resolver
        listeners: Callables notified with (principal, decision) after
            every check
    """

    def __init__(
        self,
        source: "PermissionSource",
        resolver: PermissionResolver | None = None,
        listeners: Iterable[DecisionListener] = (),
    ) -> None:
        self.source = source
        self.resolver = resolver or PermissionResolver()
        self.listeners: list[DecisionListener] = list(listeners)

    # =========================================================================
    # Combinators
    # =========================================================================

    def require_all(self, permissions: Iterable[str] | str) -> Guard:
        """Guard that allows iff every permission is allowed."""
        return Guard(self, Requirement.build(permissions, Combinator.ALL))

    def require_any(self, permissions: Iterable[str] | str) -> Guard:
        """Guard that allows iff at least one permission is allowed."""
        return Guard(self, Requirement.build(permissions, Combinator.ANY))

    def require(self, permission: str) -> Guard:
        """Single-permission guard (require_all with one element)."""
        return self.require_all([permission])

    def add_listener(self, listener: DecisionListener) -> None:
        self.listeners.append(listener)

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate(
        self,
        requirement: Requirement,
        principal: Principal | None,
        ctx: ResourceContext | None = None,
    ) -> Decision:
        """
        Run one authorization check.

        Args:
            requirement: What the route requires
            principal: The authenticated principal, or None
            ctx: Resource context (empty when omitted)

        Returns:
            The final Decision
        """
        if ctx is None:
            ctx = ResourceContext()

        decision = self._decide(requirement, principal, ctx)

        logger.debug(
            "authz %s %s user=%s role=%s -> %s (%s)",
            requirement.combinator.value,
            ",".join(requirement.permissions),
            principal.id if principal else None,
            principal.role if principal else None,
            "allow" if decision.allowed else "deny",
            decision.reason.value,
        )
        self._notify(principal, decision)
        return decision

    def _decide(
        self,
        requirement: Requirement,
        principal: Principal | None,
        ctx: ResourceContext,
    ) -> Decision:
        required = requirement.permissions
        combinator = requirement.combinator

        if principal is None:
            return Decision.deny(
                DecisionReason.UNAUTHENTICATED,
                required=required,
                combinator=combinator,
            )

        try:
            try:
                granted = frozenset(self.source.lookup(principal.role))
            except UnknownRoleError:
                return Decision.deny(
                    DecisionReason.INVALID_ROLE,
                    required=required,
                    combinator=combinator,
                )

            if combinator is Combinator.ALL:
                return self._resolve_all(requirement, granted, principal, ctx)
            return self._resolve_any(requirement, granted, principal, ctx)
        except Exception:
            # Fail closed: whatever broke, the request is not authorized.
            logger.exception(
                "Internal error while authorizing user %s (role %r) for %s",
                principal.id,
                principal.role,
                ", ".join(required),
            )
            return Decision.deny(
                DecisionReason.INTERNAL_ERROR,
                required=required,
                combinator=combinator,
            )

    def _resolve_all(
        self,
        requirement: Requirement,
        granted: frozenset[str],
        principal: Principal,
        ctx: ResourceContext,
    ) -> Decision:
        decision = None
        for token in requirement.tokens:
            decision = self.resolver.resolve(granted, token, principal.id, ctx)
            if not decision.allowed:
                break
        return decision.within(requirement.permissions, Combinator.ALL)

    def _resolve_any(
        self,
        requirement: Requirement,
        granted: frozenset[str],
        principal: Principal,
        ctx: ResourceContext,
    ) -> Decision:
        denials: list[Decision] = []
        for token in requirement.tokens:
            decision = self.resolver.resolve(granted, token, principal.id, ctx)
            if decision.allowed:
                return decision.within(requirement.permissions, Combinator.ANY)
            denials.append(decision)

        # A failed ownership check says more than a missing grant.
        chosen = next(
            (d for d in denials if d.reason is DecisionReason.NOT_OWNER),
            denials[0],
        )
        return chosen.within(requirement.permissions, Combinator.ANY)

    def _notify(self, principal: Principal | None, decision: Decision) -> None:
        for listener in self.listeners:
            try:
                listener(principal, decision)
            except Exception:
                logger.exception("Decision listener %r failed", listener)
