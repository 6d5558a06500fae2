"""
Permission resolver.

Decides one required permission against one set of granted permission
strings. Checks run in a fixed order and the first match wins:

    1. exact      the required string itself is granted
    2. wildcard   `module:*` is granted
    3. self       the required action ends in `_self` and `module:<base>_self`
                  is granted: allowed iff the principal owns the resource
    4. otherwise  missing_permission

A self-scoped requirement never short-circuits at step 1: holding the
`_self` grant only ever means "on your own resources", so it always goes
through ownership verification. The resolver never appends `_self` to a
plain requirement; routes choose which form they require.

Malformed granted strings cannot equal a well-formed required string, so
they simply never match.
"""

from typing import Callable, Collection

from capgate.policy.ownership import verify_ownership
from capgate.policy.token import PermissionToken
from capgate.schema import Decision, DecisionReason, ResourceContext

OwnershipVerifier = Callable[[int, ResourceContext], tuple[bool, str]]


class PermissionResolver:
    """
    Single-permission decision function.

    Usage:
        resolver = PermissionResolver()
        decision = resolver.resolve(
            {"foros:read_self"},
            PermissionToken.parse("foros:read_self"),
            principal_id=42,
            ctx=ResourceContext(path_id=42),
        )
        assert decision.allowed

    Attributes:
        verifier: Ownership check used for self-scoped grants
    """

    def __init__(self, verifier: OwnershipVerifier = verify_ownership) -> None:
        self.verifier = verifier

    def resolve(
        self,
        granted: Collection[str],
        required: PermissionToken,
        principal_id: int,
        ctx: ResourceContext,
    ) -> Decision:
        """
        Resolve one required permission.

        Args:
            granted: Permission strings held by the principal's role
            required: The parsed permission the route requires
            principal_id: Id of the acting principal
            ctx: Resource context for ownership checks

        Returns:
            Decision for this single permission
        """
        permission = str(required)

        if not required.is_self and permission in granted:
            return Decision.allow(
                DecisionReason.EXACT_MATCH,
                permission,
                grant=permission,
            )

        wildcard = required.wildcard()
        if wildcard in granted:
            return Decision.allow(
                DecisionReason.WILDCARD_MATCH,
                permission,
                grant=wildcard,
            )

        if required.is_self:
            self_grant = required.self_scoped()
            if self_grant in granted:
                owned, rule = self.verifier(principal_id, ctx)
                if owned:
                    return Decision.allow(
                        DecisionReason.SELF_OWNED,
                        permission,
                        grant=self_grant,
                        ownership_rule=rule,
                    )
                return Decision.deny(
                    DecisionReason.NOT_OWNER,
                    permission,
                    ownership_rule=rule,
                )

        return Decision.deny(DecisionReason.MISSING_PERMISSION, permission)

    def resolve_string(
        self,
        granted: Collection[str],
        permission: str,
        principal_id: int,
        ctx: ResourceContext,
    ) -> Decision:
        """Parse and resolve. Raises InvalidPermissionError for malformed input."""
        return self.resolve(granted, PermissionToken.parse(permission), principal_id, ctx)
