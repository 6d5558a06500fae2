"""
Ownership verification for self-scoped permissions.

Rules are evaluated in a fixed priority order and the first applicable one
wins:

    1. path_id             the route targets /<module>/<id>: owned iff id matches
    2. profile_route       profile routes always target the caller
    3. body_user_id        the body names a user: owned iff it is the caller
    4. no_ownership_signal nothing to compare: owned

Rule 4 is permissive. It is kept for compatibility with existing routes that
carry no ownership signal; see DESIGN.md before changing it.
"""

from capgate.schema import ResourceContext

RULE_PATH_ID = "path_id"
RULE_PROFILE_ROUTE = "profile_route"
RULE_BODY_USER_ID = "body_user_id"
RULE_NO_SIGNAL = "no_ownership_signal"


def verify_ownership(principal_id: int, ctx: ResourceContext) -> tuple[bool, str]:
    """
    Decide whether principal_id owns the resource targeted by ctx.

    Returns: (owned, rule)
    """
    if ctx.path_id is not None:
        return ctx.path_id == principal_id, RULE_PATH_ID

    if ctx.is_profile_route:
        return True, RULE_PROFILE_ROUTE

    if ctx.body_user_id is not None:
        return ctx.body_user_id == principal_id, RULE_BODY_USER_ID

    return True, RULE_NO_SIGNAL
