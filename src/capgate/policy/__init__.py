"""
Authorization engine for capgate.

This module decides, for an already-authenticated principal, whether a
requested action on a resource is permitted.

Key concepts:
    - PermissionToken: module:action, module:* or module:action_self
    - PermissionResolver: exact -> wildcard -> self-scoped (+ ownership)
    - AuthorizationGate: require_all / require_any guards for routes
    - Decision: the terminal ALLOW/DENY outcome with a typed reason

The engine is fail-closed and pure: the same inputs always produce the same
decision, and no check mutates shared state.
"""

from capgate.policy.gate import AuthorizationGate, Guard, Requirement
from capgate.policy.ownership import verify_ownership
from capgate.policy.resolver import PermissionResolver
from capgate.policy.token import PermissionToken, TokenKind

__all__ = [
    "AuthorizationGate",
    "Guard",
    "PermissionResolver",
    "PermissionToken",
    "Requirement",
    "TokenKind",
    "verify_ownership",
]
