"""
Permission string tokenizer.

A permission is `module:action` in one of three shapes:

    usuarios:read          EXACT        grants exactly that action
    usuarios:*             WILDCARD     grants every action of the module
    usuarios:read_self     SELF_SCOPED  grants `read` on the principal's own resources

Parsing happens here and only here; the resolver works on PermissionToken
values instead of slicing strings.
"""

from dataclasses import dataclass
from enum import Enum

from capgate.errors import InvalidPermissionError

SEPARATOR = ":"
WILDCARD = "*"
SELF_SUFFIX = "_self"


class TokenKind(str, Enum):
    """Shape of a permission string."""

    EXACT = "exact"
    WILDCARD = "wildcard"
    SELF_SCOPED = "self_scoped"


@dataclass(frozen=True)
class PermissionToken:
    """
    A parsed permission string.

    Attributes:
        module: The module component (e.g. "inscripciones")
        action: The action component, suffix included (e.g. "delete_self")
        kind: EXACT, WILDCARD or SELF_SCOPED
    """

    module: str
    action: str
    kind: TokenKind

    @classmethod
    def parse(cls, permission: str) -> "PermissionToken":
        """
        Parse a permission string.

        Raises:
            InvalidPermissionError: If the string is not module:action, has an
                empty component, or uses `*` anywhere but as the whole action
        """
        if not isinstance(permission, str):
            raise InvalidPermissionError(
                permission=repr(permission),
                detail="permission must be a string",
            )
        parts = permission.split(SEPARATOR)
        if len(parts) != 2:
            raise InvalidPermissionError(
                permission=permission,
                detail="expected exactly one ':' separator",
            )

        module, action = parts
        if not module or not action:
            raise InvalidPermissionError(
                permission=permission,
                detail="module and action must be non-empty",
            )
        if WILDCARD in module:
            raise InvalidPermissionError(
                permission=permission,
                detail="wildcards are only allowed as the action",
            )

        if action == WILDCARD:
            return cls(module, action, TokenKind.WILDCARD)
        if WILDCARD in action:
            raise InvalidPermissionError(
                permission=permission,
                detail="'*' must be the whole action",
            )
        if action.endswith(SELF_SUFFIX) and action != SELF_SUFFIX:
            return cls(module, action, TokenKind.SELF_SCOPED)
        return cls(module, action, TokenKind.EXACT)

    @classmethod
    def try_parse(cls, permission: str) -> "PermissionToken | None":
        """Parse, returning None for malformed strings."""
        try:
            return cls.parse(permission)
        except InvalidPermissionError:
            return None

    @property
    def is_self(self) -> bool:
        return self.kind is TokenKind.SELF_SCOPED

    @property
    def base_action(self) -> str:
        """The action without its `_self` suffix."""
        if self.is_self:
            return self.action.removesuffix(SELF_SUFFIX)
        return self.action

    def wildcard(self) -> str:
        """`module:*` for this token's module."""
        return f"{self.module}{SEPARATOR}{WILDCARD}"

    def self_scoped(self) -> str:
        """`module:<base>_self` for this token."""
        return f"{self.module}{SEPARATOR}{self.base_action}{SELF_SUFFIX}"

    def __str__(self) -> str:
        return f"{self.module}{SEPARATOR}{self.action}"
