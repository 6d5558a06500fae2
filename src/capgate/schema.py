"""
Schema definitions for capgate.

This module defines the Pydantic models used throughout capgate:
- Principal: Who is asking (already authenticated upstream)
- ResourceContext: What the request targets, as far as ownership goes
- Decision/DecisionReason: The terminal outcome of an authorization check
- CatalogConfig: The YAML shape of a role -> permissions catalog

Design Decisions:
    - Request-scoped models are immutable (frozen=True)
    - Decisions carry their own HTTP mapping so every caller renders
      denials the same way
    - Unknown keys are rejected (extra="forbid")
"""

from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class Combinator(str, Enum):
    """How a guard aggregates several permission checks."""

    ALL = "all"
    ANY = "any"


class DecisionReason(str, Enum):
    """
    Why a decision came out the way it did.

    The first three are allow reasons, the rest are deny reasons.
    """

    EXACT_MATCH = "exact_match"
    WILDCARD_MATCH = "wildcard_match"
    SELF_OWNED = "self_owned"

    UNAUTHENTICATED = "unauthenticated"
    INVALID_ROLE = "invalid_role"
    MISSING_PERMISSION = "missing_permission"
    NOT_OWNER = "not_owner"
    INTERNAL_ERROR = "internal_error"

    @property
    def is_allow(self) -> bool:
        return self in _ALLOW_REASONS


_ALLOW_REASONS = frozenset({
    DecisionReason.EXACT_MATCH,
    DecisionReason.WILDCARD_MATCH,
    DecisionReason.SELF_OWNED,
})


# =============================================================================
# HTTP mapping
# =============================================================================

STATUS_BY_REASON: dict[DecisionReason, int] = {
    DecisionReason.UNAUTHENTICATED: 401,
    DecisionReason.INVALID_ROLE: 403,
    DecisionReason.MISSING_PERMISSION: 403,
    DecisionReason.NOT_OWNER: 403,
    DecisionReason.INTERNAL_ERROR: 500,
}

ERROR_LABELS: dict[int, str] = {
    401: "No autorizado",
    403: "Acceso denegado",
    500: "Error interno",
}

MESSAGE_UNAUTHENTICATED = "Debe estar autenticado para acceder a este recurso"
MESSAGE_INVALID_ROLE = "Rol de usuario no válido o no definido"
MESSAGE_INTERNAL_ERROR = "Error interno del servidor durante la verificación de permisos"
MESSAGE_DENIED = "No tiene permisos para realizar esta acción."


def describe(
    reason: DecisionReason,
    combinator: Combinator = Combinator.ALL,
    permission: str | None = None,
    required: tuple[str, ...] = (),
    grant: str | None = None,
) -> str:
    """Build the human-readable message for a decision."""
    if reason is DecisionReason.UNAUTHENTICATED:
        return MESSAGE_UNAUTHENTICATED
    if reason is DecisionReason.INVALID_ROLE:
        return MESSAGE_INVALID_ROLE
    if reason is DecisionReason.INTERNAL_ERROR:
        return MESSAGE_INTERNAL_ERROR
    if reason.is_allow:
        return f"Acceso permitido: {permission} ({reason.value}, {grant})"
    if combinator is Combinator.ANY and len(required) > 1:
        return f"{MESSAGE_DENIED} Se requiere uno de: {', '.join(required)}"
    return f"{MESSAGE_DENIED} Se requiere: {permission or ', '.join(required)}"


# =============================================================================
# Request Models
# =============================================================================


class Principal(BaseModel):
    """
    The authenticated actor making a request.

    Supplied by the authentication layer after token verification.
    The role is kept as-is, even when empty: an unusable role is an
    authorization outcome (invalid_role), not a validation crash.

    Attributes:
        id: Numeric user id (positive)
        role: Role name as found in the token / user record
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int = Field(..., description="Numeric user id", gt=0)
    role: str = Field(default="", description="Role name")

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Principal":
        """Build a principal from a claims/user mapping ({id, rol} or {id, role})."""
        role = claims.get("role", claims.get("rol"))
        return cls(id=claims["id"], role="" if role is None else str(role))


def coerce_identifier(value: Any) -> int | str | None:
    """
    Normalize an identifier taken from a path segment or a body field.

    Integers and plain ASCII digit strings (optionally signed) become ints.
    Anything else that is present, including padded, underscored or
    non-ASCII digits, is kept as a string, which never equals a principal id.
    Empty values count as absent.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return value
    text = str(value)
    digits = text[1:] if text[:1] in ("-", "+") else text
    if digits.isascii() and digits.isdigit():
        return int(text)
    return text


class ResourceContext(BaseModel):
    """
    The part of an inbound request that ownership verification may inspect.

    Populated once by the calling layer; the engine never looks at framework
    request objects.

    Attributes:
        path_id: The `id` route parameter, if the route has one
        body_user_id: The `id_usuario` body field, if present
        is_profile_route: Whether the route is a profile (/perfil) route
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path_id: int | str | None = Field(
        default=None,
        description="Route parameter `id`",
    )
    body_user_id: int | str | None = Field(
        default=None,
        description="Body field `id_usuario`",
    )
    is_profile_route: bool = Field(
        default=False,
        description="Whether the matched route is a profile route",
    )

    @classmethod
    def from_request_parts(
        cls,
        path_id: Any = None,
        body: Mapping[str, Any] | None = None,
        route_path: str | None = None,
        profile_markers: tuple[str, ...] = ("/perfil",),
    ) -> "ResourceContext":
        """Build a context from raw route/body data."""
        body_user_id = None
        if isinstance(body, Mapping):
            raw = body.get("id_usuario")
            # body ids are compared strictly: only real ints can match
            if isinstance(raw, int) and not isinstance(raw, bool):
                body_user_id = raw
            elif raw is not None and raw != "":
                body_user_id = str(raw)
        is_profile = bool(route_path) and any(m in route_path for m in profile_markers)
        return cls(
            path_id=coerce_identifier(path_id),
            body_user_id=body_user_id,
            is_profile_route=is_profile,
        )


# =============================================================================
# Decision
# =============================================================================


class Decision(BaseModel):
    """
    Result of an authorization check.

    Every check ends in exactly one Decision; it is never partially applied.

    Attributes:
        allowed: Whether the action is permitted
        reason: Typed reason code
        permission: The required permission that decided the outcome
        required: Every permission the guard asked for
        combinator: ALL or ANY
        grant: The granted permission string that matched (allow only)
        ownership_rule: Which ownership rule decided a self-scoped check
        message: Human-readable explanation (also the HTTP message)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Whether the action is permitted")
    reason: DecisionReason = Field(..., description="Typed reason code")
    permission: str | None = Field(default=None, description="Deciding permission")
    required: tuple[str, ...] = Field(default=(), description="Requested permissions")
    combinator: Combinator = Field(default=Combinator.ALL, description="ALL or ANY")
    grant: str | None = Field(default=None, description="Matching grant")
    ownership_rule: str | None = Field(default=None, description="Ownership rule applied")
    message: str = Field(default="", description="Human-readable explanation")

    @classmethod
    def allow(
        cls,
        reason: DecisionReason,
        permission: str | None = None,
        grant: str | None = None,
        ownership_rule: str | None = None,
        required: tuple[str, ...] = (),
        combinator: Combinator = Combinator.ALL,
    ) -> "Decision":
        """Create an ALLOW decision."""
        if not reason.is_allow:
            raise ValueError(f"{reason.value} is not an allow reason")
        return cls(
            allowed=True,
            reason=reason,
            permission=permission,
            required=required or ((permission,) if permission else ()),
            combinator=combinator,
            grant=grant,
            ownership_rule=ownership_rule,
            message=describe(reason, combinator, permission, required, grant),
        )

    @classmethod
    def deny(
        cls,
        reason: DecisionReason,
        permission: str | None = None,
        ownership_rule: str | None = None,
        required: tuple[str, ...] = (),
        combinator: Combinator = Combinator.ALL,
    ) -> "Decision":
        """Create a DENY decision."""
        if reason.is_allow:
            raise ValueError(f"{reason.value} is not a deny reason")
        return cls(
            allowed=False,
            reason=reason,
            permission=permission,
            required=required or ((permission,) if permission else ()),
            combinator=combinator,
            ownership_rule=ownership_rule,
            message=describe(reason, combinator, permission, required),
        )

    def within(self, required: tuple[str, ...], combinator: Combinator) -> "Decision":
        """Re-state a single-permission decision as the outcome of a whole guard."""
        if self.allowed:
            return Decision.allow(
                self.reason,
                self.permission,
                grant=self.grant,
                ownership_rule=self.ownership_rule,
                required=required,
                combinator=combinator,
            )
        return Decision.deny(
            self.reason,
            self.permission,
            ownership_rule=self.ownership_rule,
            required=required,
            combinator=combinator,
        )

    @property
    def status_code(self) -> int:
        """HTTP status the calling layer should answer with."""
        if self.allowed:
            return 200
        return STATUS_BY_REASON[self.reason]

    def error_body(self) -> dict[str, Any] | None:
        """JSON body for a denial, None when allowed."""
        if self.allowed:
            return None
        return {
            "success": False,
            "error": ERROR_LABELS[self.status_code],
            "message": self.message,
        }

    def raise_for_denial(self) -> "Decision":
        """Raise AuthorizationDeniedError if denied, else return self."""
        if not self.allowed:
            from capgate.errors import AuthorizationDeniedError

            raise AuthorizationDeniedError(decision=self)
        return self


# =============================================================================
# Catalog Configuration
# =============================================================================


class CatalogConfig(BaseModel):
    """
    YAML representation of a role -> permissions catalog.

    Entry format is not validated here so that one bad entry does not reject
    the whole file; PermissionCatalog.invalid_entries() reports them.

    Attributes:
        version: Schema version for forward compatibility
        roles: Role name -> list of permission strings
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(default="1.0", description="Catalog schema version")
    roles: dict[str, list[str]] = Field(
        ...,
        description="Role name -> permission strings",
    )

    @field_validator("roles")
    @classmethod
    def validate_role_names(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        """Role names must be non-blank."""
        for name in v:
            if not name.strip():
                msg = "Role names must not be empty"
                raise ValueError(msg)
        return v


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_catalog_config(path: Path | str) -> CatalogConfig:
    """
    Load a catalog configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return CatalogConfig.model_validate(data)


def load_catalog_config_from_string(content: str) -> CatalogConfig:
    """Load a catalog configuration from a YAML string."""
    data = yaml.safe_load(content)
    return CatalogConfig.model_validate(data)
