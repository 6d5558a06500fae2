"""
Exception hierarchy for capgate.

All capgate exceptions inherit from CapgateError, allowing callers to catch
all capgate-specific exceptions with a single except clause.

Exceptions are internal plumbing: the authorization gate converts every one
of them into a Decision at its boundary, so route handlers only see decisions
(or AuthorizationDeniedError when they ask for one).

Exception Categories:
    - AuthorizationDeniedError: A guard denied the request
    - InvalidPermissionError: A permission string is malformed
    - UnknownRoleError / CatalogLoadError: Catalog lookups and loading
    - StorageError: Live permission source failed
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from capgate.schema import Decision


# =============================================================================
# Error Codes
# =============================================================================

# Authorization errors: 1xxx
ERROR_AUTHORIZATION_DENIED = 1001

# Permission format errors: 2xxx
ERROR_PERMISSION_INVALID = 2001

# Catalog errors: 3xxx
ERROR_CATALOG_UNKNOWN_ROLE = 3001
ERROR_CATALOG_LOAD = 3002

# Storage errors: 5xxx
ERROR_STORAGE_CONNECTION = 5001
ERROR_STORAGE_WRITE = 5002
ERROR_STORAGE_READ = 5003


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class CapgateError(Exception):
    """
    Base exception for all capgate errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Authorization Errors
# =============================================================================


@dataclass
class AuthorizationDeniedError(CapgateError):
    """
    Raised when a caller asks for a denial to be turned into an exception.

    The gate itself never raises this; Decision.raise_for_denial() and the
    FastAPI integration do, so that a web framework can short-circuit the
    request with the decision's HTTP shape.

    Attributes:
        decision: The denying Decision
    """

    decision: "Decision | None" = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.decision is not None:
            if not self.message:
                self.message = self.decision.message
            self.context.update({
                "reason": self.decision.reason.value,
                "permission": self.decision.permission,
                "required": list(self.decision.required),
            })
        if self.code == 0:
            self.code = ERROR_AUTHORIZATION_DENIED

    @property
    def status_code(self) -> int:
        """HTTP status for the wrapped decision (500 when there is none)."""
        return self.decision.status_code if self.decision is not None else 500


# =============================================================================
# Permission Format Errors
# =============================================================================


@dataclass
class PermissionFormatError(CapgateError):
    """
    Base class for malformed permission strings.

    Attributes:
        permission: The offending permission string
    """

    permission: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["permission"] = self.permission


@dataclass
class InvalidPermissionError(PermissionFormatError):
    """Raised when a permission string is not module:action."""

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid permission {self.permission!r}: {self.detail}"
        if self.code == 0:
            self.code = ERROR_PERMISSION_INVALID
        if not self.suggestion:
            self.suggestion = "Use module:action, module:* or module:action_self"
        super().__post_init__()
        self.context["detail"] = self.detail


# =============================================================================
# Catalog Errors
# =============================================================================


@dataclass
class CatalogError(CapgateError):
    """Base class for catalog lookup and loading errors."""


@dataclass
class UnknownRoleError(CatalogError):
    """
    Raised when a role is empty or not present in the permission source.

    Role values come from token claims, so this is expected input and the
    gate reports it as an invalid_role decision.
    """

    role: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown role: {self.role!r}"
        if self.code == 0:
            self.code = ERROR_CATALOG_UNKNOWN_ROLE
        self.context["role"] = self.role


@dataclass
class CatalogLoadError(CatalogError):
    """Raised when a catalog file cannot be read or validated."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load catalog {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CATALOG_LOAD
        if not self.suggestion:
            self.suggestion = "Check the YAML syntax and that 'roles' maps names to lists"
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(CapgateError):
    """
    Base class for storage/database errors.

    Attributes:
        operation: The operation that failed (e.g., "lookup", "seed")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StorageConnectionError(StorageError):
    """Raised when database connection fails."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to database: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when a write operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when a read operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error
