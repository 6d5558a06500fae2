"""
Permission catalog.

The catalog maps role names to ordered sets of permission strings. It is
built once during process start-up and shared by reference with the gate;
nothing can mutate it afterwards.

Malformed entries are kept (they never match at runtime) and reported by
invalid_entries(), so that a bad deployment is caught by tests and by
`capgate validate` rather than by failing requests.
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Protocol, runtime_checkable

import yaml
from pydantic import ValidationError

from capgate.catalog.defaults import DEFAULT_ROLE_PERMISSIONS
from capgate.errors import CatalogLoadError, InvalidPermissionError, UnknownRoleError
from capgate.policy.token import PermissionToken
from capgate.schema import (
    CatalogConfig,
    load_catalog_config,
    load_catalog_config_from_string,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class PermissionSource(Protocol):
    """
    Anything the gate can ask for a role's granted permissions.

    lookup() raises UnknownRoleError for empty or unknown roles. Sources
    that do I/O set blocking = True.
    """

    blocking: bool

    def lookup(self, role: str) -> tuple[str, ...]: ...


class PermissionCatalog:
    """
    Immutable role -> permissions mapping.

    Usage:
        catalog = PermissionCatalog({"Admin": ["usuarios:*"]})
        catalog.lookup("Admin")   # ("usuarios:*",)
        catalog.lookup("Ghost")   # raises UnknownRoleError

    Duplicate entries are dropped; first-seen order is preserved.
    """

    blocking = False

    def __init__(self, roles: Mapping[str, Iterable[str]]) -> None:
        frozen: dict[str, tuple[str, ...]] = {}
        for role, permissions in roles.items():
            frozen[role] = tuple(dict.fromkeys(permissions))
        self._roles: Mapping[str, tuple[str, ...]] = MappingProxyType(frozen)

        for role, permission, error in self._iter_invalid():
            logger.warning(
                "Malformed permission %r for role %r will never match: %s",
                permission,
                role,
                error.detail,
            )

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_mapping(cls, roles: Mapping[str, Iterable[str]]) -> "PermissionCatalog":
        return cls(roles)

    @classmethod
    def from_config(cls, config: CatalogConfig) -> "PermissionCatalog":
        return cls(config.roles)

    @classmethod
    def default(cls) -> "PermissionCatalog":
        """The built-in catalog (Admin, Organizador, Staff, Participante)."""
        return cls(DEFAULT_ROLE_PERMISSIONS)

    # =========================================================================
    # Lookup
    # =========================================================================

    def lookup(self, role: str) -> tuple[str, ...]:
        """
        Get the permissions granted to a role.

        Raises:
            UnknownRoleError: If role is empty or not in the catalog
        """
        if not role or not isinstance(role, str):
            raise UnknownRoleError(role=role)
        try:
            return self._roles[role]
        except KeyError:
            raise UnknownRoleError(role=role) from None

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(self._roles)

    def items(self) -> Iterator[tuple[str, tuple[str, ...]]]:
        return iter(self._roles.items())

    def as_dict(self) -> dict[str, list[str]]:
        """Plain-data copy, e.g. for JSON output or seeding a store."""
        return {role: list(perms) for role, perms in self._roles.items()}

    def invalid_entries(self) -> dict[str, list[str]]:
        """Malformed permission strings per role (roles without any are omitted)."""
        invalid: dict[str, list[str]] = {}
        for role, permission, _ in self._iter_invalid():
            invalid.setdefault(role, []).append(permission)
        return invalid

    def _iter_invalid(self) -> Iterator[tuple[str, str, InvalidPermissionError]]:
        for role, permissions in self._roles.items():
            for permission in permissions:
                try:
                    PermissionToken.parse(permission)
                except InvalidPermissionError as e:
                    yield role, permission, e

    def __contains__(self, role: object) -> bool:
        return role in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def __iter__(self) -> Iterator[str]:
        return iter(self._roles)

    def __repr__(self) -> str:
        return f"PermissionCatalog(roles={list(self._roles)!r})"


# =============================================================================
# YAML Loading
# =============================================================================


def load_catalog(path: Path | str) -> PermissionCatalog:
    """
    Load a catalog from a YAML file.

    Raises:
        CatalogLoadError: If the file is missing, not YAML, or invalid
    """
    try:
        config = load_catalog_config(path)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise CatalogLoadError(path=str(path), underlying_error=str(e)) from e
    return PermissionCatalog.from_config(config)


def load_catalog_from_string(content: str) -> PermissionCatalog:
    """Load a catalog from a YAML string."""
    try:
        config = load_catalog_config_from_string(content)
    except (yaml.YAMLError, ValidationError) as e:
        raise CatalogLoadError(path="<string>", underlying_error=str(e)) from e
    return PermissionCatalog.from_config(config)
