"""
Role -> permission catalogs.

A catalog is built once at start-up (from the built-in defaults, a YAML file,
or a store snapshot) and shared read-only with the authorization gate.
"""

from capgate.catalog.catalog import (
    PermissionCatalog,
    PermissionSource,
    load_catalog,
    load_catalog_from_string,
)
from capgate.catalog.defaults import DEFAULT_ROLE_PERMISSIONS

__all__ = [
    "DEFAULT_ROLE_PERMISSIONS",
    "PermissionCatalog",
    "PermissionSource",
    "load_catalog",
    "load_catalog_from_string",
]
