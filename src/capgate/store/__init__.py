"""
Storage module for capgate.

Provides a SQLite-backed permission source for deployments that resolve a
role's grants per request instead of from the start-up catalog.

Tables:
    - roles: role names
    - role_permissions: granted permission strings per role, ordered
"""

from capgate.store.db import RoleStore

__all__ = [
    "RoleStore",
]
