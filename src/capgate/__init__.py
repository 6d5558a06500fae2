"""
capgate - Capability-based authorization for route handlers.

capgate decides, for an already-authenticated principal, whether a requested
action on a resource is permitted. It provides:
- Exact, wildcard (module:*) and self-scoped (module:action_self) permissions
- Ownership verification for self-scoped grants
- require_all / require_any guards returning typed Decisions
- An immutable role catalog, or a live SQLite role store

Example usage:
    $ capgate check usuarios:delete --role Admin
    $ capgate roles --catalog roles.yaml
    $ capgate validate roles.yaml
"""

__version__ = "0.1.0"
__author__ = "capgate Contributors"

__all__ = [
    "__version__",
    "__author__",
]
