"""
JSON rendering for capgate.

Structured output for programmatic consumption of decisions and catalogs.
"""

import json
from typing import Any

from capgate.catalog import PermissionCatalog
from capgate.schema import Decision


def decision_to_dict(decision: Decision) -> dict[str, Any]:
    """Decision plus the HTTP shape the calling layer would send."""
    return {
        "allowed": decision.allowed,
        "reason": decision.reason.value,
        "permission": decision.permission,
        "required": list(decision.required),
        "combinator": decision.combinator.value,
        "grant": decision.grant,
        "ownership_rule": decision.ownership_rule,
        "message": decision.message,
        "http": {
            "status_code": decision.status_code,
            "body": decision.error_body(),
        },
    }


def catalog_to_dict(catalog: PermissionCatalog) -> dict[str, Any]:
    return {
        "roles": catalog.as_dict(),
        "invalid_entries": catalog.invalid_entries(),
    }


def generate_decision_json(decision: Decision, indent: int = 2) -> str:
    return json.dumps(decision_to_dict(decision), indent=indent, ensure_ascii=False)


def generate_catalog_json(catalog: PermissionCatalog, indent: int = 2) -> str:
    return json.dumps(catalog_to_dict(catalog), indent=indent, ensure_ascii=False)
