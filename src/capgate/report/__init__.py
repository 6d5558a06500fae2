"""
Report module for capgate.

Renders decisions and catalogs for humans (Rich) and programs (JSON).

Example:
    from capgate.report import print_decision, generate_decision_json

    print_decision(decision)
    print(generate_decision_json(decision))
"""

from capgate.report.console import print_catalog, print_decision
from capgate.report.json import (
    catalog_to_dict,
    decision_to_dict,
    generate_catalog_json,
    generate_decision_json,
)

__all__ = [
    "catalog_to_dict",
    "decision_to_dict",
    "generate_catalog_json",
    "generate_decision_json",
    "print_catalog",
    "print_decision",
]
