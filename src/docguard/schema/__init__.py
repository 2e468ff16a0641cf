"""Schema definition input: field rules, rule sets and YAML loading.

Usage:
    from docguard.schema import rule_set_from_dict

    books = rule_set_from_dict({
        "title": {"type": str, "label": "Title", "max": 200},
        "copies": {"type": int, "label": "Number of copies", "min": 0},
    })
"""

from docguard.schema.loader import (
    field_rule_from_definition,
    load_bindings,
    load_rule_set,
    rule_set_from_dict,
)
from docguard.schema.paths import MISSING
from docguard.schema.types import CleanOptions, FieldRule, FieldType, RuleSet

__all__ = [
    "MISSING",
    "CleanOptions",
    "FieldRule",
    "FieldType",
    "RuleSet",
    "field_rule_from_definition",
    "load_bindings",
    "load_rule_set",
    "rule_set_from_dict",
]
