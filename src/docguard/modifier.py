"""Helpers for update modifiers and update selectors.

A modifier maps update operators ("$set", "$unset", ...) to maps of dotted
field path to value. Only the set-style operators and "$unset" are checked
against a schema; any other operator passes through untouched.
"""

from copy import deepcopy
from typing import Any

from docguard.errors import InvalidModifierError
from docguard.schema.paths import MISSING, get_path, is_ancestor, set_path

SET = "$set"
UNSET = "$unset"
SET_ON_INSERT = "$setOnInsert"

SET_OPERATORS = (SET, SET_ON_INSERT)
SCHEMA_OPERATORS = (SET, SET_ON_INSERT, UNSET)

_ALIASES = {"set": SET, "unset": UNSET, "setOnInsert": SET_ON_INSERT}


def normalize_modifier(modifier: Any) -> dict[str, dict[str, Any]]:
    """Return a deep copy of ``modifier`` with operator aliases expanded.

    ``{"set": {...}}`` becomes ``{"$set": {...}}``.

    Raises:
        InvalidModifierError: Not a non-empty mapping of operators to field maps
    """
    if not isinstance(modifier, dict) or not modifier:
        raise InvalidModifierError("Modifier must be a non-empty mapping of update operators")

    result: dict[str, dict[str, Any]] = {}
    for operator, field_map in modifier.items():
        operator = _ALIASES.get(operator, operator)
        if not isinstance(operator, str) or not operator.startswith("$"):
            raise InvalidModifierError(
                f"Modifier must only contain update operators, got '{operator}'"
            )
        if not isinstance(field_map, dict):
            raise InvalidModifierError(f"Operator '{operator}' must map field paths to values")
        result.setdefault(operator, {}).update(deepcopy(field_map))
    return result


def is_empty(modifier: dict[str, dict[str, Any]]) -> bool:
    return all(not field_map for field_map in modifier.values())


def prune(modifier: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Drop operators whose field map became empty."""
    return {op: field_map for op, field_map in modifier.items() if field_map}


def normalize_selector(selector: Any) -> dict[str, Any]:
    """Treat a bare value as an ``_id`` selector."""
    if selector is None:
        return {}
    if isinstance(selector, dict):
        return dict(selector)
    return {"_id": selector}


def _is_operator_expression(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and bool(value)
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


def selector_fields(selector: Any) -> dict[str, Any]:
    """Collect the plain equality fields of a selector, including ``$and`` clauses.

    ``{"title": "x", "copies": {"$gt": 1}}`` yields ``{"title": "x"}``;
    ``{"$eq": v}`` counts as equality.
    """
    found: dict[str, Any] = {}
    for key, value in normalize_selector(selector).items():
        if key == "$and" and isinstance(value, list):
            for clause in value:
                found.update(selector_fields(clause))
            continue
        if key.startswith("$"):
            continue
        if _is_operator_expression(value):
            if "$eq" in value:
                found[key] = value["$eq"]
            continue
        found[key] = value
    return found


def doc_id_from_selector(selector: Any) -> Any:
    return selector_fields(selector).get("_id")


def virtual_document(selector: Any, modifier: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Document an upsert would insert: selector fields, then $setOnInsert, then $set."""
    doc: dict[str, Any] = {}
    for key, value in selector_fields(selector).items():
        set_path(doc, key, deepcopy(value))
    for operator in (SET_ON_INSERT, SET):
        for key, value in modifier.get(operator, {}).items():
            set_path(doc, key, deepcopy(value))
    return doc


def lookup(modifier: dict[str, dict[str, Any]], path: str, operators=SET_OPERATORS) -> Any:
    """Value assigned to ``path`` by the set-style operators, or MISSING."""
    for operator in operators:
        field_map = modifier.get(operator, {})
        if path in field_map:
            return field_map[path]
        for key, value in field_map.items():
            if is_ancestor(key, path) and isinstance(value, (dict, list)):
                found = get_path(value, path[len(key) + 1:])
                if found is not MISSING:
                    return found
    return MISSING


def inject(modifier: dict[str, dict[str, Any]], operator: str, path: str, value: Any) -> None:
    """Assign ``path`` under ``operator``, nesting into an ancestor object that is already set."""
    field_map = modifier.setdefault(operator, {})
    for key, existing in field_map.items():
        if is_ancestor(key, path) and isinstance(existing, dict):
            set_path(existing, path[len(key) + 1:], value)
            break
    else:
        field_map[path] = value
    if operator in SET_OPERATORS:
        modifier.get(UNSET, {}).pop(path, None)
