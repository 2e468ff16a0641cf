"""Build rule sets from plain definitions and YAML files."""

from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from docguard.schema.types import CleanOptions, FieldRule, FieldType, RuleSet

_RULE_KEYS = {
    "type",
    "optional",
    "required",
    "min",
    "max",
    "defaultValue",
    "default_value",
    "autoValue",
    "auto_value",
    "label",
    "custom",
    "blackbox",
    "trim",
}


def field_rule_from_definition(name: str, definition: Any) -> FieldRule:
    """Create a FieldRule from a type shorthand, a FieldRule, or a dict.

    Dict keys follow the YAML spelling (``optional``, ``defaultValue``,
    ``autoValue``) with snake_case accepted as well. Fields are required
    unless ``optional: true`` or ``required: false`` is given.
    """
    if isinstance(definition, FieldRule):
        return definition if definition.name == name else _renamed(definition, name)

    if not isinstance(definition, dict):
        return FieldRule(name=name, type=FieldType.coerce(definition))

    unknown = set(definition) - _RULE_KEYS
    if unknown:
        raise ValueError(
            f"Field '{name}' has unknown rule keys: {', '.join(sorted(unknown))}"
        )
    if "type" not in definition:
        raise ValueError(f"Field '{name}' has no type")

    if "required" in definition:
        required = bool(definition["required"])
    else:
        required = not definition.get("optional", False)

    return FieldRule(
        name=name,
        type=FieldType.coerce(definition["type"]),
        required=required,
        min=definition.get("min"),
        max=definition.get("max"),
        default_value=definition.get("defaultValue", definition.get("default_value")),
        auto_value=definition.get("autoValue", definition.get("auto_value")),
        label=definition.get("label"),
        custom=definition.get("custom"),
        blackbox=bool(definition.get("blackbox", False)),
        trim=bool(definition.get("trim", True)),
    )


def _renamed(rule: FieldRule, name: str) -> FieldRule:
    return replace(rule, name=name)


def rule_set_from_dict(
    definitions: dict[str, Any],
    clean: CleanOptions | dict[str, Any] | None = None,
) -> RuleSet:
    """Create a RuleSet from ``{path: definition}`` in declaration order.

    Example:
        rule_set_from_dict({
            "title": {"type": str, "max": 200},
            "copies": {"type": int, "min": 0},
            "summary": {"type": str, "optional": True},
        })
    """
    if not isinstance(clean, CleanOptions):
        clean = CleanOptions.from_dict(clean)
    rules = tuple(
        field_rule_from_definition(name, definition)
        for name, definition in definitions.items()
    )
    return RuleSet(rules=rules, clean=clean)


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def load_rule_set(path: Path | str) -> RuleSet:
    """Load a single rule set from a YAML file.

    Expected layout:
        clean:
          trimStrings: false
        fields:
          title: {type: string, max: 200}
          summary: {type: string, optional: true}
    """
    data = _read_yaml(Path(path))
    return rule_set_from_dict(data.get("fields") or {}, data.get("clean"))


def load_bindings(path: Path | str) -> list[tuple[RuleSet, dict[str, Any] | None]]:
    """Load selector-guarded schemas for one collection from a YAML file.

    Expected layout:
        collection: products
        schemas:
          - selector: {type: simple}
            fields: {...}
          - fields: {...}          # no selector: applies to every document

    Returns:
        ``(rule_set, selector)`` pairs in file order, ready for ``attach``.
    """
    data = _read_yaml(Path(path))
    bindings = []
    for index, schema in enumerate(data.get("schemas") or []):
        if "fields" not in schema:
            raise ValueError(f"{path}: schema #{index} has no fields")
        rule_set = rule_set_from_dict(schema["fields"] or {}, schema.get("clean"))
        bindings.append((rule_set, schema.get("selector")))
    return bindings
