"""Structural and type normalisation applied before validation.

Cleaning works per leaf value. For a modifier it runs independently inside
each operator's field map. Cleaning is idempotent: cleaning an already
cleaned payload returns an equal payload.
"""

import re
from datetime import date, datetime, timezone
from typing import Any

from docguard.modifier import SET_OPERATORS, UNSET, prune
from docguard.schema.paths import generic, join
from docguard.schema.types import CleanOptions, FieldType, RuleSet

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def _parse_number(text: str) -> int | float | None:
    text = text.strip()
    if _INTEGER_PATTERN.match(text):
        return int(text)
    if _NUMBER_PATTERN.match(text):
        return float(text)
    return None


def convert(value: Any, field_type: FieldType) -> Any:
    """Coerce ``value`` to ``field_type`` when the conversion is lossless.

    Values that cannot be converted unambiguously are returned unchanged so
    the validator reports them as type errors.
    """
    if value is None:
        return value

    if field_type == FieldType.STRING:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else repr(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    if field_type == FieldType.NUMBER:
        if isinstance(value, str):
            parsed = _parse_number(value)
            return value if parsed is None else parsed
        return value

    if field_type == FieldType.INTEGER:
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            parsed = _parse_number(value)
            if isinstance(parsed, int):
                return parsed
            if isinstance(parsed, float) and parsed.is_integer():
                return int(parsed)
        return value

    if field_type == FieldType.BOOLEAN:
        if isinstance(value, str):
            word = value.strip().lower()
            if word == "true":
                return True
            if word == "false":
                return False
        return value

    if field_type == FieldType.DATE:
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip())
            except ValueError:
                return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            # epoch milliseconds
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return value

    if field_type == FieldType.ARRAY:
        if not isinstance(value, (list, tuple)):
            return [value]
        return list(value)

    return value


class Cleaner:
    """Applies filter / auto_convert / trim_strings / remove_empty_strings.

    ``options`` passed to the public methods must already be resolved (see
    ``CleanOptions.layered``); every switch is expected to be True or False.
    """

    def clean(
        self,
        payload: dict[str, Any],
        rule_set: RuleSet,
        options: CleanOptions,
        is_modifier: bool = False,
    ) -> dict[str, Any]:
        if is_modifier:
            return self.clean_modifier(payload, rule_set, options)
        return self.clean_document(payload, rule_set, options)

    def clean_document(
        self,
        document: dict[str, Any],
        rule_set: RuleSet,
        options: CleanOptions,
    ) -> dict[str, Any]:
        """Return a cleaned copy of an insert document."""
        return self._clean_map(document, "", rule_set, options)

    def clean_modifier(
        self,
        modifier: dict[str, dict[str, Any]],
        rule_set: RuleSet,
        options: CleanOptions,
    ) -> dict[str, dict[str, Any]]:
        """Return a cleaned copy of a normalised modifier.

        Operators left with no keys are dropped. Operators other than the
        set-style ones and "$unset" are returned untouched.
        """
        result: dict[str, dict[str, Any]] = {}
        for operator, field_map in modifier.items():
            if operator in SET_OPERATORS:
                cleaned = {}
                for key, value in field_map.items():
                    keep, value = self._clean_entry(key, value, rule_set, options)
                    if keep:
                        cleaned[key] = value
                result[operator] = cleaned
            elif operator == UNSET:
                result[operator] = {
                    key: value
                    for key, value in field_map.items()
                    if not options.filter or rule_set.is_allowed(generic(key))
                }
            else:
                result[operator] = field_map
        return prune(result)

    def _clean_map(
        self,
        mapping: dict[str, Any],
        prefix: str,
        rule_set: RuleSet,
        options: CleanOptions,
    ) -> dict[str, Any]:
        result = {}
        for key, value in mapping.items():
            keep, value = self._clean_entry(join(prefix, key), value, rule_set, options)
            if keep:
                result[key] = value
        return result

    def _clean_entry(
        self,
        path: str,
        value: Any,
        rule_set: RuleSet,
        options: CleanOptions,
    ) -> tuple[bool, Any]:
        """Clean one value. Returns (keep, cleaned_value)."""
        generic_path = generic(path)

        if not rule_set.is_allowed(generic_path):
            return not options.filter, value
        if rule_set.opaque_ancestor(generic_path) is not None:
            return True, value

        rule = rule_set.get(generic_path)
        if rule is not None:
            if options.auto_convert:
                value = convert(value, rule.type)
            if isinstance(value, str):
                if options.trim_strings and rule.trim:
                    value = value.strip()
                if options.remove_empty_strings and value == "":
                    return False, value
            if rule.blackbox or rule.type == FieldType.ANY:
                return True, value

        if isinstance(value, dict):
            value = self._clean_map(value, path, rule_set, options)
        elif isinstance(value, list):
            items = []
            for index, item in enumerate(value):
                keep, item = self._clean_entry(join(path, index), item, rule_set, options)
                if keep:
                    items.append(item)
            value = items
        return True, value
