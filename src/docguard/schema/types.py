"""Field rules and rule sets.

A RuleSet is the immutable, ordered mapping from dotted field path to
FieldRule that the cleaner, auto-value engine and validator work against.
RuleSets are combined with ``merge``; nothing mutates one after creation.
"""

import re
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterator

from docguard.schema.paths import is_ancestor, parent


class FieldType(Enum):
    """Declared type of a field."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    ANY = "any"

    @classmethod
    def coerce(cls, declared: Any) -> "FieldType":
        """Accept a FieldType, its string value, or a Python type."""
        if isinstance(declared, FieldType):
            return declared
        if isinstance(declared, str):
            return cls(declared.lower())
        if declared in _PYTHON_TYPES:
            return _PYTHON_TYPES[declared]
        raise ValueError(f"Unsupported field type: {declared!r}")

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_PYTHON_TYPES: dict[Any, FieldType] = {
    str: FieldType.STRING,
    int: FieldType.INTEGER,
    float: FieldType.NUMBER,
    bool: FieldType.BOOLEAN,
    datetime: FieldType.DATE,
    date: FieldType.DATE,
    dict: FieldType.OBJECT,
    list: FieldType.ARRAY,
    object: FieldType.ANY,
}

_DISPLAY_NAMES = {
    FieldType.STRING: "String",
    FieldType.NUMBER: "Number",
    FieldType.INTEGER: "Integer",
    FieldType.BOOLEAN: "Boolean",
    FieldType.DATE: "Date",
    FieldType.OBJECT: "Object",
    FieldType.ARRAY: "Array",
    FieldType.ANY: "Any",
}


@dataclass(frozen=True)
class CleanOptions:
    """Clean switches. ``None`` means "not set at this level".

    Attributes:
        filter: Drop keys that are not in the rule set
        auto_convert: Coerce values to the declared type when lossless
        trim_strings: Strip surrounding whitespace from strings
        remove_empty_strings: Remove keys whose string value is empty after trimming
    """

    filter: bool | None = None
    auto_convert: bool | None = None
    trim_strings: bool | None = None
    remove_empty_strings: bool | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CleanOptions":
        """Create CleanOptions from YAML/JSON dict (camelCase or snake_case keys)."""
        if not data:
            return cls()
        return cls(
            filter=data.get("filter"),
            auto_convert=data.get("autoConvert", data.get("auto_convert")),
            trim_strings=data.get("trimStrings", data.get("trim_strings")),
            remove_empty_strings=data.get(
                "removeEmptyStrings", data.get("remove_empty_strings")
            ),
        )

    @classmethod
    def defaults(cls) -> "CleanOptions":
        return cls(filter=True, auto_convert=True, trim_strings=True, remove_empty_strings=True)

    def override(self, other: "CleanOptions") -> "CleanOptions":
        """Return a copy where every option set in ``other`` wins."""
        changes = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name) is not None
        }
        return replace(self, **changes)

    @classmethod
    def layered(cls, *layers: "CleanOptions") -> "CleanOptions":
        """Resolve options from highest to lowest precedence; unset falls back to True."""
        resolved = cls.defaults()
        for layer in reversed(layers):
            resolved = resolved.override(layer)
        return resolved


@dataclass(frozen=True)
class FieldRule:
    """Rule for a single dotted field path.

    Attributes:
        name: Dotted path ("title", "context.userId", "tags.$")
        type: Declared FieldType
        required: Field must have a value (fields are required unless optional)
        min: Minimum number, string length, date or array length depending on type
        max: Maximum, same interpretation as ``min``
        default_value: Value set on insert when the field is absent (None = no default)
        auto_value: Callable receiving an AutoValueContext; None return means no-op
        label: Human label used in error messages
        custom: Callable ``(value, payload) -> message | None`` for extra checks
        blackbox: For objects, accept any nested keys without rules
        trim: Set False to exempt this string field from trimming
    """

    name: str
    type: FieldType
    required: bool = True
    min: Any = None
    max: Any = None
    default_value: Any = None
    auto_value: Callable[[Any], Any] | None = None
    label: str | None = None
    custom: Callable[[Any, dict[str, Any]], str | None] | None = None
    blackbox: bool = False
    trim: bool = True

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @property
    def is_array_element(self) -> bool:
        return "$" in self.name.split(".")


def humanize(path: str) -> str:
    """Convert the last path segment from camelCase to a sentence-case label."""
    name = path.rsplit(".", 1)[-1]
    if name == "$":
        return humanize(parent(path)) + " item" if parent(path) else "Item"
    words = re.sub(r"([A-Z])", r" \1", name).replace("_", " ").split()
    if not words:
        return name
    text = " ".join(w.lower() for w in words)
    return text[0].upper() + text[1:]


@dataclass(frozen=True)
class RuleSet:
    """Ordered, immutable mapping of dotted path to FieldRule.

    Attributes:
        rules: Rules in declaration order
        clean: Rule-set level clean defaults
    """

    rules: tuple[FieldRule, ...] = ()
    clean: CleanOptions = field(default_factory=CleanOptions)

    def __post_init__(self) -> None:
        index = {}
        for rule in self.rules:
            index[rule.name] = rule
        if len(index) != len(self.rules):
            # Keep the last definition of a duplicated path, at its first position
            ordered: dict[str, FieldRule] = {}
            for rule in self.rules:
                ordered[rule.name] = rule
            object.__setattr__(self, "rules", tuple(ordered.values()))
        for name, rule in index.items():
            if rule.type == FieldType.ARRAY and not rule.blackbox and f"{name}.$" not in index:
                raise ValueError(
                    f"Array field '{name}' needs an element rule '{name}.$' "
                    "(or blackbox: true to accept any elements)"
                )
        object.__setattr__(self, "_index", index)
        prefixes = set()
        for name in index:
            head = parent(name)
            while head:
                prefixes.add(head)
                head = parent(head)
        object.__setattr__(self, "_prefixes", frozenset(prefixes))

    def __contains__(self, path: object) -> bool:
        return path in self._index

    def __getitem__(self, path: str) -> FieldRule:
        return self._index[path]

    def __iter__(self) -> Iterator[FieldRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, path: str) -> FieldRule | None:
        return self._index.get(path)

    def keys(self) -> list[str]:
        return [rule.name for rule in self.rules]

    def merge(self, *others: "RuleSet") -> "RuleSet":
        """Combine rule sets; a later rule replaces an earlier rule of the same path."""
        combined: dict[str, FieldRule] = {rule.name: rule for rule in self.rules}
        clean = self.clean
        for other in others:
            for rule in other.rules:
                combined[rule.name] = rule
            clean = clean.override(other.clean)
        return RuleSet(rules=tuple(combined.values()), clean=clean)

    def is_allowed(self, generic_path: str) -> bool:
        """True if a key at ``generic_path`` may be stored under this rule set."""
        if generic_path == "_id" or generic_path in self._index:
            return True
        if generic_path in self._prefixes:
            return True
        return self.opaque_ancestor(generic_path) is not None

    def opaque_ancestor(self, generic_path: str) -> FieldRule | None:
        """Return the blackbox object or ``any`` rule that contains this path, if any."""
        head = parent(generic_path)
        while head:
            rule = self._index.get(head)
            if rule is not None and (rule.blackbox or rule.type == FieldType.ANY):
                return rule
            head = parent(head)
        return None

    def descendants(self, path: str) -> list[FieldRule]:
        return [rule for rule in self.rules if is_ancestor(path, rule.name)]

    def label(self, path: str) -> str:
        rule = self._index.get(path)
        if rule is not None and rule.label:
            return rule.label
        return humanize(path)
