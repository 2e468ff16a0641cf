"""Field-level validation of documents and modifiers against a RuleSet.

Insert documents are checked as a whole: every required rule must have a
value. Modifiers are checked field by field: only keys that the modifier
sets or unsets are looked at, so an update never fails because of a field
it does not touch.

Errors come back in field-declaration order, with keys unknown to the rule
set last. The validator reports problems; it never raises.
"""

import logging
import math
from datetime import date, datetime
from typing import Any

from docguard.modifier import SET_OPERATORS, UNSET, virtual_document
from docguard.schema.paths import MISSING, expand, generic, get_path, is_ancestor, iter_nodes, join
from docguard.schema.types import FieldRule, FieldType, RuleSet
from docguard.validation.messages import MessageInterpolator
from docguard.validation.types import ErrorType, FieldError, Operation

logger = logging.getLogger(__name__)


def matches_type(value: Any, field_type: FieldType) -> bool:
    if field_type == FieldType.ANY:
        return True
    if field_type == FieldType.STRING:
        return isinstance(value, str)
    if field_type == FieldType.NUMBER:
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )
    if field_type == FieldType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if field_type == FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field_type == FieldType.DATE:
        return isinstance(value, (datetime, date))
    if field_type == FieldType.OBJECT:
        return isinstance(value, dict)
    if field_type == FieldType.ARRAY:
        return isinstance(value, list)
    return False


def _comparable_dates(value: date, bound: date) -> tuple[date, date]:
    # datetime is a date subclass; compare on calendar date when kinds differ
    if isinstance(value, datetime) != isinstance(bound, datetime):
        value = value.date() if isinstance(value, datetime) else value
        bound = bound.date() if isinstance(bound, datetime) else bound
    return value, bound


class _Collector:
    """Accumulates errors with a sort rank so output follows declaration order."""

    def __init__(self, rule_set: RuleSet):
        self._positions = {name: index for index, name in enumerate(rule_set.keys())}
        self._unknown_rank = len(self._positions)
        self._entries: list[tuple[int, int, FieldError]] = []
        self._seen: set[tuple[str, ErrorType]] = set()

    def add(self, error: FieldError) -> None:
        key = (error.name, error.type)
        if key in self._seen:
            return
        self._seen.add(key)
        rank = self._positions.get(generic(error.name), self._unknown_rank)
        self._entries.append((rank, len(self._entries), error))

    def errors(self) -> list[FieldError]:
        return [entry[2] for entry in sorted(self._entries, key=lambda e: (e[0], e[1]))]


class Validator:
    """Checks cleaned payloads against a RuleSet and returns ordered FieldErrors."""

    def __init__(self, interpolator: MessageInterpolator | None = None):
        self.interpolator = interpolator or MessageInterpolator()

    def validate(
        self,
        payload: dict[str, Any],
        rule_set: RuleSet,
        mode: Operation | str = Operation.INSERT,
    ) -> list[FieldError]:
        """Validate an insert document or an update modifier.

        Args:
            payload: Document (insert) or normalised modifier (update)
            rule_set: The resolved rule set
            mode: Operation.INSERT, Operation.UPDATE or Operation.UPSERT.
                An upsert checked here has no update selector; use
                validate_upsert() to include the selector's fields.

        Returns:
            Field errors in declaration order; empty when valid
        """
        mode = Operation(mode)
        if mode == Operation.INSERT:
            return self.validate_document(payload, rule_set)
        if mode == Operation.UPDATE:
            return self.validate_modifier(payload, rule_set)
        return self.validate_upsert(virtual_document(None, payload), payload, rule_set)

    def validate_document(self, document: dict[str, Any], rule_set: RuleSet) -> list[FieldError]:
        collector = _Collector(rule_set)
        self._check_subtree(document, "", list(rule_set), rule_set, document, collector)
        return collector.errors()

    def validate_modifier(
        self,
        modifier: dict[str, dict[str, Any]],
        rule_set: RuleSet,
    ) -> list[FieldError]:
        collector = _Collector(rule_set)
        for operator in SET_OPERATORS:
            field_map = modifier.get(operator, {})
            for key, value in field_map.items():
                self._check_set_key(key, value, rule_set, field_map, collector)
        self._check_unset(modifier.get(UNSET, {}), rule_set, collector)
        return collector.errors()

    def validate_upsert(
        self,
        virtual_document: dict[str, Any],
        modifier: dict[str, dict[str, Any]],
        rule_set: RuleSet,
    ) -> list[FieldError]:
        """Validate an upsert: the would-be inserted document plus any unsets.

        ``virtual_document`` is the union of the selector's equality fields
        and the set-style operators, so required fields are checked even
        though no stored document may exist yet.
        """
        collector = _Collector(rule_set)
        self._check_subtree(
            virtual_document, "", list(rule_set), rule_set, virtual_document, collector
        )
        self._check_unset(modifier.get(UNSET, {}), rule_set, collector)
        return collector.errors()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _check_set_key(
        self,
        key: str,
        value: Any,
        rule_set: RuleSet,
        payload: dict[str, Any],
        collector: _Collector,
    ) -> None:
        generic_key = generic(key)
        if not rule_set.is_allowed(generic_key):
            collector.add(self._error(ErrorType.NOT_ALLOWED, key, value, rule_set))
            return

        rule = rule_set.get(generic_key)
        if rule is not None:
            if value is None:
                if rule.required:
                    collector.add(self._error(ErrorType.REQUIRED, key, None, rule_set, rule))
                return
            error = self._check_value(rule, key, value, rule_set, payload)
            if error is not None:
                collector.add(error)
                return
            if rule.blackbox or rule.type == FieldType.ANY:
                return

        if isinstance(value, (dict, list)) and rule_set.opaque_ancestor(generic_key) is None:
            self._check_subtree(
                value, key, rule_set.descendants(generic_key), rule_set, payload, collector
            )

    def _check_unset(
        self,
        field_map: dict[str, Any],
        rule_set: RuleSet,
        collector: _Collector,
    ) -> None:
        for key in field_map:
            generic_key = generic(key)
            rule = rule_set.get(generic_key)
            if rule is None:
                if not rule_set.is_allowed(generic_key):
                    collector.add(self._error(ErrorType.NOT_ALLOWED, key, None, rule_set))
                continue
            if rule.required and not rule.has_default:
                collector.add(self._error(ErrorType.REQUIRED, key, None, rule_set, rule))

    def _check_subtree(
        self,
        container: Any,
        base_path: str,
        rules: list[FieldRule],
        rule_set: RuleSet,
        payload: dict[str, Any],
        collector: _Collector,
    ) -> None:
        """Check ``rules`` inside ``container``, which lives at ``base_path``.

        Rule names are generic; the part below ``base_path`` is expanded
        against the container so array element rules apply to each item.
        """
        base_generic = generic(base_path) if base_path else ""
        for rule in rules:
            relative = rule.name[len(base_generic) + 1:] if base_generic else rule.name
            for relative_path in expand(container, relative):
                path = join(base_path, relative_path)
                value = get_path(container, relative_path)
                if value is MISSING or value is None:
                    # the store assigns a missing _id on insert
                    if rule.required and not (path == "_id" and value is MISSING):
                        collector.add(self._error(ErrorType.REQUIRED, path, None, rule_set, rule))
                    continue
                error = self._check_value(rule, path, value, rule_set, payload)
                if error is not None:
                    collector.add(error)

        flagged: list[str] = []
        for relative_path, value in iter_nodes(container):
            path = join(base_path, relative_path)
            if any(path == f or is_ancestor(f, path) for f in flagged):
                continue
            if not rule_set.is_allowed(generic(path)):
                flagged.append(path)
                collector.add(self._error(ErrorType.NOT_ALLOWED, path, value, rule_set))

    def _check_value(
        self,
        rule: FieldRule,
        path: str,
        value: Any,
        rule_set: RuleSet,
        payload: dict[str, Any],
    ) -> FieldError | None:
        """Type, bounds and custom checks for one present value. First failure wins."""
        if not matches_type(value, rule.type):
            return self._error(ErrorType.TYPE, path, value, rule_set, rule)

        bound_error = self._check_bounds(rule, value)
        if bound_error is not None:
            return self._error(bound_error, path, value, rule_set, rule)

        if rule.custom is not None:
            try:
                message = rule.custom(value, payload)
            except Exception as e:
                logger.warning("Custom check for '%s' failed: %s", path, e)
                return self._error(ErrorType.CUSTOM, path, value, rule_set, rule)
            if message:
                return FieldError(name=path, type=ErrorType.CUSTOM, value=value, message=message)
        return None

    def _check_bounds(self, rule: FieldRule, value: Any) -> ErrorType | None:
        if rule.min is None and rule.max is None:
            return None

        if rule.type in (FieldType.NUMBER, FieldType.INTEGER):
            measured, low, high = value, ErrorType.MIN_NUMBER, ErrorType.MAX_NUMBER
        elif rule.type == FieldType.STRING:
            measured, low, high = len(value), ErrorType.MIN_STRING, ErrorType.MAX_STRING
        elif rule.type == FieldType.ARRAY:
            measured, low, high = len(value), ErrorType.MIN_COUNT, ErrorType.MAX_COUNT
        elif rule.type == FieldType.DATE:
            try:
                if rule.min is not None:
                    current, bound = _comparable_dates(value, rule.min)
                    if current < bound:
                        return ErrorType.MIN_DATE
                if rule.max is not None:
                    current, bound = _comparable_dates(value, rule.max)
                    if current > bound:
                        return ErrorType.MAX_DATE
            except TypeError:
                # naive vs aware datetimes cannot be ordered
                return ErrorType.TYPE
            return None
        else:
            return None

        if rule.min is not None and measured < rule.min:
            return low
        if rule.max is not None and measured > rule.max:
            return high
        return None

    def _error(
        self,
        error_type: ErrorType,
        path: str,
        value: Any,
        rule_set: RuleSet,
        rule: FieldRule | None = None,
    ) -> FieldError:
        label = rule_set.label(generic(path))
        return FieldError(
            name=path,
            type=error_type,
            value=value,
            message=self.interpolator.message(error_type, path, label, rule),
        )
