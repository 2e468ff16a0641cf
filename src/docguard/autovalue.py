"""Computed field values and static defaults.

Auto values run after cleaning and before defaults, so a computed value
always wins over a static ``default_value``. Auto-value functions receive an
explicit AutoValueContext; they see nothing but that context and the
payload being prepared.
"""

from copy import deepcopy
from typing import Any

from docguard.modifier import (
    SET,
    SET_ON_INSERT,
    UNSET,
    inject,
    lookup,
    virtual_document,
)
from docguard.schema.paths import MISSING, get_path, is_ancestor, parent, set_path
from docguard.schema.types import FieldRule, RuleSet
from docguard.validation.types import AutoValueContext, OperationContext


def _present(value: Any) -> Any:
    return None if value is MISSING else value


class AutoValueEngine:
    """Computes ``auto_value`` fields and applies ``default_value`` on insert."""

    def apply(
        self,
        payload: dict[str, Any],
        rule_set: RuleSet,
        ctx: OperationContext,
        is_modifier: bool = False,
    ) -> dict[str, Any]:
        """Return a copy of ``payload`` with auto values applied.

        For documents the value is written to the field directly; for
        modifiers it is injected into "$set". A None result leaves the
        payload untouched.
        """
        result = deepcopy(payload)
        for rule in rule_set:
            if rule.auto_value is None or rule.is_array_element:
                continue
            if is_modifier:
                self._apply_to_modifier(result, rule, ctx)
            else:
                self._apply_to_document(result, rule, ctx)
        return result

    def _apply_to_document(
        self,
        document: dict[str, Any],
        rule: FieldRule,
        ctx: OperationContext,
    ) -> None:
        current = get_path(document, rule.name)
        value = rule.auto_value(
            AutoValueContext(
                operation=ctx,
                key=rule.name,
                value=_present(current),
                is_set=current is not MISSING,
                operator=None,
                lookup=lambda path: _present(get_path(document, path)),
            )
        )
        if value is not None:
            set_path(document, rule.name, value)

    def _apply_to_modifier(
        self,
        modifier: dict[str, dict[str, Any]],
        rule: FieldRule,
        ctx: OperationContext,
    ) -> None:
        current = lookup(modifier, rule.name)
        if current is not MISSING:
            operator = SET
        elif rule.name in modifier.get(UNSET, {}):
            operator = UNSET
        else:
            operator = None
        value = rule.auto_value(
            AutoValueContext(
                operation=ctx,
                key=rule.name,
                value=_present(current),
                is_set=current is not MISSING,
                operator=operator,
                lookup=lambda path: _present(lookup(modifier, path)),
            )
        )
        if value is not None:
            inject(modifier, SET, rule.name, value)

    def apply_defaults(self, document: dict[str, Any], rule_set: RuleSet) -> dict[str, Any]:
        """Return a copy of an insert document with absent defaulted fields filled in.

        Nested defaults apply only when their parent object exists, so rules
        are visited in declaration order (parents before children).
        """
        result = deepcopy(document)
        for rule in self._default_rules(rule_set):
            head = parent(rule.name)
            if head and not isinstance(get_path(result, head), dict):
                continue
            if get_path(result, rule.name) is MISSING:
                set_path(result, rule.name, deepcopy(rule.default_value))
        return result

    def apply_upsert_defaults(
        self,
        modifier: dict[str, dict[str, Any]],
        selector: Any,
        rule_set: RuleSet,
    ) -> dict[str, dict[str, Any]]:
        """Return a copy of ``modifier`` with defaults added under "$setOnInsert".

        A field is defaulted when neither the selector nor the set-style
        operators give it a value. Defaults nested inside an object that
        "$set" assigns whole are written into that object instead.
        """
        result = deepcopy(modifier)
        virtual = virtual_document(selector, result)
        for rule in self._default_rules(rule_set):
            head = parent(rule.name)
            if head and not isinstance(get_path(virtual, head), dict):
                continue
            if get_path(virtual, rule.name) is not MISSING:
                continue
            value = deepcopy(rule.default_value)
            in_set_object = any(
                is_ancestor(key, rule.name) and isinstance(existing, dict)
                for key, existing in result.get(SET, {}).items()
            )
            inject(result, SET if in_set_object else SET_ON_INSERT, rule.name, value)
            set_path(virtual, rule.name, deepcopy(value))
        return result

    def _default_rules(self, rule_set: RuleSet) -> list[FieldRule]:
        return [r for r in rule_set if r.has_default and not r.is_array_element]
