"""Per-collection schema registry.

Bindings are kept in attach order. Bindings that share a structurally equal
selector form one selector group; a group's rule sets are merged in attach
order, so attaching again under the same selector extends that group.

Attach is expected to happen during setup. It is not atomic with respect to
a concurrent ``resolve``; callers that attach while mutations are in flight
must provide their own ordering.
"""

import logging
from dataclasses import dataclass
from typing import Any

from docguard.errors import SchemaResolutionError
from docguard.schema.paths import MISSING, get_path
from docguard.schema.types import RuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaBinding:
    """A rule set plus the optional selector that guards when it applies."""

    rule_set: RuleSet
    selector: dict[str, Any] | None = None

    def matches(self, document: dict[str, Any] | None) -> bool:
        """True when every selector key has the same value in ``document``."""
        if not self.selector:
            return True
        if not document:
            return False
        for key, expected in self.selector.items():
            value = get_path(document, key)
            if value is MISSING or value != expected:
                return False
        return True


@dataclass(frozen=True)
class _Group:
    selector: dict[str, Any] | None
    rule_set: RuleSet


class SchemaRegistry:
    """Holds the schema bindings attached to one collection.

    Example:
        registry = SchemaRegistry()
        registry.attach(product_rules, selector={"type": "simple"})
        registry.attach(variant_rules, selector={"type": "variant"})
        rule_set = registry.resolve({"type": "variant", "title": "x"})
    """

    def __init__(self) -> None:
        self._bindings: list[SchemaBinding] = []
        self._combined: RuleSet | None = None
        self._groups: list[_Group] | None = None

    @property
    def bindings(self) -> tuple[SchemaBinding, ...]:
        return tuple(self._bindings)

    def __bool__(self) -> bool:
        return bool(self._bindings)

    def attach(
        self,
        rule_set: RuleSet,
        selector: dict[str, Any] | None = None,
        replace: bool = False,
    ) -> SchemaBinding:
        """Append a binding; with ``replace`` first drop bindings with an equal selector."""
        selector = dict(selector) if selector else None
        if replace:
            before = len(self._bindings)
            self._bindings = [b for b in self._bindings if b.selector != selector]
            logger.debug(
                "Replaced %d binding(s) for selector %r", before - len(self._bindings), selector
            )
        binding = SchemaBinding(rule_set=rule_set, selector=selector)
        self._bindings.append(binding)
        self._invalidate()
        logger.debug("Attached schema with %d field(s), selector %r", len(rule_set), selector)
        return binding

    def detach(self, selector: dict[str, Any] | None = None) -> int:
        """Remove every binding whose selector equals ``selector``. Returns the count removed."""
        selector = dict(selector) if selector else None
        before = len(self._bindings)
        self._bindings = [b for b in self._bindings if b.selector != selector]
        removed = before - len(self._bindings)
        if removed:
            self._invalidate()
            logger.debug("Detached %d binding(s) for selector %r", removed, selector)
        return removed

    @property
    def guards(self) -> list[dict[str, Any] | None]:
        """One entry per distinct selector group, in first-attach order."""
        return [group.selector for group in self._selector_groups()]

    def combined(self) -> RuleSet:
        """Union of every attached rule set; later attaches override earlier fields."""
        if self._combined is None:
            self._combined = RuleSet().merge(*(b.rule_set for b in self._bindings))
        return self._combined

    def resolve(
        self,
        document: dict[str, Any] | None = None,
        explicit_selector: dict[str, Any] | None = None,
    ) -> RuleSet:
        """Resolve the rule set that applies to ``document``.

        An explicit selector picks the first guarded group it satisfies;
        otherwise the document's own fields are matched against each group's
        selector. The matching group is merged over the selector-less
        bindings. Without a match, the selector-less bindings alone apply.

        Raises:
            SchemaResolutionError: No binding is attached, or guarded
                bindings exist but none matches and there is no fallback
        """
        if not self._bindings:
            raise SchemaResolutionError("No schema is attached to this collection")

        groups = self._selector_groups()
        fallback = next((g for g in groups if g.selector is None), None)
        target = explicit_selector if explicit_selector else document

        for group in groups:
            if group.selector is None:
                continue
            if SchemaBinding(group.rule_set, group.selector).matches(target):
                logger.debug("Resolved schema for selector %r", group.selector)
                if fallback is None:
                    return group.rule_set
                return fallback.rule_set.merge(group.rule_set)

        if fallback is None:
            raise SchemaResolutionError(
                "No schema matches the document and no selector-less schema is attached"
                + (f" (selector {explicit_selector!r})" if explicit_selector else "")
            )
        return fallback.rule_set

    def _selector_groups(self) -> list[_Group]:
        if self._groups is None:
            selectors: list[dict[str, Any] | None] = []
            members: list[list[RuleSet]] = []
            for binding in self._bindings:
                for index, selector in enumerate(selectors):
                    if selector == binding.selector:
                        members[index].append(binding.rule_set)
                        break
                else:
                    selectors.append(binding.selector)
                    members.append([binding.rule_set])
            self._groups = [
                _Group(selector=selector, rule_set=RuleSet().merge(*rule_sets))
                for selector, rule_sets in zip(selectors, members)
            ]
        return self._groups

    def _invalidate(self) -> None:
        self._combined = None
        self._groups = None
