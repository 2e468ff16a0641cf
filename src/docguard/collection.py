"""SchemaCollection: a store wrapped by a schema registry and a mutation gate.

Usage:
    books = SchemaCollection("books", MemoryStore())
    books.attach_schema(rule_set_from_dict({"title": str, "copies": int}))

    book_id = await books.insert({"title": "Ulysses", "copies": "2"})
    await books.update(book_id, {"$set": {"copies": 3}}, caller=Caller("u1", trusted=False))

Options are passed as keyword arguments (``validate=False``,
``validation_context="form"``, ``filter=False`` and so on; camelCase
spellings are accepted too). Reads go straight to the store.
"""

import logging
from typing import Any

from docguard.config import Settings
from docguard.gate import MutationGate, MutationOptions
from docguard.interceptors import InterceptorDefinition
from docguard.registry import SchemaBinding, SchemaRegistry
from docguard.schema.types import RuleSet
from docguard.store.adapter import DocumentStore, UpsertResult
from docguard.validation.context import NamedValidationContext, ValidationContextStore
from docguard.validation.types import Caller, Operation

logger = logging.getLogger(__name__)


class SchemaCollection:
    """A named collection whose mutations pass through a MutationGate."""

    def __init__(self, name: str, store: DocumentStore, settings: Settings | None = None):
        self.name = name
        self.store = store
        self.settings = settings or Settings()
        self.registry = SchemaRegistry()
        self.gate = MutationGate(name, self.registry, store, self.settings)

    # -------------------------------------------------------------------------
    # Schemas
    # -------------------------------------------------------------------------

    def attach_schema(
        self,
        rule_set: RuleSet,
        selector: dict[str, Any] | None = None,
        replace: bool = False,
    ) -> SchemaBinding:
        return self.registry.attach(rule_set, selector=selector, replace=replace)

    def detach_schema(self, selector: dict[str, Any] | None = None) -> int:
        return self.registry.detach(selector)

    def schema(
        self,
        doc: dict[str, Any] | None = None,
        selector: dict[str, Any] | None = None,
    ) -> RuleSet | None:
        """Rule set for ``doc``/``selector``, or the combined rule set when neither is given.

        Returns None when no schema is attached.
        """
        if not self.registry:
            return None
        if doc is None and selector is None:
            return self.registry.combined()
        return self.registry.resolve(doc, explicit_selector=selector)

    @property
    def guards(self) -> list[dict[str, Any] | None]:
        return self.registry.guards

    def validation_context(self, name: str | None = None) -> NamedValidationContext:
        return ValidationContextStore.context(self.name, name or self.settings.default_context)

    def add_interceptor(
        self,
        name: str,
        on: list[Operation | str] | None = None,
        description: str = "",
    ) -> InterceptorDefinition:
        """Attach a registered interceptor; interceptors run in attach order."""
        definition = InterceptorDefinition(name=name, description=description)
        if on is not None:
            definition.on = [Operation(op) for op in on]
        self.gate.interceptors.append(definition)
        logger.debug("Added interceptor '%s' to %s", name, self.name)
        return definition

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def insert(
        self,
        document: dict[str, Any],
        caller: Caller | None = None,
        **options: Any,
    ) -> Any:
        return await self.gate.insert(document, caller, MutationOptions.from_dict(options))

    async def update(
        self,
        query: Any,
        modifier: dict[str, Any],
        caller: Caller | None = None,
        **options: Any,
    ) -> int:
        """Update the document matching ``query``.

        ``selector=`` among the options picks the schema, not the document.
        """
        return await self.gate.update(
            query, modifier, caller, MutationOptions.from_dict(options)
        )

    async def upsert(
        self,
        query: Any,
        modifier: dict[str, Any],
        caller: Caller | None = None,
        **options: Any,
    ) -> UpsertResult:
        return await self.gate.upsert(
            query, modifier, caller, MutationOptions.from_dict(options)
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find(self, selector: Any = None) -> list[dict[str, Any]]:
        return await self.store.find(selector)

    async def find_one(self, selector: Any = None) -> dict[str, Any] | None:
        return await self.store.find_one(selector)
