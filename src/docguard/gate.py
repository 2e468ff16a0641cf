"""MutationGate: the insert/update/upsert pipeline in front of a DocumentStore.

Lifecycle per call:
1. Resolve the rule set (SchemaRegistry)
2. Clean the payload (Cleaner)
3. Apply auto values (AutoValueEngine)
4. Apply defaults (inserts and upserts only)
5. Validate, then run before-commit interceptors
6. Commit to the store, or reject before the store is called

Every stage before Commit is synchronous. The only suspension point is the
store call, so a rejected mutation never reaches the store.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable

from docguard.autovalue import AutoValueEngine
from docguard.cleaning import Cleaner
from docguard.config import Settings
from docguard.errors import EmptyModifierError, FieldValidationError
from docguard.interceptors import InterceptorDefinition, InterceptorService
from docguard.modifier import (
    doc_id_from_selector,
    is_empty,
    normalize_modifier,
    virtual_document,
)
from docguard.registry import SchemaRegistry
from docguard.schema.types import CleanOptions, RuleSet
from docguard.store.adapter import DocumentStore, UpsertResult
from docguard.validation.context import ValidationContextStore
from docguard.validation.types import Caller, FieldError, Operation, OperationContext
from docguard.validation.validator import Validator

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Pipeline state of one mutation."""

    RESOLVE = "resolve"
    CLEAN = "clean"
    AUTO_VALUE = "autoValue"
    DEFAULT = "default"
    VALIDATE = "validate"
    COMMIT = "commit"
    REJECT = "reject"


_OPTION_ALIASES = {
    "validationContext": "validation_context",
    "autoConvert": "auto_convert",
    "trimStrings": "trim_strings",
    "removeEmptyStrings": "remove_empty_strings",
}


@dataclass(frozen=True)
class MutationOptions:
    """Per-call options.

    Attributes:
        validate: Set False to skip validation (honoured for trusted callers only)
        validation_context: Name of the validation context to record errors under
        selector: Explicit selector used to pick the schema binding
        filter: Clean override, see CleanOptions
        auto_convert: Clean override
        trim_strings: Clean override
        remove_empty_strings: Clean override
        upsert: Insert when no document matches the update selector
        bypass: Trusted callers only: skip the whole pipeline and forward the raw payload
        extra: Caller-supplied values exposed to auto-value functions
    """

    validate: bool = True
    validation_context: str | None = None
    selector: dict[str, Any] | None = None
    filter: bool | None = None
    auto_convert: bool | None = None
    trim_strings: bool | None = None
    remove_empty_strings: bool | None = None
    upsert: bool = False
    bypass: bool = False
    extra: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "MutationOptions":
        """Create MutationOptions from a dict (camelCase or snake_case keys).

        Raises:
            ValueError: If a key is not a known option
        """
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown mutation option: {key}")
            values[name] = value
        return cls(**values)

    @property
    def clean(self) -> CleanOptions:
        return CleanOptions(
            filter=self.filter,
            auto_convert=self.auto_convert,
            trim_strings=self.trim_strings,
            remove_empty_strings=self.remove_empty_strings,
        )


@dataclass
class MutationState:
    """Everything the pipeline knows about one mutation; handed to interceptors.

    Attributes:
        collection_id: Name of the collection
        kind: INSERT, UPDATE or UPSERT
        caller: Who issued the mutation
        options: Per-call options
        payload: Document (insert) or modifier (update), as prepared so far
        selector: Update selector; None for inserts
        rule_set: Resolved rule set, once resolved
        ctx: OperationContext handed to auto-value functions
        errors: Field errors from the Validate stage
        stage: Current pipeline stage
    """

    collection_id: str
    kind: Operation
    caller: Caller
    options: MutationOptions
    payload: dict[str, Any]
    selector: Any = None
    rule_set: RuleSet | None = None
    ctx: OperationContext | None = None
    errors: list[FieldError] = field(default_factory=list)
    stage: Stage = Stage.RESOLVE


class MutationGate:
    """Runs the pipeline for one collection and commits through its store.

    Example:
        gate = MutationGate("books", registry, MemoryStore())
        book_id = await gate.insert({"title": "Ulysses", "copies": 2})
        await gate.update(book_id, {"$set": {"copies": 3}})
    """

    def __init__(
        self,
        collection_id: str,
        registry: SchemaRegistry,
        store: DocumentStore,
        settings: Settings | None = None,
        interceptors: list[InterceptorDefinition] | None = None,
    ):
        self.collection_id = collection_id
        self.registry = registry
        self.store = store
        self.settings = settings or Settings()
        self.interceptors = interceptors if interceptors is not None else []
        self.cleaner = Cleaner()
        self.auto_values = AutoValueEngine()
        self.validator = Validator()
        self.interceptor_service = InterceptorService()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def insert(
        self,
        document: dict[str, Any],
        caller: Caller | None = None,
        options: MutationOptions | None = None,
    ) -> Any:
        """Insert a document. Returns the store's new document ID.

        Raises:
            SchemaResolutionError: No attached schema applies
            FieldValidationError: The document is invalid
            InterceptorAbortError: A before-commit interceptor refused
            StoreError: Raised by the store, unchanged
        """
        options = options or MutationOptions()
        if self._passes_through(Operation.INSERT, caller, options):
            return await self.store.insert(document)

        state = self.prepare_insert(document, caller, options)
        return await self._commit(state)

    async def update(
        self,
        selector: Any,
        modifier: dict[str, Any],
        caller: Caller | None = None,
        options: MutationOptions | None = None,
    ) -> int:
        """Update documents matching ``selector``. Returns the number affected.

        With ``options.upsert`` the modifier is also validated as the
        document it would insert.

        Raises:
            InvalidModifierError: ``modifier`` is not a mapping of operators
            EmptyModifierError: Filtering removed every key of the modifier
            plus the errors listed on ``insert``
        """
        result = await self._update(selector, modifier, caller, options or MutationOptions())
        if isinstance(result, UpsertResult):
            return result.number_affected
        return result

    async def upsert(
        self,
        selector: Any,
        modifier: dict[str, Any],
        caller: Caller | None = None,
        options: MutationOptions | None = None,
    ) -> UpsertResult:
        """Update the matching document or insert one. Same errors as ``update``."""
        options = replace(options or MutationOptions(), upsert=True)
        result = await self._update(selector, modifier, caller, options)
        if isinstance(result, UpsertResult):
            return result
        return UpsertResult(number_affected=result)

    def prepare_insert(
        self,
        document: dict[str, Any],
        caller: Caller | None = None,
        options: MutationOptions | None = None,
    ) -> MutationState:
        """Run every stage up to Commit for an insert and return the prepared state."""
        if not isinstance(document, dict):
            raise TypeError("Document must be a mapping")
        caller = caller or Caller()
        options = options or MutationOptions()
        state = MutationState(
            collection_id=self.collection_id,
            kind=Operation.INSERT,
            caller=caller,
            options=options,
            payload=document,
            ctx=self._operation_context(Operation.INSERT, caller, options, document.get("_id")),
        )
        return self._run(state, lambda: self._prepare_document(state))

    def prepare_update(
        self,
        selector: Any,
        modifier: dict[str, Any],
        caller: Caller | None = None,
        options: MutationOptions | None = None,
    ) -> MutationState:
        """Run every stage up to Commit for an update or upsert."""
        caller = caller or Caller()
        options = options or MutationOptions()
        kind = Operation.UPSERT if options.upsert else Operation.UPDATE
        state = MutationState(
            collection_id=self.collection_id,
            kind=kind,
            caller=caller,
            options=options,
            payload=modifier,
            selector=selector,
            ctx=self._operation_context(kind, caller, options, doc_id_from_selector(selector)),
        )
        return self._run(state, lambda: self._prepare_modifier(state))

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _run(self, state: MutationState, prepare: Callable[[], None]) -> MutationState:
        try:
            prepare()
            self.interceptor_service.run(self.interceptors, state)
        except Exception as e:
            self._advance(state, Stage.REJECT)
            logger.debug("%s on %s rejected: %s", state.kind.value, self.collection_id, e)
            raise
        return state

    def _prepare_document(self, state: MutationState) -> None:
        rule_set = self.registry.resolve(state.payload, explicit_selector=state.options.selector)
        state.rule_set = rule_set

        self._advance(state, Stage.CLEAN)
        state.payload = self.cleaner.clean_document(
            state.payload, rule_set, self._clean_options(state)
        )

        self._advance(state, Stage.AUTO_VALUE)
        state.payload = self.auto_values.apply(state.payload, rule_set, state.ctx)

        self._advance(state, Stage.DEFAULT)
        state.payload = self.auto_values.apply_defaults(state.payload, rule_set)

        self._advance(state, Stage.VALIDATE)
        self._validate(state, lambda: self.validator.validate_document(state.payload, rule_set))

    def _prepare_modifier(self, state: MutationState) -> None:
        modifier = normalize_modifier(state.payload)
        rule_set = self.registry.resolve(
            virtual_document(state.selector, modifier),
            explicit_selector=state.options.selector,
        )
        state.rule_set = rule_set

        self._advance(state, Stage.CLEAN)
        modifier = self.cleaner.clean_modifier(modifier, rule_set, self._clean_options(state))
        if is_empty(modifier):
            logger.info("Empty modifier after cleaning on %s", self.collection_id)
            raise EmptyModifierError()

        self._advance(state, Stage.AUTO_VALUE)
        modifier = self.auto_values.apply(modifier, rule_set, state.ctx, is_modifier=True)

        self._advance(state, Stage.DEFAULT)
        if state.kind == Operation.UPSERT:
            modifier = self.auto_values.apply_upsert_defaults(modifier, state.selector, rule_set)
        state.payload = modifier

        self._advance(state, Stage.VALIDATE)
        if state.kind == Operation.UPSERT:
            self._validate(
                state,
                lambda: self.validator.validate_upsert(
                    virtual_document(state.selector, modifier), modifier, rule_set
                ),
            )
        else:
            self._validate(state, lambda: self.validator.validate_modifier(modifier, rule_set))

    def _validate(self, state: MutationState, run: Callable[[], list[FieldError]]) -> None:
        """Record the outcome in the named context and raise on errors.

        ``validate=False`` is honoured only for trusted callers.
        """
        context_name = state.options.validation_context or self.settings.default_context

        if not state.options.validate:
            if state.caller.trusted:
                logger.debug("Trusted caller skipped validation on %s", self.collection_id)
                ValidationContextStore.record(self.collection_id, context_name, [])
                return
            logger.debug(
                "Ignoring validate=False from untrusted caller on %s", self.collection_id
            )

        state.errors = run()
        ValidationContextStore.record(self.collection_id, context_name, state.errors)
        if state.errors:
            logger.info(
                "%s on %s failed validation: %s",
                state.kind.value,
                self.collection_id,
                ", ".join(f"{e.name} ({e.type.value})" for e in state.errors),
            )
            raise FieldValidationError(state.errors, validation_context=context_name)

    async def _update(
        self,
        selector: Any,
        modifier: dict[str, Any],
        caller: Caller | None,
        options: MutationOptions,
    ) -> int | UpsertResult:
        kind = Operation.UPSERT if options.upsert else Operation.UPDATE
        if self._passes_through(kind, caller, options):
            return await self.store.update(selector, modifier, upsert=options.upsert)

        state = self.prepare_update(selector, modifier, caller, options)
        return await self._commit(state)

    async def _commit(self, state: MutationState) -> Any:
        self._advance(state, Stage.COMMIT)
        if state.kind == Operation.INSERT:
            return await self.store.insert(state.payload)
        return await self.store.update(
            state.selector, state.payload, upsert=state.kind == Operation.UPSERT
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _clean_options(self, state: MutationState) -> CleanOptions:
        return CleanOptions.layered(
            state.options.clean, state.rule_set.clean, self.settings.clean
        )

    def _operation_context(
        self,
        kind: Operation,
        caller: Caller,
        options: MutationOptions,
        doc_id: Any,
    ) -> OperationContext:
        return OperationContext(
            kind=kind,
            user_id=caller.user_id,
            is_from_trusted_code=caller.trusted,
            doc_id=doc_id,
            extra=dict(options.extra or {}),
        )

    def _advance(self, state: MutationState, stage: Stage) -> None:
        state.stage = stage
        logger.debug("%s on %s: %s", state.kind.value, self.collection_id, stage.value)

    def _passes_through(
        self, kind: Operation, caller: Caller | None, options: MutationOptions
    ) -> bool:
        """True when the payload goes to the store unprepared.

        ``bypass`` is honoured only for trusted callers.
        """
        if not self.registry:
            logger.debug("No schema attached to %s, forwarding %s", self.collection_id, kind.value)
            return True
        if not options.bypass:
            return False
        if caller is not None and not caller.trusted:
            logger.debug(
                "Ignoring bypass=True from untrusted caller on %s", self.collection_id
            )
            return False
        logger.debug("Bypassing pipeline for %s on %s", kind.value, self.collection_id)
        return True
