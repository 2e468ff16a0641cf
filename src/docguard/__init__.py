"""docguard: schema-enforced inserts, updates and upserts for document stores.

Usage:
    from docguard import Caller, MemoryStore, SchemaCollection, rule_set_from_dict

    books = SchemaCollection("books", MemoryStore())
    books.attach_schema(rule_set_from_dict({
        "title": {"type": str, "label": "Title", "max": 200},
        "author": {"type": str, "label": "Author"},
        "copies": {"type": int, "label": "Number of copies", "min": 0},
        "summary": {"type": str, "optional": True, "max": 1000},
    }))

    await books.insert({"title": " Ulysses ", "author": "Joyce", "copies": "2"})
"""

from docguard.collection import SchemaCollection
from docguard.config import Settings
from docguard.errors import (
    EMPTY_MODIFIER_MESSAGE,
    DocGuardError,
    EmptyModifierError,
    FieldValidationError,
    InterceptorAbortError,
    InvalidModifierError,
    SchemaResolutionError,
    StoreError,
)
from docguard.gate import MutationGate, MutationOptions, MutationState, Stage
from docguard.interceptors import InterceptorRegistry, interceptor
from docguard.registry import SchemaBinding, SchemaRegistry
from docguard.schema import (
    CleanOptions,
    FieldRule,
    FieldType,
    RuleSet,
    load_bindings,
    load_rule_set,
    rule_set_from_dict,
)
from docguard.store import DocumentStore, MemoryStore, UpsertResult
from docguard.validation import (
    AutoValueContext,
    Caller,
    ErrorType,
    FieldError,
    Operation,
    OperationContext,
    ValidationContextStore,
)

__all__ = [
    # Collections
    "SchemaCollection",
    "MutationGate",
    "MutationOptions",
    "MutationState",
    "Stage",
    "Settings",
    # Schemas
    "CleanOptions",
    "FieldRule",
    "FieldType",
    "RuleSet",
    "SchemaBinding",
    "SchemaRegistry",
    "load_bindings",
    "load_rule_set",
    "rule_set_from_dict",
    # Validation
    "AutoValueContext",
    "Caller",
    "ErrorType",
    "FieldError",
    "Operation",
    "OperationContext",
    "ValidationContextStore",
    # Interceptors
    "InterceptorRegistry",
    "interceptor",
    # Stores
    "DocumentStore",
    "MemoryStore",
    "UpsertResult",
    # Errors
    "EMPTY_MODIFIER_MESSAGE",
    "DocGuardError",
    "EmptyModifierError",
    "FieldValidationError",
    "InterceptorAbortError",
    "InvalidModifierError",
    "SchemaResolutionError",
    "StoreError",
]
