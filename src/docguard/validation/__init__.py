"""Validation for docguard.

- types: Operation, OperationContext, FieldError and friends
- validator: field-level checks for documents, modifiers and upserts
- context: named, process-wide holders of the latest validation errors
- messages: human-readable error messages
"""

from docguard.validation.context import (
    DEFAULT_CONTEXT,
    NamedValidationContext,
    ValidationContextStore,
)
from docguard.validation.messages import DEFAULT_TEMPLATES, MessageInterpolator
from docguard.validation.types import (
    AutoValueContext,
    Caller,
    ErrorType,
    FieldError,
    Operation,
    OperationContext,
)
from docguard.validation.validator import Validator, matches_type

__all__ = [
    # Types
    "AutoValueContext",
    "Caller",
    "ErrorType",
    "FieldError",
    "Operation",
    "OperationContext",
    # Validator
    "Validator",
    "matches_type",
    # Contexts
    "DEFAULT_CONTEXT",
    "NamedValidationContext",
    "ValidationContextStore",
    # Messages
    "DEFAULT_TEMPLATES",
    "MessageInterpolator",
]
