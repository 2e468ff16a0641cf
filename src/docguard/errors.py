"""Exceptions raised by the mutation pipeline.

Every pipeline error is raised before the store is called. StoreError is
raised by stores and passes through the gate unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docguard.validation.types import FieldError

EMPTY_MODIFIER_MESSAGE = (
    "After filtering out keys not in the schema, your modifier is now empty"
)


class DocGuardError(Exception):
    """Base class for all docguard errors."""
    pass


class SchemaResolutionError(DocGuardError):
    """No attached schema applies to the document and there is no fallback."""
    pass


class FieldValidationError(DocGuardError):
    """One or more fields failed validation.

    Attributes:
        message: Message of the first field error
        invalid_keys: Field errors in field-declaration order
        validation_context: Name of the context the errors were recorded under
    """

    def __init__(
        self,
        invalid_keys: list[FieldError],
        validation_context: str = "default",
    ):
        self.invalid_keys = list(invalid_keys)
        self.validation_context = validation_context
        self.message = (
            self.invalid_keys[0].message if self.invalid_keys else "Validation failed"
        )
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "invalidKeys": [e.to_dict() for e in self.invalid_keys],
        }


class EmptyModifierError(DocGuardError):
    """Every key of an update modifier was removed by filtering."""

    def __init__(self, message: str = EMPTY_MODIFIER_MESSAGE):
        self.message = message
        super().__init__(message)


class InvalidModifierError(DocGuardError):
    """The update payload is not a mapping of update operators."""
    pass


class InterceptorAbortError(DocGuardError):
    """A before-commit interceptor refused the mutation."""

    def __init__(self, interceptor: str, reason: str):
        self.interceptor = interceptor
        self.reason = reason
        self.message = reason
        super().__init__(reason)


class StoreError(DocGuardError):
    """Opaque failure reported by the underlying document store."""
    pass
