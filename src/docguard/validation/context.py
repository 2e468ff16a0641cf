"""Named validation contexts.

A process-wide table keyed by ``(collection_id, name)`` holding the errors
of the most recent validation recorded under that name. Each record call
replaces the stored list wholesale; errors are never merged across calls.

Concurrent operations that share a name may overwrite each other's result.
Use distinct names, or read ``FieldValidationError.invalid_keys`` from the
raised error, when isolation matters.
"""

from docguard.validation.types import FieldError

DEFAULT_CONTEXT = "default"


class ValidationContextStore:
    """Process-wide store of the latest errors per collection and context name.

    Example:
        ValidationContextStore.record("books", "default", errors)
        ctx = ValidationContextStore.context("books")
        ctx.is_valid()
    """

    _contexts: dict[tuple[str, str], tuple[FieldError, ...]] = {}

    @classmethod
    def record(cls, collection_id: str, name: str, errors: list[FieldError]) -> None:
        """Replace the stored errors for ``(collection_id, name)``."""
        cls._contexts[(collection_id, name)] = tuple(errors)

    @classmethod
    def errors(cls, collection_id: str, name: str = DEFAULT_CONTEXT) -> list[FieldError]:
        return list(cls._contexts.get((collection_id, name), ()))

    @classmethod
    def context(
        cls,
        collection_id: str,
        name: str = DEFAULT_CONTEXT,
    ) -> "NamedValidationContext":
        return NamedValidationContext(collection_id, name)

    @classmethod
    def names(cls, collection_id: str) -> list[str]:
        return sorted(name for cid, name in cls._contexts if cid == collection_id)

    @classmethod
    def clear(cls) -> None:
        """Clear every context. Primarily for testing."""
        cls._contexts.clear()


class NamedValidationContext:
    """Read handle on one named context; always reflects the latest recorded call."""

    def __init__(self, collection_id: str, name: str = DEFAULT_CONTEXT):
        self.collection_id = collection_id
        self.name = name

    def errors(self) -> list[FieldError]:
        return ValidationContextStore.errors(self.collection_id, self.name)

    def is_valid(self) -> bool:
        return not self.errors()

    def invalid_keys(self) -> list[dict[str, str]]:
        return [error.to_dict() for error in self.errors()]

    def key_is_invalid(self, key: str) -> bool:
        return any(error.name == key for error in self.errors())

    def key_error_message(self, key: str) -> str:
        for error in self.errors():
            if error.name == key:
                return error.message
        return ""

    def reset(self) -> None:
        ValidationContextStore.record(self.collection_id, self.name, [])

    def __repr__(self) -> str:
        return (
            f"NamedValidationContext({self.collection_id!r}, {self.name!r}, "
            f"errors={len(self.errors())})"
        )
