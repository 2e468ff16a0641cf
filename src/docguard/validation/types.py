"""Core types shared by the cleaning, auto-value and validation stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class Operation(Enum):
    """The kind of mutation being processed."""

    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"


class ErrorType(str, Enum):
    """Machine-readable kind of a field-level validation failure."""

    REQUIRED = "required"
    TYPE = "type"
    MIN_NUMBER = "minNumber"
    MAX_NUMBER = "maxNumber"
    MIN_STRING = "minString"
    MAX_STRING = "maxString"
    MIN_DATE = "minDate"
    MAX_DATE = "maxDate"
    MIN_COUNT = "minCount"
    MAX_COUNT = "maxCount"
    NOT_ALLOWED = "notAllowed"
    CUSTOM = "custom"


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation error.

    Attributes:
        name: Dotted path of the offending field
        type: ErrorType of the failure
        value: The value that failed (None for missing fields)
        message: Human-readable message built from the field label
    """

    name: str
    type: ErrorType
    value: Any = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class Caller:
    """Identity of whoever issued the mutation, resolved outside this library.

    Attributes:
        user_id: The authenticated user's ID, if any
        trusted: True for server-side code; only trusted callers may skip validation
    """

    user_id: str | None = None
    trusted: bool = True


@dataclass(frozen=True)
class OperationContext:
    """Read-only facts about one mutation, handed to auto-value functions.

    Built once per call and never shared between calls.
    """

    kind: Operation
    user_id: str | None = None
    is_from_trusted_code: bool = True
    doc_id: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_insert(self) -> bool:
        return self.kind == Operation.INSERT

    @property
    def is_update(self) -> bool:
        return self.kind in (Operation.UPDATE, Operation.UPSERT)

    @property
    def is_upsert(self) -> bool:
        return self.kind == Operation.UPSERT


@dataclass(frozen=True)
class AutoValueContext:
    """What an auto-value function sees for one field.

    Attributes:
        operation: The OperationContext of the current call
        key: Dotted path of the field being computed
        value: Current value in the payload, or None if absent
        is_set: Whether the payload supplies a value for this field
        operator: None for inserts, "$set" or "$unset" for modifiers
        lookup: Reads another field from the same payload
    """

    operation: OperationContext
    key: str
    value: Any = None
    is_set: bool = False
    operator: str | None = None
    lookup: Callable[[str], Any] | None = None

    def field(self, path: str) -> Any:
        """Return the payload value of another field (None if absent)."""
        if self.lookup is None:
            return None
        return self.lookup(path)

    @property
    def user_id(self) -> str | None:
        return self.operation.user_id

    @property
    def is_insert(self) -> bool:
        return self.operation.is_insert

    @property
    def is_update(self) -> bool:
        return self.operation.is_update

    @property
    def is_upsert(self) -> bool:
        return self.operation.is_upsert

    @property
    def is_from_trusted_code(self) -> bool:
        return self.operation.is_from_trusted_code

    @property
    def doc_id(self) -> Any:
        return self.operation.doc_id

    @property
    def extra(self) -> dict[str, Any]:
        return self.operation.extra
