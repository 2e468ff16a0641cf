"""Interceptor types.

An interceptor is a named function run after validation and before the
store is called. It receives the prepared MutationState and returns None
to let the mutation proceed, or a reason string to abort it.
"""

from dataclasses import dataclass, field
from typing import Any

from docguard.validation.types import Operation


@dataclass
class InterceptorDefinition:
    """Attachment of a registered interceptor to a collection.

    Attributes:
        name: Registered interceptor name (e.g., "rejectArchived")
        on: Operations this interceptor applies to
        description: Human-readable description
    """

    name: str
    on: list[Operation] = field(
        default_factory=lambda: [Operation.INSERT, Operation.UPDATE, Operation.UPSERT]
    )
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InterceptorDefinition":
        """Create InterceptorDefinition from YAML/JSON dict."""
        operations = data.get("on", ["insert", "update", "upsert"])
        if isinstance(operations, str):
            operations = [operations]

        return cls(
            name=data["name"],
            on=[Operation(op) for op in operations],
            description=data.get("description", ""),
        )
