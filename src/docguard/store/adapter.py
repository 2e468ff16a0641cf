"""DocumentStore protocol: the interface the gate commits through."""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of an upsert.

    Attributes:
        number_affected: Documents inserted or modified (0 or 1)
        inserted_id: ID of the new document when the upsert inserted, else None
    """

    number_affected: int
    inserted_id: Any = None

    @property
    def inserted(self) -> bool:
        return self.inserted_id is not None


@runtime_checkable
class DocumentStore(Protocol):
    """Interface a document store must implement to sit behind a MutationGate.

    Stores report transport or constraint failures by raising StoreError;
    the gate propagates it unchanged.
    """

    async def insert(self, document: dict[str, Any]) -> Any: ...

    async def update(
        self,
        selector: Any,
        modifier: dict[str, dict[str, Any]],
        upsert: bool = False,
    ) -> int | UpsertResult: ...

    async def find(self, selector: Any = None) -> list[dict[str, Any]]: ...

    async def find_one(self, selector: Any = None) -> dict[str, Any] | None: ...
