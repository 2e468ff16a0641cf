"""In-process DocumentStore with Mongo-style selectors and modifiers.

Intended for tests and embedding. Documents are deep-copied on the way in
and out so callers never share state with the store.
"""

import logging
import uuid
from copy import deepcopy
from typing import Any

from docguard.errors import StoreError
from docguard.modifier import normalize_selector, selector_fields
from docguard.schema.paths import MISSING, delete_path, get_path, set_path
from docguard.store.adapter import UpsertResult

logger = logging.getLogger(__name__)

COMPARATORS = {"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin", "$exists"}
LOGICAL = {"$and", "$or"}


def generate_id() -> str:
    return uuid.uuid4().hex


def match_selector(document: dict[str, Any], selector: Any) -> bool:
    """True if ``document`` satisfies ``selector`` (a bare value matches ``_id``)."""
    for key, condition in normalize_selector(selector).items():
        if key in LOGICAL:
            if not isinstance(condition, list):
                raise StoreError(f"{key} requires a list of clauses")
            results = [match_selector(document, clause) for clause in condition]
            if not (all(results) if key == "$and" else any(results)):
                return False
        elif key.startswith("$"):
            raise StoreError(f"Unsupported selector operator: {key}")
        elif not _match_field(get_path(document, key), condition):
            return False
    return True


def _match_field(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(
        isinstance(k, str) and k.startswith("$") for k in condition
    ):
        return all(_eval_op(value, op, arg) for op, arg in condition.items())
    if value is MISSING:
        return condition is None
    return value == condition


def _eval_op(value: Any, op: str, arg: Any) -> bool:
    if op not in COMPARATORS:
        raise StoreError(f"Unsupported selector operator: {op}")
    if op == "$exists":
        return (value is not MISSING) == bool(arg)
    if value is MISSING:
        value = None
    if op == "$eq":
        return value == arg
    if op == "$ne":
        return value != arg
    if op == "$in":
        return value in arg
    if op == "$nin":
        return value not in arg
    if value is None:
        return False
    try:
        if op == "$gt":
            return value > arg
        if op == "$gte":
            return value >= arg
        if op == "$lt":
            return value < arg
        return value <= arg
    except TypeError:
        return False


def apply_modifier(
    document: dict[str, Any],
    modifier: dict[str, dict[str, Any]],
    inserting: bool = False,
) -> dict[str, Any]:
    """Return a copy of ``document`` with the modifier applied."""
    result = deepcopy(document)
    for operator, changes in modifier.items():
        if operator == "$set":
            for key, value in changes.items():
                set_path(result, key, deepcopy(value))
        elif operator == "$setOnInsert":
            if inserting:
                for key, value in changes.items():
                    set_path(result, key, deepcopy(value))
        elif operator == "$unset":
            for key in changes:
                delete_path(result, key)
        elif operator == "$inc":
            for key, amount in changes.items():
                current = get_path(result, key)
                current = 0 if current is MISSING else current
                if not isinstance(current, (int, float)) or isinstance(current, bool):
                    raise StoreError(f"$inc requires a numeric field: {key}")
                set_path(result, key, current + amount)
        elif operator == "$push":
            for key, value in changes.items():
                current = get_path(result, key)
                items = [] if current is MISSING else current
                if not isinstance(items, list):
                    raise StoreError(f"$push requires an array field: {key}")
                if isinstance(value, dict) and "$each" in value:
                    items = items + list(value["$each"])
                else:
                    items = items + [value]
                set_path(result, key, deepcopy(items))
        else:
            raise StoreError(f"Unsupported update operator: {operator}")
    return result


class MemoryStore:
    """DocumentStore kept in a dict, keyed by ``_id`` in insertion order."""

    def __init__(self) -> None:
        self._documents: dict[Any, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._documents)

    async def insert(self, document: dict[str, Any]) -> Any:
        doc = deepcopy(document)
        doc_id = doc.setdefault("_id", generate_id())
        if doc_id in self._documents:
            raise StoreError(f"Duplicate _id: {doc_id}")
        self._documents[doc_id] = doc
        return doc_id

    async def update(
        self,
        selector: Any,
        modifier: dict[str, dict[str, Any]],
        upsert: bool = False,
    ) -> int | UpsertResult:
        """Update the first matching document.

        Returns the number of documents affected, or an UpsertResult when
        ``upsert`` is set.
        """
        for doc_id, doc in self._documents.items():
            if match_selector(doc, selector):
                updated = apply_modifier(doc, modifier)
                if updated.get("_id") != doc_id:
                    raise StoreError("The _id field cannot be changed")
                self._documents[doc_id] = updated
                return UpsertResult(number_affected=1) if upsert else 1

        if not upsert:
            return 0

        base: dict[str, Any] = {}
        for key, value in selector_fields(selector).items():
            set_path(base, key, deepcopy(value))
        new_doc = apply_modifier(base, modifier, inserting=True)
        inserted_id = await self.insert(new_doc)
        logger.debug("Upsert inserted %s", inserted_id)
        return UpsertResult(number_affected=1, inserted_id=inserted_id)

    async def find(self, selector: Any = None) -> list[dict[str, Any]]:
        return [
            deepcopy(doc)
            for doc in self._documents.values()
            if match_selector(doc, selector)
        ]

    async def find_one(self, selector: Any = None) -> dict[str, Any] | None:
        for doc in self._documents.values():
            if match_selector(doc, selector):
                return deepcopy(doc)
        return None

    async def remove(self, selector: Any = None) -> int:
        doomed = [
            doc_id for doc_id, doc in self._documents.items() if match_selector(doc, selector)
        ]
        for doc_id in doomed:
            del self._documents[doc_id]
        return len(doomed)
