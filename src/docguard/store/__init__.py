"""Document stores the gate can commit to."""

from docguard.store.adapter import DocumentStore, UpsertResult
from docguard.store.memory import MemoryStore, apply_modifier, match_selector

__all__ = [
    "DocumentStore",
    "MemoryStore",
    "UpsertResult",
    "apply_modifier",
    "match_selector",
]
