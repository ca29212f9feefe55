"""Target store access and idempotent import."""

from .base import TargetStore
from .memory_store import InMemoryTargetStore
from .api_store import APITargetStore
from .importer import IdempotentImporter, ImportOutcome

__all__ = [
    "TargetStore",
    "InMemoryTargetStore",
    "APITargetStore",
    "IdempotentImporter",
    "ImportOutcome",
]
