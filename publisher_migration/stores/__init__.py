"""Persistence for legacy rows, publisher records and advisory registries."""

from .base import BaseStore, normalize_company_name
from .memory import InMemoryStore
from .sql import SQLStore
from .registry import BaseRegistry, InMemoryRegistry, SessionRegistry, SnapshotRegistry

__all__ = [
    "BaseStore",
    "normalize_company_name",
    "InMemoryStore",
    "SQLStore",
    "BaseRegistry",
    "InMemoryRegistry",
    "SessionRegistry",
    "SnapshotRegistry",
]
