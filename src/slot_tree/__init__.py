"""Slot Tree - array-backed binary search tree index over external records."""

from .components.records import LogRecordStore, MemoryRecordStore, RecordIdAllocator
from .components.slots import Slot, SlotTable
from .core.config import SlotTreeConfig
from .core.errors import (
    SlotTreeError,
    ConfigError,
    SnapshotError,
    RecordStoreError,
    RecordLogCorruptionError,
)
from .core.store import SlotTreeStore
from .core.tree import SlotTree
from .core.types import NIL, Key, Payload, RecordId, SlotIndex, Status, TraversalOrder

__all__ = [
    "LogRecordStore",
    "MemoryRecordStore",
    "RecordIdAllocator",
    "Slot",
    "SlotTable",
    "SlotTreeConfig",
    "SlotTreeError",
    "ConfigError",
    "SnapshotError",
    "RecordStoreError",
    "RecordLogCorruptionError",
    "SlotTreeStore",
    "SlotTree",
    "NIL",
    "Key",
    "Payload",
    "RecordId",
    "SlotIndex",
    "Status",
    "TraversalOrder",
]
