"""Slot tree store - main public API.

Orchestrates the slot table snapshot, the record log and the tree engine.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from ..components.records import LogRecordStore
from .config import SlotTreeConfig
from .tree import SlotTree
from .types import Key, Payload, SlotIndex, Status, TraversalOrder

logger = logging.getLogger(__name__)


class SlotTreeStore:
    """Durable ordered index: slot tree structure plus record log.

    Args:
        config: Store configuration

    Public API:
        - insert(key, payload), lookup(key), modify(key, payload), delete(key)
        - traverse(order), items(order)
        - save(): Persist the slot table snapshot
        - close(): Save (if configured) and release resources

    Invariants:
        - Prior state is restored on open only if the snapshot capacity matches
        - Record payloads are durable on return when flush_every_write is set
    """

    def __init__(self, config: SlotTreeConfig):
        config.validate()
        self.config = config
        self.data_dir = Path(config.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.snapshot_path = self.data_dir / config.snapshot_name
        self.records_path = self.data_dir / config.records_name

        self._records = LogRecordStore(
            self.records_path,
            first_record_id=config.first_record_id,
            flush_every_write=config.flush_every_write,
        )
        self._tree = SlotTree(config.capacity, self._records)
        self._closed = False

        self.restored = self._tree.table.restore(self.snapshot_path)
        logger.info(f"Initialized slot tree store at {self.data_dir} (capacity={config.capacity})")

    @property
    def tree(self) -> SlotTree:
        return self._tree

    def insert(self, key: Key, payload: Payload) -> Status:
        return self._tree.insert(key, payload)

    def lookup(self, key: Key) -> Payload | None:
        return self._tree.lookup(key)

    def modify(self, key: Key, payload: Payload) -> Status:
        return self._tree.modify(key, payload)

    def delete(self, key: Key) -> Status:
        return self._tree.delete(key)

    def pop(self, key: Key) -> Payload | None:
        return self._tree.pop(key)

    def traverse(self, order: TraversalOrder | str = TraversalOrder.INORDER) -> Iterator[SlotIndex]:
        return self._tree.traverse(order)

    def items(self, order: TraversalOrder | str = TraversalOrder.INORDER) -> Iterator[tuple[Key, Payload | None]]:
        return self._tree.items(order)

    def __contains__(self, key: Key) -> bool:
        return key in self._tree

    def __len__(self) -> int:
        return len(self._tree)

    def stats(self) -> dict[str, int]:
        """Summary counters for the table and record log."""
        table = self._tree.table
        return {
            "capacity": table.capacity,
            "allocated": table.allocated,
            "live": table.live_count(),
            "root": table.root,
            "next_free": table.next_free,
            "records": len(self._records),
            "tombstones": len(self._records.tombstones()),
        }

    def save(self) -> None:
        """Persist the slot table snapshot."""
        self._tree.table.save(self.snapshot_path)
        logger.info(f"Saved slot table snapshot to {self.snapshot_path}")

    def close(self) -> None:
        """Save (if configured) and release resources."""
        if self._closed:
            return
        logger.info("Closing slot tree store")
        try:
            if self.config.save_on_close:
                self.save()
        finally:
            self._records.close()
            self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
