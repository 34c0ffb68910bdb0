"""Fixed-capacity slot table.

Holds the node array of the tree, the root pointer and the free-slot
cursor, and persists them as a fixed-width binary memory image.
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path

from ..core.errors import SnapshotError
from ..core.types import NIL, Key, RecordId, SlotIndex

logger = logging.getLogger(__name__)

# Snapshot format (little-endian):
# [capacity (4B)] [root (4B)] [next_free (4B)]
# then capacity+1 times: [key (4B)] [record_id (4B)] [left (4B)] [right (4B)] [live (1B)] [pad (3B)]
HEADER = struct.Struct("<iii")
SLOT = struct.Struct("<iiii?3x")


@dataclass
class Slot:
    """One element of the node array."""

    key: Key = 0
    record_id: RecordId = NIL
    left: SlotIndex = NIL
    right: SlotIndex = NIL
    live: bool = False

    def clear(self) -> None:
        self.key = 0
        self.record_id = NIL
        self.left = NIL
        self.right = NIL
        self.live = False


class SlotTable:
    """Array of ``capacity + 1`` slots addressed by integer index.

    Args:
        capacity: Maximum number of slot allocations

    Invariants:
        - Slot 0 is a control position and never holds data
        - ``next_free`` only moves forward; deleted slots are never reused
        - ``root == NIL`` iff no slot is live
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.slots: list[Slot] = [Slot() for _ in range(capacity + 1)]
        self.root: SlotIndex = NIL
        self.next_free: SlotIndex = 1

    def __getitem__(self, index: SlotIndex) -> Slot:
        return self.slots[index]

    def __len__(self) -> int:
        return len(self.slots)

    @property
    def is_full(self) -> bool:
        return self.next_free > self.capacity

    @property
    def allocated(self) -> int:
        """Number of slots ever allocated, live or dead."""
        return self.next_free - 1

    def live_count(self) -> int:
        return sum(1 for slot in self.slots[1:self.next_free] if slot.live)

    def allocate(self) -> SlotIndex:
        """Claim the slot at the free cursor and advance it.

        Raises:
            IndexError: If every slot has already been allocated
        """
        if self.is_full:
            raise IndexError("slot table is full")
        index = self.next_free
        self.next_free += 1
        return index

    def reset(self) -> None:
        """Return the table to its freshly initialized state."""
        for slot in self.slots:
            slot.clear()
        self.root = NIL
        self.next_free = 1

    def to_bytes(self) -> bytes:
        """Serialize header and every slot, in index order."""
        try:
            parts = [HEADER.pack(self.capacity, self.root, self.next_free)]
            for slot in self.slots:
                parts.append(SLOT.pack(slot.key, slot.record_id, slot.left, slot.right, slot.live))
        except struct.error as e:
            raise SnapshotError(f"Slot table does not fit the snapshot format: {e}") from e
        return b"".join(parts)

    def load_bytes(self, data: bytes) -> bool:
        """Overwrite this table from a snapshot image.

        Returns:
            True if the image was applied, False if its capacity differs
            from this table's (the table is left untouched).

        Raises:
            SnapshotError: If the image is truncated
        """
        if len(data) < HEADER.size:
            raise SnapshotError(f"Snapshot header truncated ({len(data)} bytes)")
        capacity, root, next_free = HEADER.unpack_from(data, 0)
        if capacity != self.capacity:
            logger.warning(
                f"Snapshot capacity {capacity} != configured capacity {self.capacity}, ignoring snapshot"
            )
            return False

        expected = HEADER.size + SLOT.size * (capacity + 1)
        if len(data) < expected:
            raise SnapshotError(f"Snapshot truncated: expected {expected} bytes, got {len(data)}")

        slots = []
        for offset in range(HEADER.size, expected, SLOT.size):
            key, record_id, left, right, live = SLOT.unpack_from(data, offset)
            slots.append(Slot(key, record_id, left, right, live))

        self.slots = slots
        self.root = root
        self.next_free = next_free
        return True

    def save(self, path: str | Path) -> None:
        """Persist the table to ``path`` atomically."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        data = self.to_bytes()
        try:
            with open(temp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except OSError as e:
            raise SnapshotError(f"Failed to write snapshot {path}: {e}") from e
        logger.debug(f"Saved slot table to {path} (root={self.root}, next_free={self.next_free})")

    def restore(self, path: str | Path) -> bool:
        """Restore the table from ``path`` if it matches this capacity.

        A missing, truncated or mismatched snapshot leaves the table empty.

        Returns:
            True if prior state was restored
        """
        path = Path(path)
        if not path.exists():
            logger.info(f"No snapshot at {path}, starting empty")
            return False

        try:
            data = path.read_bytes()
            restored = self.load_bytes(data)
        except (OSError, SnapshotError) as e:
            logger.warning(f"Could not restore snapshot {path}: {e}")
            self.reset()
            return False

        if restored:
            logger.info(f"Restored slot table from {path} ({self.live_count()} live slots)")
        return restored
