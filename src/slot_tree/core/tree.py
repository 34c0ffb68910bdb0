"""Binary search tree engine over a fixed-capacity slot table.

Every operation works on slot indices; payloads live in an external record
store and are reached through the record id kept in each slot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ..components.records import MemoryRecordStore
from ..components.slots import SlotTable
from ..components.traversal import traverse
from ..interfaces.records import RecordStore
from .types import INT32_MAX, INT32_MIN, NIL, Key, Payload, SlotIndex, Status, TraversalOrder

logger = logging.getLogger(__name__)


class SlotTree:
    """Unbalanced BST whose nodes are slots in a :class:`SlotTable`.

    Args:
        capacity: Maximum number of slot allocations over the tree's life
        records: Record store holding payloads (in-memory if omitted)

    Public API:
        - insert(key, payload): Add a new key
        - lookup(key): Fetch payload for key
        - modify(key, payload): Replace payload in place
        - delete(key) / pop(key): Remove key
        - traverse(order) / items(order): Ordered iteration

    Invariants:
        - Left subtree keys < node key <= right subtree keys
        - Deleted slots are tombstoned, never reused
        - Each live slot's record id resolves to exactly one payload
    """

    def __init__(self, capacity: int, records: RecordStore | None = None):
        self.table = SlotTable(capacity)
        self.records: RecordStore = records if records is not None else MemoryRecordStore()

    @property
    def capacity(self) -> int:
        return self.table.capacity

    def locate(self, key: Key) -> tuple[SlotIndex, SlotIndex]:
        """Walk from the root towards ``key``.

        Returns:
            (index, parent): index of the slot holding ``key`` or NIL, and
            the last slot visited before it (the link point for an insert).
        """
        table = self.table
        parent = NIL
        current = table.root
        while current != NIL:
            slot = table[current]
            if key == slot.key:
                return current, parent
            parent = current
            current = slot.left if key < slot.key else slot.right
        return NIL, parent

    def _find(self, key: Key) -> tuple[SlotIndex, SlotIndex]:
        """Descend over live slots only; returns (index or NIL, parent)."""
        table = self.table
        parent = NIL
        current = table.root
        while current != NIL and table[current].live:
            slot = table[current]
            if key == slot.key:
                return current, parent
            parent = current
            current = slot.left if key < slot.key else slot.right
        return NIL, parent

    def insert(self, key: Key, payload: Payload) -> Status:
        """Add ``key`` with ``payload``."""
        table = self.table
        if not INT32_MIN <= key <= INT32_MAX:
            logger.debug(f"Insert key={key} rejected: outside int32 range")
            return Status.KEY_OUT_OF_RANGE

        if table.is_full:
            logger.debug(f"Insert key={key} rejected: all {table.capacity} slots allocated")
            return Status.CAPACITY_EXHAUSTED

        position, parent = self.locate(key)
        if position != NIL and table[position].live:
            logger.debug(f"Insert key={key} rejected: duplicate")
            return Status.DUPLICATE_KEY

        record_id = self.records.append(payload)

        index = table.allocate()
        slot = table[index]
        slot.key = key
        slot.record_id = record_id
        slot.left = NIL
        slot.right = NIL
        slot.live = True

        if table.root == NIL:
            table.root = index
        elif key < table[parent].key:
            table[parent].left = index
        else:
            table[parent].right = index

        logger.debug(f"Inserted key={key} at slot {index} (record id={record_id})")
        return Status.OK

    def lookup(self, key: Key) -> Payload | None:
        """Return the payload stored for ``key`` or None."""
        index, _ = self._find(key)
        if index == NIL:
            return None
        return self.records.fetch(self.table[index].record_id)

    def __contains__(self, key: Key) -> bool:
        return self._find(key)[0] != NIL

    def modify(self, key: Key, payload: Payload) -> Status:
        """Replace the payload of ``key`` without touching the topology."""
        index, _ = self._find(key)
        if index == NIL:
            return Status.NOT_FOUND

        slot = self.table[index]
        # Old record stays current until the new payload is stored
        new_id = self.records.append(payload)
        self.records.invalidate(slot.record_id)
        slot.record_id = new_id
        logger.debug(f"Modified key={key} at slot {index} (record id={slot.record_id})")
        return Status.OK

    def delete(self, key: Key) -> Status:
        """Remove ``key`` from the tree."""
        status, _ = self._remove(key)
        return status

    def pop(self, key: Key) -> Payload | None:
        """Remove ``key`` and return the payload it held, or None if absent."""
        _, payload = self._remove(key)
        return payload

    def _remove(self, key: Key) -> tuple[Status, Payload | None]:
        index, parent = self._find(key)
        if index == NIL:
            return Status.NOT_FOUND, None

        table = self.table
        node = table[index]
        payload = self.records.fetch(node.record_id)
        logger.info(f"Deleting key={key}: {payload}")
        self.records.invalidate(node.record_id)

        if node.left != NIL and node.right != NIL:
            # Two children: pull up the inorder successor's content, then
            # unlink the successor's slot (it has no left child).
            succ_parent = index
            succ = node.right
            while table[succ].left != NIL:
                succ_parent = succ
                succ = table[succ].left

            successor = table[succ]
            node.key = successor.key
            node.record_id = successor.record_id

            if succ_parent == index:
                table[succ_parent].right = successor.right
            else:
                table[succ_parent].left = successor.right
            successor.live = False
            logger.debug(f"Replaced slot {index} with successor slot {succ} (key={node.key})")
        else:
            child = node.left if node.left != NIL else node.right
            self._replace_child(parent, index, child)
            node.live = False

        return Status.OK, payload

    def _replace_child(self, parent: SlotIndex, old: SlotIndex, new: SlotIndex) -> None:
        """Point whichever link of ``parent`` referenced ``old`` at ``new``."""
        table = self.table
        if parent == NIL:
            table.root = new
        elif table[parent].left == old:
            table[parent].left = new
        else:
            table[parent].right = new

    def traverse(self, order: TraversalOrder | str = TraversalOrder.INORDER) -> Iterator[SlotIndex]:
        """Yield live slot indices in ``order``."""
        return traverse(self.table, order)

    def keys(self, order: TraversalOrder | str = TraversalOrder.INORDER) -> Iterator[Key]:
        for index in self.traverse(order):
            yield self.table[index].key

    def items(self, order: TraversalOrder | str = TraversalOrder.INORDER) -> Iterator[tuple[Key, Payload | None]]:
        """Yield (key, payload) pairs in ``order``."""
        for index in self.traverse(order):
            slot = self.table[index]
            yield (slot.key, self.records.fetch(slot.record_id))

    def __len__(self) -> int:
        """Number of live keys."""
        return self.table.live_count()

    def __iter__(self) -> Iterator[Key]:
        return self.keys()
