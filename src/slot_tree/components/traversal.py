"""Iterative tree traversals over a slot table.

Each traversal walks every reachable slot (dead ones included) and yields
only the indices of live slots. Explicit stacks and queues are used so
depth is bounded by memory, not by the interpreter's recursion limit.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterator

from ..core.types import NIL, SlotIndex, TraversalOrder
from .slots import SlotTable


def inorder(table: SlotTable) -> Iterator[SlotIndex]:
    """Left subtree, node, right subtree: ascending key order."""
    stack: list[SlotIndex] = []
    current = table.root
    while current != NIL or stack:
        while current != NIL:
            stack.append(current)
            current = table[current].left
        current = stack.pop()
        if table[current].live:
            yield current
        current = table[current].right


def preorder(table: SlotTable) -> Iterator[SlotIndex]:
    """Node before its subtrees."""
    if table.root == NIL:
        return
    stack = [table.root]
    while stack:
        current = stack.pop()
        slot = table[current]
        if slot.live:
            yield current
        # Right first so the left child is popped first
        if slot.right != NIL:
            stack.append(slot.right)
        if slot.left != NIL:
            stack.append(slot.left)


def postorder(table: SlotTable) -> Iterator[SlotIndex]:
    """Both subtrees before the node (two-stack method)."""
    if table.root == NIL:
        return
    pending = [table.root]
    output: list[SlotIndex] = []
    while pending:
        current = pending.pop()
        output.append(current)
        slot = table[current]
        if slot.left != NIL:
            pending.append(slot.left)
        if slot.right != NIL:
            pending.append(slot.right)
    while output:
        current = output.pop()
        if table[current].live:
            yield current


def level_order(table: SlotTable) -> Iterator[SlotIndex]:
    """Breadth-first, left to right within a level."""
    if table.root == NIL:
        return
    queue = deque([table.root])
    while queue:
        current = queue.popleft()
        slot = table[current]
        if slot.live:
            yield current
        if slot.left != NIL:
            queue.append(slot.left)
        if slot.right != NIL:
            queue.append(slot.right)


TRAVERSALS: dict[TraversalOrder, Callable[[SlotTable], Iterator[SlotIndex]]] = {
    TraversalOrder.INORDER: inorder,
    TraversalOrder.PREORDER: preorder,
    TraversalOrder.POSTORDER: postorder,
    TraversalOrder.LEVEL: level_order,
}


def traverse(table: SlotTable, order: TraversalOrder | str = TraversalOrder.INORDER) -> Iterator[SlotIndex]:
    """Dispatch to the traversal for ``order``."""
    return TRAVERSALS[TraversalOrder(order)](table)
