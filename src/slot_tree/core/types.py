"""Common type definitions for the slot tree.

Defines fundamental types and sentinels used across all components.
"""

from __future__ import annotations

from enum import Enum

# Core primitive types
Key = int
RecordId = int
Payload = str
SlotIndex = int

# Sentinel for "no slot" / "no record" in every index field
NIL = -1

# Keys, record ids and slot indices are persisted as int32
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class Status(Enum):
    """Outcome of a tree mutation.

    Only ``OK`` is truthy, so callers can write ``if tree.insert(k, v):``.
    """

    OK = "ok"
    CAPACITY_EXHAUSTED = "capacity exhausted"
    DUPLICATE_KEY = "duplicate key"
    NOT_FOUND = "key not found"
    KEY_OUT_OF_RANGE = "key out of range"

    def __bool__(self) -> bool:
        return self is Status.OK


class TraversalOrder(Enum):
    """Supported tree traversal orders."""

    INORDER = "inorder"
    PREORDER = "preorder"
    POSTORDER = "postorder"
    LEVEL = "level"
