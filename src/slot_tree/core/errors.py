"""Exception hierarchy for the slot tree.

Expected outcomes (full table, duplicate key, missing key) are reported
through :class:`~slot_tree.core.types.Status`; these exceptions cover
genuine failures only.
"""

from __future__ import annotations


class SlotTreeError(Exception):
    """Base exception for all slot tree errors."""
    pass


class ConfigError(SlotTreeError):
    """Raised when configuration values are invalid."""
    pass


class SnapshotError(SlotTreeError):
    """Raised when a slot table snapshot cannot be read or written."""
    pass


class RecordStoreError(SlotTreeError):
    """Raised when the record store fails to read or write payloads."""
    pass


class RecordLogCorruptionError(RecordStoreError):
    """Raised when record log data is corrupted or invalid."""
    pass
