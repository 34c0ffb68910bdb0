"""Configuration for the slot tree.

Defines all tunable parameters for the slot tree store.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigError
from .types import INT32_MAX


@dataclass
class SlotTreeConfig:
    """Configuration parameters for the slot tree store.

    Attributes:
        data_dir: Root directory for all persistent data
        capacity: Maximum number of slot allocations (live or deleted)
        snapshot_name: File name of the binary slot table snapshot
        records_name: File name of the append-only record log
        flush_every_write: Whether to fsync after each record log append
        first_record_id: First identifier handed out by a fresh record store
        save_on_close: Whether close() persists the slot table snapshot
    """

    data_dir: str
    capacity: int = 100
    snapshot_name: str = "tree.dat"
    records_name: str = "records.log"
    flush_every_write: bool = True
    first_record_id: int = 1000
    save_on_close: bool = True

    def validate(self) -> None:
        """Raise ConfigError if any parameter is out of range."""
        if self.capacity < 1:
            raise ConfigError(f"capacity must be >= 1, got {self.capacity}")
        # Slot indices and record ids are stored as int32
        if self.capacity >= INT32_MAX:
            raise ConfigError(f"capacity {self.capacity} does not fit the snapshot format")
        if not 0 <= self.first_record_id <= INT32_MAX:
            raise ConfigError(f"first_record_id must be in [0, {INT32_MAX}], got {self.first_record_id}")
        if not self.snapshot_name or not self.records_name:
            raise ConfigError("snapshot_name and records_name must be non-empty")
