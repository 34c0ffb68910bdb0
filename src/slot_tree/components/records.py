"""Record store implementations.

Provides a durable append-only record log with CRC32 checksums and an
in-memory store with the same contract. Both keep a sorted index of
record id -> payload so fetch and invalidate never scan the file.
"""

from __future__ import annotations

import logging
import os
import struct
import zlib
from collections.abc import Iterator
from pathlib import Path

from sortedcontainers import SortedDict

from ..core.errors import RecordLogCorruptionError, RecordStoreError
from ..core.types import INT32_MAX, Payload, RecordId

logger = logging.getLogger(__name__)

# Record log format:
# [magic (4B)] [op (1B)] [record_id (8B)] [payload_len (8B)] [payload bytes] [crc32 (4B)]
MAGIC = 0x534C5401  # "SLT" + version
OP_APPEND = 0
OP_INVALIDATE = 1

_PREFIX = struct.Struct("<IBQQ")
_CRC = struct.Struct("<I")

LogEntry = tuple[int, RecordId, Payload | None]


class RecordIdAllocator:
    """Hands out strictly increasing record identifiers.

    Each store owns one, so two stores in the same process never share
    or collide on identifiers.
    """

    def __init__(self, start: int = 1000):
        self._next = start

    def __call__(self) -> RecordId:
        record_id = self._next
        if record_id > INT32_MAX:
            raise RecordStoreError(f"Record id space exhausted (next id {record_id} exceeds int32)")
        self._next += 1
        return record_id

    def observe(self, record_id: RecordId) -> None:
        """Make sure future identifiers are greater than ``record_id``."""
        if record_id >= self._next:
            self._next = record_id + 1

    @property
    def peek(self) -> RecordId:
        return self._next


class MemoryRecordStore:
    """Volatile record store backed by a sorted in-memory index."""

    def __init__(self, first_record_id: int = 1000, allocator: RecordIdAllocator | None = None):
        self._allocator = allocator or RecordIdAllocator(first_record_id)
        self._index: SortedDict = SortedDict()

    def append(self, payload: Payload) -> RecordId:
        record_id = self._allocator()
        self._index[record_id] = payload
        return record_id

    def fetch(self, record_id: RecordId) -> Payload | None:
        return self._index.get(record_id)

    def invalidate(self, record_id: RecordId) -> None:
        if self._index.get(record_id) is not None:
            self._index[record_id] = None

    def tombstones(self) -> list[RecordId]:
        return [rid for rid, payload in self._index.items() if payload is None]

    def __len__(self) -> int:
        """Number of current (non-invalidated) payloads."""
        return sum(1 for payload in self._index.values() if payload is not None)

    def close(self) -> None:
        pass


class LogRecordStore:
    """Append-only record log with CRC32 checksums.

    Args:
        path: Path to the record log file
        first_record_id: First identifier used when the log is empty
        flush_every_write: Whether to fsync after each append

    Invariants:
        - Payloads are never rewritten; invalidation appends a tombstone entry
        - Identifiers are never reused, including across reopen
        - A partial entry at EOF is dropped on open
    """

    def __init__(
        self,
        path: str | Path,
        first_record_id: int = 1000,
        flush_every_write: bool = True,
        allocator: RecordIdAllocator | None = None,
    ):
        self.path = Path(path)
        self.flush_every_write = flush_every_write
        self._allocator = allocator or RecordIdAllocator(first_record_id)
        self._index: SortedDict = SortedDict()
        self._fd = None
        self._replay()
        self._open_for_write()

    def _replay(self) -> None:
        """Rebuild the in-memory index from the log."""
        if not self.path.exists():
            return

        count = 0
        good_offset = 0
        for op, record_id, payload, end_offset in self._scan():
            if op == OP_APPEND:
                self._index[record_id] = payload
            else:
                self._index[record_id] = None
            self._allocator.observe(record_id)
            good_offset = end_offset
            count += 1

        size = self.path.stat().st_size
        if good_offset < size:
            logger.warning(f"Truncating {size - good_offset} trailing bytes of partial entry in {self.path}")
            with open(self.path, "r+b") as f:
                f.truncate(good_offset)

        logger.info(f"Replayed {count} entries from {self.path}")

    def _open_for_write(self) -> None:
        """Open record log for appending."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fd = open(self.path, "ab")
        except OSError as e:
            raise RecordStoreError(f"Cannot open record log {self.path}: {e}") from e
        logger.debug(f"Opened record log {self.path}, next id {self._allocator.peek}")

    def _write(self, op: int, record_id: RecordId, payload: Payload | None) -> None:
        if self._fd is None:
            raise RecordStoreError("Record log is closed")

        data = payload.encode("utf-8") if payload is not None else b""
        entry = _PREFIX.pack(MAGIC, op, record_id, len(data)) + data
        entry += _CRC.pack(zlib.crc32(entry))

        try:
            self._fd.write(entry)
            if self.flush_every_write:
                self._fd.flush()
                os.fsync(self._fd.fileno())
        except OSError as e:
            raise RecordStoreError(f"Failed to write record log {self.path}: {e}") from e

    def append(self, payload: Payload) -> RecordId:
        """Append payload and return its fresh identifier."""
        record_id = self._allocator()
        self._write(OP_APPEND, record_id, payload)
        self._index[record_id] = payload
        logger.debug(f"Appended record id={record_id}, len={len(payload)}")
        return record_id

    def fetch(self, record_id: RecordId) -> Payload | None:
        """Return the current payload, or None if invalidated or unknown."""
        return self._index.get(record_id)

    def invalidate(self, record_id: RecordId) -> None:
        """Append a tombstone for ``record_id``."""
        if self._index.get(record_id) is None:
            logger.debug(f"Ignoring invalidate of unknown or dead record id={record_id}")
            return
        self._write(OP_INVALIDATE, record_id, None)
        self._index[record_id] = None
        logger.debug(f"Invalidated record id={record_id}")

    def tombstones(self) -> list[RecordId]:
        """Identifiers whose payloads have been invalidated, ascending."""
        return [rid for rid, payload in self._index.items() if payload is None]

    def __len__(self) -> int:
        """Number of current (non-invalidated) payloads."""
        return sum(1 for payload in self._index.values() if payload is not None)

    def sync(self) -> None:
        """Force data to disk (fsync)."""
        if self._fd:
            self._fd.flush()
            os.fsync(self._fd.fileno())

    def close(self) -> None:
        """Close the log and release resources."""
        if self._fd:
            self.sync()
            self._fd.close()
            self._fd = None
            logger.info(f"Closed record log {self.path}")

    def __iter__(self) -> Iterator[LogEntry]:
        """Iterate log entries in append order as (op, record_id, payload)."""
        for op, record_id, payload, _ in self._scan():
            yield (op, record_id, payload)

    def _scan(self) -> Iterator[tuple[int, RecordId, Payload | None, int]]:
        """Read entries with the file offset just past each one.

        Stops silently at a partial entry at EOF.
        """
        with open(self.path, "rb") as f:
            while True:
                prefix = f.read(_PREFIX.size)
                if len(prefix) == 0:
                    break
                if len(prefix) < _PREFIX.size:
                    logger.warning("Partial entry header at EOF, skipping")
                    break

                magic, op, record_id, payload_len = _PREFIX.unpack(prefix)
                if magic != MAGIC:
                    raise RecordLogCorruptionError(f"Invalid magic: {magic:x}")
                if op not in (OP_APPEND, OP_INVALIDATE):
                    raise RecordLogCorruptionError(f"Invalid op code {op} for record id={record_id}")

                data = f.read(payload_len)
                if len(data) < payload_len:
                    logger.warning("Partial payload at EOF, skipping")
                    break

                crc_bytes = f.read(_CRC.size)
                if len(crc_bytes) < _CRC.size:
                    logger.warning("Partial CRC at EOF, skipping")
                    break

                stored_crc = _CRC.unpack(crc_bytes)[0]
                computed_crc = zlib.crc32(prefix + data)
                if stored_crc != computed_crc:
                    raise RecordLogCorruptionError(f"CRC mismatch: expected {computed_crc:x}, got {stored_crc:x}")

                try:
                    payload = data.decode("utf-8") if op == OP_APPEND else None
                except UnicodeDecodeError as e:
                    raise RecordLogCorruptionError(f"Undecodable payload for record id={record_id}") from e

                yield (op, record_id, payload, f.tell())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
