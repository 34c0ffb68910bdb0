"""Unit tests for the record stores."""

import shutil
import struct
import tempfile
from pathlib import Path

import pytest

from slot_tree.components.records import (
    MAGIC,
    OP_APPEND,
    OP_INVALIDATE,
    LogRecordStore,
    MemoryRecordStore,
    RecordIdAllocator,
)
from slot_tree.core.errors import RecordLogCorruptionError, RecordStoreError
from slot_tree.core.types import INT32_MAX
from slot_tree.interfaces.records import RecordStore


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def log_path(temp_dir):
    """Create record log file path."""
    return Path(temp_dir) / "records.log"


def test_allocator_is_monotonic():
    """Test ids increase and skip past observed ids."""
    alloc = RecordIdAllocator(1000)
    assert alloc() == 1000
    assert alloc() == 1001

    alloc.observe(1500)
    assert alloc() == 1501

    alloc.observe(10)
    assert alloc() == 1502


def test_stores_satisfy_protocol(log_path):
    """Test both stores implement the record store protocol."""
    assert isinstance(MemoryRecordStore(), RecordStore)
    with LogRecordStore(log_path) as store:
        assert isinstance(store, RecordStore)


def test_memory_store_contract():
    """Test append, fetch and invalidate on the in-memory store."""
    store = MemoryRecordStore(first_record_id=1)

    rid = store.append("hello")
    assert rid == 1
    assert store.fetch(rid) == "hello"

    store.invalidate(rid)
    assert store.fetch(rid) is None
    assert store.fetch(999) is None
    assert store.append("again") == 2
    assert store.tombstones() == [1]
    assert len(store) == 1


def test_separate_stores_do_not_share_ids():
    """Test two stores each own their id sequence."""
    a = MemoryRecordStore()
    b = MemoryRecordStore()

    assert a.append("x") == 1000
    assert a.append("y") == 1001
    assert b.append("z") == 1000


def test_log_append_and_fetch(log_path):
    """Test basic append and fetch on the record log."""
    store = LogRecordStore(log_path)

    rid1 = store.append("Ana|20")
    rid2 = store.append("Luis|21")

    assert (rid1, rid2) == (1000, 1001)
    assert store.fetch(rid1) == "Ana|20"
    assert store.fetch(rid2) == "Luis|21"
    assert store.fetch(4242) is None

    store.close()


def test_log_entries_in_append_order(log_path):
    """Test iteration returns every entry, tombstones included."""
    with LogRecordStore(log_path) as store:
        rid = store.append("a")
        store.append("")
        store.invalidate(rid)

        assert list(store) == [
            (OP_APPEND, 1000, "a"),
            (OP_APPEND, 1001, ""),
            (OP_INVALIDATE, 1000, None),
        ]


def test_log_invalidate_survives_reopen(log_path):
    """Test tombstones and payloads are replayed on open."""
    store = LogRecordStore(log_path)
    rid1 = store.append("keep")
    rid2 = store.append("drop")
    store.invalidate(rid2)
    store.close()

    store = LogRecordStore(log_path)
    assert store.fetch(rid1) == "keep"
    assert store.fetch(rid2) is None
    assert store.tombstones() == [rid2]
    assert len(store) == 1
    store.close()


def test_log_ids_never_reused_across_reopen(log_path):
    """Test the allocator resumes after the highest id in the log."""
    store = LogRecordStore(log_path)
    store.append("a")
    last = store.append("b")
    store.invalidate(last)
    store.close()

    store = LogRecordStore(log_path, first_record_id=1)
    assert store.append("c") == last + 1
    store.close()


def test_log_invalidate_unknown_is_noop(log_path):
    """Test invalidating an unknown or dead id writes nothing."""
    store = LogRecordStore(log_path)
    rid = store.append("a")
    store.invalidate(rid)
    size = log_path.stat().st_size

    store.invalidate(rid)
    store.invalidate(31337)

    assert log_path.stat().st_size == size
    store.close()


def test_log_unicode_payloads(log_path):
    """Test payloads are stored as UTF-8 text."""
    with LogRecordStore(log_path) as store:
        rid = store.append("Muñoz|Ingeniería|✓")

    with LogRecordStore(log_path) as store:
        assert store.fetch(rid) == "Muñoz|Ingeniería|✓"


def test_log_truncates_partial_tail(log_path):
    """Test that a partial entry at EOF is dropped and the log stays appendable."""
    store = LogRecordStore(log_path)
    store.append("value1")
    store.append("value2")
    store.close()

    with open(log_path, "r+b") as f:
        f.seek(0, 2)
        size = f.tell()
        f.truncate(size - 3)

    store = LogRecordStore(log_path)
    assert store.fetch(1000) == "value1"
    assert store.fetch(1001) is None
    # Header (21B) + payload (6B) + crc (4B)
    assert log_path.stat().st_size == 31

    rid = store.append("value3")
    store.close()

    store = LogRecordStore(log_path)
    assert store.fetch(rid) == "value3"
    assert len(store) == 2
    store.close()


def test_log_corruption_detection(log_path):
    """Test that a flipped payload byte is caught by the CRC."""
    store = LogRecordStore(log_path)
    store.append("value1")
    store.close()

    with open(log_path, "r+b") as f:
        f.seek(22)
        f.write(b"\xff")

    with pytest.raises(RecordLogCorruptionError, match="CRC mismatch"):
        LogRecordStore(log_path)


def test_log_invalid_magic(log_path):
    """Test that a bad magic number is detected."""
    store = LogRecordStore(log_path)
    store.append("value1")
    store.close()

    with open(log_path, "r+b") as f:
        f.seek(0)
        f.write(struct.pack("<I", 0xDEADBEEF))

    with pytest.raises(RecordLogCorruptionError, match="Invalid magic"):
        LogRecordStore(log_path)


def test_log_invalid_op(log_path):
    """Test that an unknown op code is detected."""
    with open(log_path, "wb") as f:
        f.write(struct.pack("<IBQQ", MAGIC, 7, 1000, 0))
        f.write(struct.pack("<I", 0))

    with pytest.raises(RecordLogCorruptionError, match="Invalid op"):
        LogRecordStore(log_path)


def test_log_append_after_close(log_path):
    """Test that writing to a closed log raises a storage error."""
    store = LogRecordStore(log_path)
    store.close()

    with pytest.raises(RecordStoreError, match="closed"):
        store.append("late")


def test_allocator_stops_at_int32():
    """Test ids beyond the int32 snapshot field are never handed out."""
    alloc = RecordIdAllocator(INT32_MAX)
    assert alloc() == INT32_MAX

    with pytest.raises(RecordStoreError, match="exhausted"):
        alloc()


def test_memory_store_append_fails_when_ids_exhausted():
    """Test the store surfaces id exhaustion as a storage error."""
    store = MemoryRecordStore(first_record_id=INT32_MAX)
    store.append("last")

    with pytest.raises(RecordStoreError):
        store.append("one too many")
    assert len(store) == 1
