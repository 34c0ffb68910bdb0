"""Protocol definition for the record store."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..core.types import Payload, RecordId


@runtime_checkable
class RecordStore(Protocol):
    """Durable payload storage addressed by opaque record identifiers."""

    def append(self, payload: Payload) -> RecordId:
        """Store payload and return a fresh identifier.

        Invariants:
            - Identifiers are never reused, even after invalidation
        """
        ...

    def fetch(self, record_id: RecordId) -> Payload | None:
        """Return the current payload, or None if invalidated or unknown."""
        ...

    def invalidate(self, record_id: RecordId) -> None:
        """Mark the payload obsolete without physically removing it."""
        ...

    def close(self) -> None:
        """Close store and release resources."""
        ...
