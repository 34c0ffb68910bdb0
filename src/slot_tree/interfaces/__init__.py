"""Protocol definitions for slot tree components."""

from .records import RecordStore

__all__ = ["RecordStore"]
