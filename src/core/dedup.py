"""Deduplication store (core domain)."""

from __future__ import annotations

from datetime import datetime

from core.models import AlertRecord


class AlertStore:
    """In-memory set of delivered alerts keyed by alert identity.

    Membership means a notification was already attempted for that identity.
    Entries stay until a prune pass finds their end time has passed.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str, str], AlertRecord] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, record: object) -> bool:
        if not isinstance(record, AlertRecord):
            return False
        return record.identity in self._entries

    def insert(self, record: AlertRecord) -> bool:
        """Add a record and return True only if its identity was not present.

        A resend of a known alert with a later end time extends the stored
        entry so it is not pruned while the feed still reports it.
        """

        existing = self._entries.get(record.identity)
        if existing is None:
            self._entries[record.identity] = record
            return True
        if record.end_time > existing.end_time:
            self._entries[record.identity] = record
        return False

    def prune(self, now: datetime) -> int:
        """Remove every entry whose end time is at or before ``now``."""

        expired = [key for key, entry in self._entries.items() if entry.end_time <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def records(self) -> list[AlertRecord]:
        return list(self._entries.values())
