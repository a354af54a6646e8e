"""
AuditLedger — append-only record of every stock mutation.

Entries are only ever inserted. Corrections are new entries with the
inverse delta.
"""

from decimal import Decimal
from typing import Any, Iterable

from stockledger.mapping import entry_from_row, entry_to_row, normalize_lpn
from stockledger.protocols.records import EntryRecord


class AuditLedger:
    """Appends and queries AuditEntries through a PersistenceBackend."""

    def __init__(self, backend):
        self.backend = backend

    def append(self, entry: EntryRecord | dict[str, Any]) -> EntryRecord:
        return self.append_many([entry])[0]

    def append_many(self, entries: Iterable[EntryRecord | dict[str, Any]]) -> list[EntryRecord]:
        """
        Persist entries in order.

        Raises:
            StorageError: The backend rejected the insert. Callers inside a
                transaction see their whole unit of work rolled back.
        """
        rows = [
            entry_to_row(entry if isinstance(entry, EntryRecord) else entry_from_row(entry))
            for entry in entries
        ]
        if not rows:
            return []
        return [entry_from_row(row) for row in self.backend.insert_entries(rows)]

    def query_by_subject(self, lpn: str) -> list[EntryRecord]:
        """Entries for one LPN, newest first (survives unit deletion)."""
        return [entry_from_row(row) for row in self.backend.query_entries(lpn=normalize_lpn(lpn))]

    def query_all(self, limit: int | None = None) -> list[EntryRecord]:
        return [entry_from_row(row) for row in self.backend.query_entries(limit=limit)]

    def query_batch(self, batch_ref: str) -> list[EntryRecord]:
        return [entry_from_row(row) for row in self.backend.query_entries(batch_ref=batch_ref)]

    def document_ref_used(self, document_ref: str) -> bool:
        """True if any entry already cites this external document."""
        ref = str(document_ref or '').strip()
        if not ref:
            return False
        return bool(self.backend.query_entries(document_ref=ref, limit=1))

    def balances(self) -> dict[str, Decimal]:
        """Sum of signed deltas per LPN."""
        return self.backend.entry_totals()
