"""
Persistence Backend Protocol — the only way Stockledger reaches storage.

Stockledger defines this protocol; `stockledger.adapters.django_orm` implements
it on top of the Django ORM. Rows are plain dicts using the canonical field
names of `stockledger.mapping`.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from decimal import Decimal
from typing import Any, Iterable, Protocol, runtime_checkable

Row = dict[str, Any]


@runtime_checkable
class PersistenceBackend(Protocol):
    """
    Protocol for the stock ledger's storage.

    Implementations must:
    - Run everything inside `atomic()` as one transaction (nested calls join it)
    - Raise StorageError for backend failures, ConflictError for version or
      unique-identifier races, NotFoundError for missing units on delete
    - Never cache: every read goes to storage
    """

    def atomic(self) -> AbstractContextManager:
        """Open (or join) a transaction."""
        ...

    # Units

    def list_units(self) -> list[Row]:
        """All units, ordered by LPN."""
        ...

    def get_unit(self, lpn: str) -> Row | None:
        ...

    def lock_units(self, lpns: Iterable[str]) -> list[Row]:
        """
        Lock the given units until the transaction ends.

        Locks are taken in LPN order. Missing LPNs are simply absent from
        the result.
        """
        ...

    def existing_lpns(self, lpns: Iterable[str]) -> set[str]:
        ...

    def upsert_units(self, rows: list[Row]) -> list[Row]:
        """
        Insert rows without `version`; update rows with `version` only if
        it matches the stored one (and bump it). Returns the written rows.
        """
        ...

    def delete_unit(self, lpn: str, version: int | None = None) -> None:
        ...

    def next_sequence(self, prefix: str) -> int:
        """Atomically increment and return the counter for `prefix`."""
        ...

    # Audit entries (insert + query only)

    def insert_entries(self, rows: list[Row]) -> list[Row]:
        ...

    def query_entries(
        self,
        lpn: str | None = None,
        sku: str | None = None,
        document_ref: str | None = None,
        action: str | None = None,
        batch_ref: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Entries matching all given filters, newest first."""
        ...

    def entry_totals(self) -> dict[str, Decimal]:
        """Sum of signed deltas per LPN."""
        ...

    # Count sessions

    def insert_count_session(self, row: Row) -> Row:
        ...

    def list_count_sessions(self) -> list[Row]:
        ...

    def close(self) -> None:
        """Release connections held by this backend."""
        ...
