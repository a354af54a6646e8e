"""
StockStore — typed access to stock units.

Thin layer over the backend: converts rows to UnitRecords and back, stamps
`updated_at`, normalizes identifiers. Business rules live in BatchMutator.
"""

from dataclasses import replace
from typing import Iterable

from django.utils import timezone

from stockledger.mapping import normalize_lpn, unit_from_row, unit_to_row
from stockledger.protocols.records import UnitRecord


class StockStore:
    """Reads and writes StockUnits through a PersistenceBackend."""

    def __init__(self, backend):
        self.backend = backend

    def list_all(self) -> list[UnitRecord]:
        return [unit_from_row(row) for row in self.backend.list_units()]

    def get_by_identifier(self, lpn: str) -> UnitRecord | None:
        row = self.backend.get_unit(normalize_lpn(lpn))
        return unit_from_row(row) if row is not None else None

    def upsert_many(self, units: Iterable[UnitRecord]) -> list[UnitRecord]:
        """
        Insert units without a version, update the others.

        Raises:
            ConflictError: Stale version, or insert of an existing LPN
            NotFoundError: Update of a unit that no longer exists
        """
        now = timezone.now()
        rows = [
            unit_to_row(replace(unit, lpn=normalize_lpn(unit.lpn), updated_at=now))
            for unit in units
        ]
        if not rows:
            return []
        return [unit_from_row(row) for row in self.backend.upsert_units(rows)]

    def delete_by_identifier(self, lpn: str, version: int | None = None) -> None:
        self.backend.delete_unit(normalize_lpn(lpn), version=version)

    def lock_many(self, lpns: Iterable[str]) -> dict[str, UnitRecord]:
        """Lock units for the current transaction; missing LPNs are absent."""
        rows = self.backend.lock_units({normalize_lpn(lpn) for lpn in lpns})
        return {row['lpn']: unit_from_row(row) for row in rows}

    def existing(self, lpns: Iterable[str]) -> set[str]:
        return self.backend.existing_lpns({normalize_lpn(lpn) for lpn in lpns})
