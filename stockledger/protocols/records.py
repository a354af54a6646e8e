"""
Typed records exchanged between Stockledger components.

Backends speak in plain dict rows; everything above the store speaks in
these frozen dataclasses. Callers may pass plain dicts to the entry points,
which are coerced here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from stockledger.exceptions import StockLedgerError, ValidationError
from stockledger.models.enums import ReconciliationStatus, UnitStatus


@dataclass(frozen=True)
class Actor:
    """Who performed an operation. Opaque: never authenticated here."""

    name: str
    email: str = ''
    role: str = ''

    @classmethod
    def coerce(cls, value: Actor | dict[str, Any] | str) -> Actor:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, dict):
            return cls(
                name=str(value.get('name') or value.get('email') or ''),
                email=str(value.get('email') or ''),
                role=str(value.get('role') or ''),
            )
        raise ValidationError('INVALID_ACTOR', type=type(value).__name__)


@dataclass(frozen=True)
class UnitRecord:
    """A stock unit as seen by the core (see models.StockUnit)."""

    lpn: str
    sku: str = ''
    name: str = ''
    category: str = ''
    brand: str = ''
    supplier: str = ''
    lot: str = ''
    document_ref: str = ''
    unit_cost: Decimal = Decimal('0')
    width: Decimal = Decimal('1.52')
    quantity: Decimal = Decimal('0')
    zone: str = ''
    level: str = ''
    box: str = ''
    status: str = UnitStatus.CLOSED.value
    standard_quantity: Decimal = Decimal('0')
    min_quantity: Decimal = Decimal('0')
    note: str = ''
    inbound_reason: str = ''
    responsible: str = ''
    version: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def location(self) -> str:
        return f"{self.zone}-{self.level}"


@dataclass(frozen=True)
class EntryRecord:
    """One audit ledger entry (see models.AuditEntry)."""

    action: str
    lpn: str = ''
    sku: str = ''
    lot: str = ''
    name: str = ''
    delta: Decimal = Decimal('0')
    value: Decimal = Decimal('0')
    narrative: str = ''
    document_ref: str = ''
    kind: str = 'LOGISTICA'
    category: str = ''
    reason: str = ''
    counterparty: str = ''
    actor_name: str = ''
    actor_email: str = ''
    actor_role: str = ''
    batch_ref: str = ''
    timestamp: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class CountRecord:
    """Summary of one physical inventory count."""

    reference: str
    started_at: datetime | None = None
    finished_at: datetime | None = None
    responsible: str = ''
    items_count: int = 0
    surplus_count: int = 0
    shortfall_count: int = 0
    note: str = ''
    duration_seconds: int = 0


@dataclass(frozen=True)
class ReconciliationRow:
    """
    One classified snapshot row. Transient, never persisted.

    `unit` is the candidate: for CHANGED/UNCHANGED the existing unit overlaid
    with the snapshot (keeping the existing version), for NEW the snapshot
    row with defaults, for DELETED the current unit.
    """

    unit: UnitRecord
    status: str
    diff: tuple[str, ...] = ()

    @classmethod
    def coerce(cls, value: ReconciliationRow | dict[str, Any]) -> ReconciliationRow:
        """Build a row from plain data: {'unit'|'item': {...}, 'status': ..., 'diff': [...]}."""
        if isinstance(value, cls):
            return value
        from stockledger.mapping import unit_from_row

        status = str(value.get('status', '')).upper()
        if status not in ReconciliationStatus.values:
            raise ValidationError('INVALID_STATUS', status=status)
        unit = value.get('unit', value.get('item'))
        if not isinstance(unit, UnitRecord):
            unit = unit_from_row(unit or {})
        return cls(unit=unit, status=status, diff=tuple(value.get('diff') or ()))


@dataclass(frozen=True)
class BatchResult:
    """
    Single outcome of a batch call.

    success=False means nothing was written; `message` is one human-readable
    reason and `code` the machine-readable error code.
    """

    success: bool
    message: str = ''
    code: str | None = None
    reference: str = ''
    lpns: tuple[str, ...] = ()
    entries: tuple[EntryRecord, ...] = ()
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: StockLedgerError, reference: str = '') -> BatchResult:
        return cls(
            success=False,
            message=error.reason,
            code=error.code,
            reference=reference,
            data=error.as_dict()['data'],
        )


@dataclass(frozen=True)
class DiffResult:
    """Outcome of a reconciliation preview."""

    success: bool
    message: str = ''
    code: str | None = None
    rows: tuple[ReconciliationRow, ...] = ()

    def with_status(self, status: str) -> list[ReconciliationRow]:
        return [row for row in self.rows if row.status == status]


@dataclass(frozen=True)
class DriftReport:
    """Mismatch between a unit's balance and the sum of its ledger deltas."""

    lpn: str
    recorded: Decimal
    ledger: Decimal

    @property
    def difference(self) -> Decimal:
        return self.recorded - self.ledger
