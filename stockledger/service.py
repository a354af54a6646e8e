"""
StockLedger — the single public interface for stock ledger operations.

Usage:
    from stockledger import StockLedger

    with StockLedger.connect() as ledger:
        result = ledger.receive(
            [{'sku': 'lin-001', 'quantity': '50', 'lot': 'L1', 'document_ref': 'NF-123'}],
            actor={'name': 'Ana'},
        )
        ledger.withdraw(
            [{'lpn': result.lpns[0], 'quantity': '4', 'reason': 'Defeito'}],
            actor={'name': 'Ana'},
        )
        ledger.history(result.lpns[0])  # newest first
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable

from stockledger.adapters import load_backend
from stockledger.exceptions import StockLedgerError
from stockledger.mapping import count_from_row
from stockledger.protocols.records import (
    BatchResult,
    CountRecord,
    DiffResult,
    DriftReport,
    EntryRecord,
    ReconciliationRow,
    UnitRecord,
)
from stockledger.services import (
    AuditLedger,
    BatchMutator,
    LpnGenerator,
    ReconciliationEngine,
    StockStore,
    check_drift,
)


class StockLedger:
    """
    Wires store, ledger, LPN generator, reconciliation engine and batch
    mutator around one backend.

    Mutating methods never raise for business failures: they return a
    BatchResult whose `success` is False and whose `message` explains why.
    Batch methods accept `timeout=` (seconds) and `cancel=` (a
    threading.Event).
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else load_backend()
        self.store = StockStore(self.backend)
        self.ledger = AuditLedger(self.backend)
        self.lpn_generator = LpnGenerator(self.backend, self.store)
        self.engine = ReconciliationEngine()
        self.mutator = BatchMutator(self.backend, self.store, self.ledger, self.lpn_generator)

    @classmethod
    @contextmanager
    def connect(cls, backend=None):
        """Open a ledger and close its backend on exit."""
        ledger = cls(backend)
        try:
            yield ledger
        finally:
            ledger.close()

    def close(self) -> None:
        self.backend.close()

    # ══════════════════════════════════════════════════════════════
    # MUTATIONS
    # ══════════════════════════════════════════════════════════════

    def receive(self, items: Iterable[dict[str, Any]], actor, **controls) -> BatchResult:
        return self.mutator.process_inbound_batch(items, actor, **controls)

    def withdraw(self, items: Iterable[dict[str, Any]], actor, **controls) -> BatchResult:
        return self.mutator.process_withdrawal_batch(items, actor, **controls)

    def compute_diff(self, snapshot_rows: Iterable[dict[str, Any]]) -> DiffResult:
        """Classify a snapshot against the current store (writes nothing)."""
        try:
            rows = self.engine.compute_diff(snapshot_rows, self.store.list_all())
        except StockLedgerError as exc:
            return DiffResult(success=False, message=exc.reason, code=exc.code)
        return DiffResult(
            success=True,
            message=f"{len(rows)} linha(s) classificada(s)",
            rows=tuple(rows),
        )

    def commit_reconciliation(self, rows: Iterable[ReconciliationRow | dict[str, Any]],
                              actor, **controls) -> BatchResult:
        return self.mutator.commit_reconciliation(rows, actor, **controls)

    def count(self, counts: Iterable[dict[str, Any]], actor,
              started_at: datetime | None = None, note: str = '', **controls) -> BatchResult:
        return self.mutator.process_count(counts, actor, started_at=started_at, note=note, **controls)

    def edit(self, lpn: str, changes: dict[str, Any], actor, version: int | None,
             **controls) -> BatchResult:
        return self.mutator.edit_unit(lpn, changes, actor, version, **controls)

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def inventory(self) -> list[UnitRecord]:
        return self.store.list_all()

    def unit(self, lpn: str) -> UnitRecord | None:
        return self.store.get_by_identifier(lpn)

    def history(self, lpn: str) -> list[EntryRecord]:
        return self.ledger.query_by_subject(lpn)

    def logs(self, limit: int | None = None) -> list[EntryRecord]:
        return self.ledger.query_all(limit=limit)

    def count_sessions(self) -> list[CountRecord]:
        return [count_from_row(row) for row in self.backend.list_count_sessions()]

    def check_drift(self) -> list[DriftReport]:
        return check_drift(self.store, self.ledger)
