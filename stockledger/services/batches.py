"""
BatchMutator — the only writer of stock balances.

Every entry point follows the same shape:

1. Parse and validate the whole batch (no I/O). One bad item rejects all.
2. Inside one backend.atomic() block:
   - lock every touched unit (ordered by LPN)
   - re-validate against the locked balances
   - write units and append one AuditEntry per affected unit
3. Return exactly one BatchResult. Any error rolls the block back.

Cancellation and timeout are checked before every write.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from time import monotonic
from typing import Any, Callable, Iterable

from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import (
    ConflictError,
    NotFoundError,
    StockLedgerError,
    ValidationError,
)
from stockledger.mapping import (
    count_to_row,
    merge_unit,
    normalize_lpn,
    normalize_unit_row,
    status_for,
    to_quantity,
    unit_from_row,
)
from stockledger.models.enums import (
    WITHDRAWAL_ACTIONS,
    AuditAction,
    ReconciliationStatus,
    UnitStatus,
    WithdrawalReason,
)
from stockledger.protocols.records import (
    Actor,
    BatchResult,
    CountRecord,
    EntryRecord,
    ReconciliationRow,
    UnitRecord,
)
from stockledger.services.lpn import PLACEHOLDER_LPN
from stockledger.services.reconciliation import diff_fields

logger = logging.getLogger('stockledger')

ZERO = Decimal('0')

# Withdrawal reasons that need a customer and an order number
CUSTOMER_REASONS = (WithdrawalReason.SALE, WithdrawalReason.EXCHANGE)

# Fields an administrative edit may touch
EDITABLE_FIELDS = (
    'sku', 'name', 'category', 'brand', 'supplier', 'lot', 'document_ref',
    'unit_cost', 'width', 'quantity', 'zone', 'level', 'box', 'status',
    'standard_quantity', 'min_quantity', 'note', 'inbound_reason', 'responsible',
)


class BatchControl:
    """Deadline and cancellation flag for one batch call."""

    def __init__(self, timeout: float | None = None, cancel=None):
        if timeout is None:
            timeout = stockledger_settings.BATCH_TIMEOUT_SECONDS
        self.timeout = float(timeout or 0)
        self.deadline = monotonic() + self.timeout if self.timeout > 0 else None
        self.cancel = cancel

    def check(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise StockLedgerError('BATCH_CANCELLED')
        if self.deadline is not None and monotonic() > self.deadline:
            raise StockLedgerError('BATCH_TIMEOUT', timeout=self.timeout)


@contextmanager
def item_context(index: int, lpn: str = ''):
    """Tag errors raised while handling one item with its position and LPN."""
    try:
        yield
    except StockLedgerError as exc:
        exc.data.setdefault('item', index)
        if lpn:
            exc.data.setdefault('lpn', lpn)
        raise


def new_batch_ref() -> str:
    return uuid.uuid4().hex


def parse_reason(value) -> WithdrawalReason:
    """Accept a reason by label ('Venda') or name ('SALE'), any case."""
    text = str(value or '').strip()
    for reason in WithdrawalReason:
        if text.lower() in (reason.value.lower(), reason.name.lower()):
            return reason
    raise ValidationError('INVALID_REASON', reason=text)


def _required_text(values: dict[str, Any], field: str) -> str:
    value = values.get(field, '')
    if not value:
        raise ValidationError('MISSING_FIELD', field=field)
    return value


def _positive_quantity(value, field: str = 'quantity') -> Decimal:
    if value is None or value == '':
        raise ValidationError('MISSING_FIELD', field=field)
    quantity = to_quantity(value, field)
    if quantity <= ZERO:
        raise ValidationError('INVALID_QUANTITY', field=field, requested=quantity)
    return quantity


def _version(value) -> int | None:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError('INVALID_NUMBER', field='version', value=str(value)) from None


@dataclass(frozen=True)
class _Withdrawal:
    index: int
    lpn: str
    quantity: Decimal
    reason: WithdrawalReason
    narrative: str = ''
    document_ref: str = ''
    counterparty: str = ''
    version: int | None = None


@dataclass(frozen=True)
class _Count:
    index: int
    lpn: str
    counted: Decimal
    version: int | None = None


class BatchMutator:
    """
    Balance-checked, all-or-nothing stock mutations.

    Example:
        mutator = BatchMutator(backend, store, ledger, lpn_generator)
        result = mutator.process_withdrawal_batch(
            [{'lpn': 'NZ-00000001', 'quantity': '4', 'reason': 'Venda',
              'counterparty': 'Ateliê Lima', 'document_ref': 'PED-501'}],
            actor={'name': 'Ana', 'email': 'ana@example.com'},
        )
        result.success  # True
    """

    def __init__(self, backend, store, ledger, lpn_generator):
        self.backend = backend
        self.store = store
        self.ledger = ledger
        self.lpn_generator = lpn_generator

    # ══════════════════════════════════════════════════════════════
    # RUNNER
    # ══════════════════════════════════════════════════════════════

    def _run(
        self,
        operation: str,
        actor,
        prepare: Callable[[], Any],
        apply: Callable[[Any, Actor, str, BatchControl], BatchResult],
        timeout: float | None = None,
        cancel=None,
    ) -> BatchResult:
        reference = new_batch_ref()
        try:
            actor = Actor.coerce(actor)
            control = BatchControl(timeout=timeout, cancel=cancel)
            prepared = prepare()
            control.check()
            with self.backend.atomic():
                result = apply(prepared, actor, reference, control)
        except StockLedgerError as exc:
            logger.warning(
                "stockledger.batch.failed",
                extra={
                    "operation": operation,
                    "code": exc.code,
                    "reference": reference,
                    "reason": exc.reason,
                },
            )
            return BatchResult.failure(exc, reference)

        logger.info(
            f"stockledger.{operation}",
            extra={
                "reference": reference,
                "actor": actor.name,
                "lpns": list(result.lpns),
                "entries": len(result.entries),
            },
        )
        return result

    @staticmethod
    def _check_size(items) -> list:
        items = list(items or [])
        if not items:
            raise ValidationError('EMPTY_BATCH')
        limit = stockledger_settings.MAX_BATCH_ITEMS
        if len(items) > limit:
            raise ValidationError('BATCH_TOO_LARGE', size=len(items), limit=limit)
        return items

    def _write(self, unit: UnitRecord, control: BatchControl) -> UnitRecord:
        control.check()
        return self.store.upsert_many([unit])[0]

    def _append(self, entry: EntryRecord, control: BatchControl) -> EntryRecord:
        control.check()
        return self.ledger.append(entry)

    @staticmethod
    def _entry(action, unit: UnitRecord, actor: Actor, reference: str,
               delta: Decimal, **extra) -> EntryRecord:
        extra.setdefault('category', unit.category)
        return EntryRecord(
            action=AuditAction(action).value,
            lpn=unit.lpn,
            sku=unit.sku,
            lot=unit.lot,
            name=unit.name,
            delta=delta,
            value=unit.unit_cost,
            actor_name=actor.name,
            actor_email=actor.email,
            actor_role=actor.role,
            batch_ref=reference,
            **extra,
        )

    @staticmethod
    def _check_version(index: int, unit: UnitRecord, version: int | None) -> None:
        if version is not None and version != unit.version:
            raise ConflictError(
                'STALE_VERSION',
                item=index,
                lpn=unit.lpn,
                expected=version,
                current=unit.version,
            )

    # ══════════════════════════════════════════════════════════════
    # INBOUND
    # ══════════════════════════════════════════════════════════════

    def process_inbound_batch(self, items: Iterable[dict[str, Any]], actor,
                              timeout: float | None = None, cancel=None) -> BatchResult:
        """
        Receive new units.

        Item keys: sku, quantity, lot, document_ref (required); lpn,
        unit_cost, supplier, name, zone, level, ... (optional).
        A well-formed `lpn` is kept; otherwise one is allocated.
        """
        return self._run(
            'inbound', actor,
            prepare=lambda: self._prepare_inbound(items),
            apply=self._apply_inbound,
            timeout=timeout, cancel=cancel,
        )

    def _prepare_inbound(self, items) -> list[tuple[int, dict[str, Any]]]:
        prepared = []
        given = set()
        for index, raw in enumerate(self._check_size(items), start=1):
            with item_context(index, normalize_lpn((raw or {}).get('lpn'))):
                values = normalize_unit_row(raw or {})
                values.pop('version', None)
                _required_text(values, 'sku')
                values['quantity'] = _positive_quantity(values.get('quantity'))
                _required_text(values, 'lot')
                _required_text(values, 'document_ref')
                unit_cost = values.get('unit_cost', ZERO)
                if unit_cost < ZERO:
                    raise ValidationError('INVALID_NUMBER', field='unit_cost', value=str(unit_cost))

                lpn = values.get('lpn', '')
                if lpn and self.lpn_generator.is_well_formed(lpn):
                    if lpn in given:
                        raise ValidationError('DUPLICATE_IDENTIFIER')
                    given.add(lpn)
                else:
                    values.pop('lpn', None)

                standard = values.get('standard_quantity', ZERO)
                values['status'] = (
                    UnitStatus.CLOSED.value if values['quantity'] >= standard
                    else UnitStatus.OPEN.value
                )
            prepared.append((index, values))
        return prepared

    def _apply_inbound(self, prepared, actor: Actor, reference: str,
                       control: BatchControl) -> BatchResult:
        given = {values['lpn']: index for index, values in prepared if 'lpn' in values}
        taken = self.store.existing(given)
        if taken:
            lpn = min(taken)
            raise ValidationError('DUPLICATE_IDENTIFIER', item=given[lpn], lpn=lpn)

        missing = [index for index, values in prepared if 'lpn' not in values]
        allocated = iter(self.lpn_generator.generate_many(len(missing), reserved=given))

        lpns, entries = [], []
        for index, values in prepared:
            values = {'responsible': actor.name, **values}
            if 'lpn' not in values:
                values['lpn'] = next(allocated)
            with item_context(index, values['lpn']):
                unit = self._write(unit_from_row(values), control)
                entry = self._append(self._entry(
                    AuditAction.ENTRY_REGISTERED, unit, actor, reference,
                    delta=unit.quantity,
                    document_ref=unit.document_ref,
                    counterparty=unit.supplier,
                    reason=unit.inbound_reason,
                    narrative=f"Entrada de {unit.quantity} ({unit.location})",
                ), control)
            lpns.append(unit.lpn)
            entries.append(entry)

        return BatchResult(
            success=True,
            message=f"{len(lpns)} item(ns) registrado(s)",
            reference=reference,
            lpns=tuple(lpns),
            entries=tuple(entries),
        )

    # ══════════════════════════════════════════════════════════════
    # WITHDRAWAL
    # ══════════════════════════════════════════════════════════════

    def process_withdrawal_batch(self, items: Iterable[dict[str, Any]], actor,
                                 timeout: float | None = None, cancel=None) -> BatchResult:
        """
        Withdraw quantities from existing units.

        Item keys: lpn, quantity, reason (required); narrative,
        document_ref, counterparty, version (optional). Sales and exchanges
        also require counterparty and document_ref, and a sale's
        document_ref must not appear on any earlier entry. Several items may
        hit the same LPN; they are applied in order to a running balance.

        Raises nothing: failures come back as BatchResult(success=False) with
        INSUFFICIENT_BALANCE, UNIT_NOT_FOUND, STALE_VERSION, DOCUMENT_ALREADY_USED, ...
        """
        return self._run(
            'withdrawal', actor,
            prepare=lambda: self._prepare_withdrawals(items),
            apply=self._apply_withdrawals,
            timeout=timeout, cancel=cancel,
        )

    def _prepare_withdrawals(self, items) -> list[_Withdrawal]:
        prepared = []
        for index, raw in enumerate(self._check_size(items), start=1):
            raw = raw or {}
            lpn = normalize_lpn(raw.get('lpn'))
            with item_context(index, lpn):
                if not lpn:
                    raise ValidationError('MISSING_FIELD', field='lpn')
                item = _Withdrawal(
                    index=index,
                    lpn=lpn,
                    quantity=_positive_quantity(raw.get('quantity')),
                    reason=parse_reason(raw.get('reason')),
                    narrative=str(raw.get('narrative') or '').strip(),
                    document_ref=str(raw.get('document_ref') or '').strip(),
                    counterparty=str(raw.get('counterparty') or '').strip(),
                    # Optional here: the row lock in _apply_withdrawals serializes writers
                    version=_version(raw.get('version')),
                )
                if item.reason in CUSTOMER_REASONS:
                    if not item.counterparty:
                        raise ValidationError('MISSING_FIELD', field='counterparty')
                    if not item.document_ref:
                        raise ValidationError('MISSING_FIELD', field='document_ref')
                prepared.append(item)
        return prepared

    def _check_documents(self, prepared: list[_Withdrawal]) -> None:
        """A sale order number may only be used by one batch."""
        checked = set()
        for item in prepared:
            if item.reason != WithdrawalReason.SALE or item.document_ref in checked:
                continue
            checked.add(item.document_ref)
            if self.ledger.document_ref_used(item.document_ref):
                raise ValidationError(
                    'DOCUMENT_ALREADY_USED',
                    item=item.index,
                    lpn=item.lpn,
                    document_ref=item.document_ref,
                )

    def _apply_withdrawals(self, prepared: list[_Withdrawal], actor: Actor,
                           reference: str, control: BatchControl) -> BatchResult:
        epsilon = stockledger_settings.QUANTITY_EPSILON
        locked = self.store.lock_many(item.lpn for item in prepared)
        self._check_documents(prepared)

        # Validate every item against the locked balances before writing
        balances = {}
        plan = []
        for item in prepared:
            unit = locked.get(item.lpn)
            if unit is None:
                raise NotFoundError('UNIT_NOT_FOUND', item=item.index, lpn=item.lpn)
            self._check_version(item.index, unit, item.version)
            current = balances.get(item.lpn, unit.quantity)
            if current - item.quantity < -epsilon:
                raise ValidationError(
                    'INSUFFICIENT_BALANCE',
                    item=item.index,
                    lpn=item.lpn,
                    available=current,
                    requested=item.quantity,
                )
            new_balance = current - item.quantity
            if new_balance <= epsilon:
                new_balance = ZERO
            balances[item.lpn] = new_balance
            plan.append((item, current, new_balance))

        units = dict(locked)
        entries = []
        for item, old_balance, new_balance in plan:
            with item_context(item.index, item.lpn):
                unit = units[item.lpn]
                updated = replace(
                    unit,
                    quantity=new_balance,
                    status=status_for(new_balance, unit.standard_quantity, opened=True),
                )
                units[item.lpn] = unit = self._write(updated, control)
                entries.append(self._append(self._entry(
                    WITHDRAWAL_ACTIONS[item.reason], unit, actor, reference,
                    delta=new_balance - old_balance,
                    reason=item.reason.value,
                    document_ref=item.document_ref,
                    counterparty=item.counterparty,
                    narrative=item.narrative or f"Saída de {item.quantity} ({item.reason.value})",
                ), control))

        return BatchResult(
            success=True,
            message=f"{len(entries)} saída(s) registrada(s)",
            reference=reference,
            lpns=tuple(dict.fromkeys(item.lpn for item, _, _ in plan)),
            entries=tuple(entries),
        )

    # ══════════════════════════════════════════════════════════════
    # RECONCILIATION COMMIT
    # ══════════════════════════════════════════════════════════════

    def commit_reconciliation(self, rows: Iterable[ReconciliationRow | dict[str, Any]], actor,
                              timeout: float | None = None, cancel=None) -> BatchResult:
        """
        Apply classified rows (from ReconciliationEngine.compute_diff).

        NEW → insert, CHANGED → versioned update, DELETED → versioned hard
        delete with a compensating BULK_DELETE entry, UNCHANGED → skipped.
        """
        return self._run(
            'reconciliation.commit', actor,
            prepare=lambda: self._prepare_reconciliation(rows),
            apply=self._apply_reconciliation,
            timeout=timeout, cancel=cancel,
        )

    def _prepare_reconciliation(self, rows) -> list[tuple[int, ReconciliationRow]]:
        prepared = []
        seen = set()
        for index, raw in enumerate(self._check_size(rows), start=1):
            with item_context(index):
                row = ReconciliationRow.coerce(raw)
            lpn = row.unit.lpn
            with item_context(index, lpn):
                if row.status == ReconciliationStatus.UNCHANGED:
                    continue
                if row.status == ReconciliationStatus.NEW:
                    # Snapshot LPNs are kept as given, legacy formats included
                    if lpn == PLACEHOLDER_LPN:
                        row = replace(row, unit=replace(row.unit, lpn=''))
                        lpn = ''
                    if not row.unit.sku:
                        raise ValidationError('MISSING_FIELD', field='sku')
                elif not lpn:
                    raise ValidationError('MISSING_FIELD', field='lpn')
                elif row.unit.version is None:
                    raise ValidationError('VERSION_REQUIRED')
                if row.unit.quantity < ZERO:
                    raise ValidationError('INVALID_QUANTITY', requested=row.unit.quantity)
                if lpn:
                    if lpn in seen:
                        raise ValidationError('DUPLICATE_IDENTIFIER')
                    seen.add(lpn)
            prepared.append((index, row))
        return prepared

    def _apply_reconciliation(self, prepared, actor: Actor, reference: str,
                              control: BatchControl) -> BatchResult:
        new_rows = [(i, r) for i, r in prepared if r.status == ReconciliationStatus.NEW]
        known = [(i, r) for i, r in prepared if r.status != ReconciliationStatus.NEW]

        locked = self.store.lock_many(row.unit.lpn for _, row in known)
        for index, row in known:
            unit = locked.get(row.unit.lpn)
            if unit is None:
                raise NotFoundError('UNIT_NOT_FOUND', item=index, lpn=row.unit.lpn)
            self._check_version(index, unit, row.unit.version)

        given = {row.unit.lpn: index for index, row in new_rows if row.unit.lpn}
        taken = self.store.existing(given)
        if taken:
            lpn = min(taken)
            raise ConflictError('IDENTIFIER_TAKEN', item=given[lpn], lpn=lpn)

        missing = sum(1 for _, row in new_rows if not row.unit.lpn)
        allocated = iter(self.lpn_generator.generate_many(
            missing, reserved=set(given) | set(locked),
        ))

        lpns, entries = [], []
        counts = {status: 0 for status in ReconciliationStatus.values}
        for index, row in prepared:
            unit = row.unit
            if row.status == ReconciliationStatus.NEW and not unit.lpn:
                unit = replace(unit, lpn=next(allocated))

            with item_context(index, unit.lpn):
                if row.status == ReconciliationStatus.NEW:
                    written = self._write(replace(unit, version=None), control)
                    entry = self._entry(
                        AuditAction.BULK_CREATE, written, actor, reference,
                        delta=written.quantity,
                        document_ref=written.document_ref,
                        narrative="Carga via conciliação",
                    )
                elif row.status == ReconciliationStatus.CHANGED:
                    before = locked[unit.lpn]
                    changed = row.diff or diff_fields(before, unit)
                    written = self._write(unit, control)
                    entry = self._entry(
                        AuditAction.BULK_UPDATE, written, actor, reference,
                        delta=written.quantity - before.quantity,
                        narrative=f"Campos alterados: {', '.join(changed)}",
                    )
                else:
                    before = locked[unit.lpn]
                    control.check()
                    self.store.delete_by_identifier(before.lpn, version=before.version)
                    written = before
                    entry = self._entry(
                        AuditAction.BULK_DELETE, before, actor, reference,
                        delta=-before.quantity,
                        narrative="Removido via conciliação",
                    )
                entries.append(self._append(entry, control))
            counts[row.status] += 1
            lpns.append(written.lpn)

        return BatchResult(
            success=True,
            message=(
                f"{counts['NEW']} novo(s), {counts['CHANGED']} alterado(s), "
                f"{counts['DELETED']} removido(s)"
            ),
            reference=reference,
            lpns=tuple(lpns),
            entries=tuple(entries),
            data={'counts': counts},
        )

    # ══════════════════════════════════════════════════════════════
    # INVENTORY COUNT
    # ══════════════════════════════════════════════════════════════

    def process_count(self, counts: Iterable[dict[str, Any]], actor,
                      started_at: datetime | None = None, note: str = '',
                      timeout: float | None = None, cancel=None) -> BatchResult:
        """
        Apply a physical count.

        Item keys: lpn, counted (required); version (optional).
        Shortfall → WITHDRAWAL_AUDIT, surplus → COUNT_SURPLUS,
        match → COUNT_CONFIRMED with delta 0. One CountSession is recorded
        under the batch reference.
        """
        return self._run(
            'count', actor,
            prepare=lambda: self._prepare_counts(counts),
            apply=lambda prepared, actor, reference, control: self._apply_counts(
                prepared, actor, reference, control, started_at, note,
            ),
            timeout=timeout, cancel=cancel,
        )

    def _prepare_counts(self, counts) -> list[_Count]:
        prepared = []
        seen = set()
        for index, raw in enumerate(self._check_size(counts), start=1):
            raw = raw or {}
            lpn = normalize_lpn(raw.get('lpn'))
            with item_context(index, lpn):
                if not lpn:
                    raise ValidationError('MISSING_FIELD', field='lpn')
                if lpn in seen:
                    raise ValidationError('DUPLICATE_IDENTIFIER')
                seen.add(lpn)
                value = raw.get('counted')
                if value is None or value == '':
                    raise ValidationError('MISSING_FIELD', field='counted')
                counted = to_quantity(value, 'counted')
                if counted < ZERO:
                    raise ValidationError('INVALID_QUANTITY', field='counted', requested=counted)
                # Optional as for withdrawals: the count locks every unit it touches
                prepared.append(_Count(index, lpn, counted, _version(raw.get('version'))))
        return prepared

    def _apply_counts(self, prepared: list[_Count], actor: Actor, reference: str,
                      control: BatchControl, started_at: datetime | None,
                      note: str) -> BatchResult:
        epsilon = stockledger_settings.QUANTITY_EPSILON
        locked = self.store.lock_many(item.lpn for item in prepared)
        for item in prepared:
            unit = locked.get(item.lpn)
            if unit is None:
                raise NotFoundError('UNIT_NOT_FOUND', item=item.index, lpn=item.lpn)
            self._check_version(item.index, unit, item.version)

        entries = []
        surplus = shortfall = 0
        for item in prepared:
            unit = locked[item.lpn]
            delta = item.counted - unit.quantity
            narrative = f"Inventário: contado {item.counted}, sistema {unit.quantity}"
            with item_context(item.index, item.lpn):
                if abs(delta) <= epsilon:
                    action = AuditAction.COUNT_CONFIRMED
                    delta = ZERO
                else:
                    if delta < ZERO:
                        action = AuditAction.WITHDRAWAL_AUDIT
                        status = status_for(item.counted, unit.standard_quantity, opened=True)
                        shortfall += 1
                    else:
                        action = AuditAction.COUNT_SURPLUS
                        status = status_for(item.counted, unit.standard_quantity)
                        surplus += 1
                    unit = self._write(replace(unit, quantity=item.counted, status=status), control)
                entries.append(self._append(self._entry(
                    action, unit, actor, reference,
                    delta=delta,
                    reason=WithdrawalReason.AUDIT.value,
                    narrative=narrative,
                ), control))

        finished_at = timezone.now()
        started_at = started_at or finished_at
        session = CountRecord(
            reference=reference,
            started_at=started_at,
            finished_at=finished_at,
            responsible=actor.name,
            items_count=len(prepared),
            surplus_count=surplus,
            shortfall_count=shortfall,
            note=note,
            duration_seconds=max(int((finished_at - started_at).total_seconds()), 0),
        )
        control.check()
        self.backend.insert_count_session(count_to_row(session))

        return BatchResult(
            success=True,
            message=(
                f"{len(prepared)} item(ns) contado(s): "
                f"{surplus} sobra(s), {shortfall} falta(s)"
            ),
            reference=reference,
            lpns=tuple(item.lpn for item in prepared),
            entries=tuple(entries),
            data={'session': session},
        )

    # ══════════════════════════════════════════════════════════════
    # ADMINISTRATIVE EDIT
    # ══════════════════════════════════════════════════════════════

    def edit_unit(self, lpn: str, changes: dict[str, Any], actor, version: int | None,
                  timeout: float | None = None, cancel=None) -> BatchResult:
        """
        Edit one unit's registration data.

        `version` is the one the caller read; it must still be current.
        A quantity change is recorded as the entry's delta.
        """
        lpn = normalize_lpn(lpn)
        return self._run(
            'edit', actor,
            prepare=lambda: self._prepare_edit(lpn, changes, version),
            apply=lambda values, actor, reference, control: self._apply_edit(
                lpn, values, actor, reference, control, version,
            ),
            timeout=timeout, cancel=cancel,
        )

    @staticmethod
    def _prepare_edit(lpn: str, changes, version) -> dict[str, Any]:
        with item_context(1, lpn):
            if not lpn:
                raise ValidationError('MISSING_FIELD', field='lpn')
            if _version(version) is None:
                raise ValidationError('VERSION_REQUIRED')
            values = normalize_unit_row(changes or {})
            values = {k: v for k, v in values.items() if k in EDITABLE_FIELDS}
            if values.get('quantity', ZERO) < ZERO:
                raise ValidationError('INVALID_QUANTITY', requested=values['quantity'])
            if values.get('unit_cost', ZERO) < ZERO:
                raise ValidationError('INVALID_NUMBER', field='unit_cost', value=str(values['unit_cost']))
        return values

    def _apply_edit(self, lpn: str, values: dict[str, Any], actor: Actor, reference: str,
                    control: BatchControl, version) -> BatchResult:
        unit = self.store.lock_many([lpn]).get(lpn)
        if unit is None:
            raise NotFoundError('UNIT_NOT_FOUND', item=1, lpn=lpn)
        self._check_version(1, unit, _version(version))

        edited = merge_unit(unit, values)
        if 'quantity' in values and 'status' not in values:
            edited = replace(edited, status=status_for(
                edited.quantity,
                edited.standard_quantity,
                opened=unit.status == UnitStatus.OPEN,
            ))
        changed = [name for name in EDITABLE_FIELDS if getattr(unit, name) != getattr(edited, name)]
        if not changed:
            return BatchResult(
                success=True,
                message="Nenhuma alteração",
                reference=reference,
                lpns=(lpn,),
            )

        with item_context(1, lpn):
            written = self._write(edited, control)
            entry = self._append(self._entry(
                AuditAction.MANUAL_EDIT, written, actor, reference,
                delta=written.quantity - unit.quantity,
                narrative=f"Campos alterados: {', '.join(changed)}",
            ), control)

        return BatchResult(
            success=True,
            message="Cadastro atualizado",
            reference=reference,
            lpns=(lpn,),
            entries=(entry,),
            data={'changed': tuple(changed), 'version': written.version},
        )
