"""
ReconciliationEngine — classify an external snapshot against the store.

Pure: reads nothing, writes nothing. The same inputs always produce the
same rows in the same order.

    NEW        snapshot LPN not in the store (or no LPN at all)
    CHANGED    in both, and sku/name/quantity/zone/level differ
    UNCHANGED  in both, no relevant difference
    DELETED    in the store, absent from the snapshot
"""

import logging
from typing import Any, Iterable

from stockledger.conf import stockledger_settings
from stockledger.exceptions import ValidationError
from stockledger.mapping import merge_unit, normalize_unit_row, status_for, unit_from_row
from stockledger.models.enums import ReconciliationStatus, UnitStatus
from stockledger.protocols.records import ReconciliationRow, UnitRecord
from stockledger.services.lpn import PLACEHOLDER_LPN

logger = logging.getLogger('stockledger')

DIFF_FIELDS = ('sku', 'name', 'quantity', 'zone', 'level')


def diff_fields(old: UnitRecord, new: UnitRecord) -> tuple[str, ...]:
    """Names of the reconciled fields that differ between two units."""
    epsilon = stockledger_settings.QUANTITY_EPSILON
    changed = []
    for name in DIFF_FIELDS:
        before, after = getattr(old, name), getattr(new, name)
        if name == 'quantity':
            if abs(after - before) > epsilon:
                changed.append(name)
        elif before != after:
            changed.append(name)
    return tuple(changed)


class ReconciliationEngine:
    """Computes the diff between a snapshot and the current units."""

    def compute_diff(
        self,
        snapshot_rows: Iterable[dict[str, Any]],
        current_units: Iterable[UnitRecord],
    ) -> list[ReconciliationRow]:
        """
        Classify every snapshot row and every unit the snapshot omits.

        Snapshot rows come first in input order, then DELETED rows by LPN.

        Raises:
            ValidationError('DUPLICATE_IDENTIFIER'): An LPN appears twice
            ValidationError('INVALID_NUMBER'): A numeric cell cannot be parsed
        """
        current = {unit.lpn: unit for unit in current_units}
        rows = []
        seen = set()
        dropped = 0

        for index, raw in enumerate(snapshot_rows, start=1):
            try:
                values = normalize_unit_row(raw)
            except ValidationError as exc:
                exc.data.setdefault('item', index)
                raise
            if values.get('lpn') == PLACEHOLDER_LPN:
                del values['lpn']

            lpn = values.get('lpn', '')
            if not lpn and not values.get('sku'):
                dropped += 1
                continue

            if lpn:
                if lpn in seen:
                    raise ValidationError('DUPLICATE_IDENTIFIER', item=index, lpn=lpn)
                seen.add(lpn)

            existing = current.get(lpn) if lpn else None
            if existing is None:
                values.pop('version', None)
                rows.append(ReconciliationRow(
                    unit=unit_from_row(values),
                    status=ReconciliationStatus.NEW.value,
                ))
                continue

            candidate = self._overlay(existing, values)
            diff = diff_fields(existing, candidate)
            status = ReconciliationStatus.CHANGED if diff else ReconciliationStatus.UNCHANGED
            rows.append(ReconciliationRow(unit=candidate, status=status.value, diff=diff))

        for lpn in sorted(set(current) - seen):
            rows.append(ReconciliationRow(
                unit=current[lpn],
                status=ReconciliationStatus.DELETED.value,
            ))

        if dropped:
            logger.warning(
                "stockledger.reconciliation.dropped_rows",
                extra={"count": dropped},
            )
        return rows

    @staticmethod
    def _overlay(existing: UnitRecord, values: dict[str, Any]) -> UnitRecord:
        """Snapshot wins field by field; identity and version stay."""
        candidate = merge_unit(existing, values)
        if 'quantity' in values and 'status' not in values:
            candidate = merge_unit(candidate, {
                'status': status_for(
                    candidate.quantity,
                    candidate.standard_quantity,
                    opened=existing.status == UnitStatus.OPEN,
                ),
            })
        return candidate
