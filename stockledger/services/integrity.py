"""
Ledger/store drift detection.

Every balance change goes through BatchMutator together with its ledger
entry, so the signed deltas of an LPN must add up to its balance. Deleted
units must add up to zero (their BULK_DELETE entry compensates).
"""

import logging
from decimal import Decimal

from stockledger.conf import stockledger_settings
from stockledger.protocols.records import DriftReport

logger = logging.getLogger('stockledger')

ZERO = Decimal('0')


def check_drift(store, ledger) -> list[DriftReport]:
    """Return one DriftReport per LPN whose balance disagrees with its ledger."""
    epsilon = stockledger_settings.QUANTITY_EPSILON
    totals = ledger.balances()
    recorded = {unit.lpn: unit.quantity for unit in store.list_all()}

    reports = []
    for lpn in sorted(set(recorded) | set(totals)):
        report = DriftReport(
            lpn=lpn,
            recorded=recorded.get(lpn, ZERO),
            ledger=totals.get(lpn, ZERO),
        )
        if abs(report.difference) > epsilon:
            logger.warning(
                "stockledger.drift",
                extra={
                    "lpn": lpn,
                    "recorded": str(report.recorded),
                    "ledger": str(report.ledger),
                },
            )
            reports.append(report)
    return reports
