"""
Stockledger services — the components behind the StockLedger facade.

    from stockledger.services import StockStore, AuditLedger, BatchMutator
"""

from stockledger.services.batches import BatchMutator
from stockledger.services.integrity import check_drift
from stockledger.services.ledger import AuditLedger
from stockledger.services.lpn import LpnGenerator
from stockledger.services.reconciliation import ReconciliationEngine
from stockledger.services.store import StockStore

__all__ = [
    'StockStore',
    'AuditLedger',
    'LpnGenerator',
    'ReconciliationEngine',
    'BatchMutator',
    'check_drift',
]
