"""
Stockledger Models.

Core models for the stock ledger:
- StockUnit: LPN-identified lot with its authoritative balance
- AuditEntry: Immutable ledger of every change
- LpnSequence: Monotonic counter behind LPN allocation
- CountSession: Summary of a physical inventory count
"""

from stockledger.models.audit import AuditEntry
from stockledger.models.enums import (
    WITHDRAWAL_ACTIONS,
    AuditAction,
    ReconciliationStatus,
    UnitStatus,
    WithdrawalReason,
)
from stockledger.models.sequence import LpnSequence
from stockledger.models.session import CountSession
from stockledger.models.unit import StockUnit

__all__ = [
    'UnitStatus',
    'WithdrawalReason',
    'AuditAction',
    'ReconciliationStatus',
    'WITHDRAWAL_ACTIONS',
    'StockUnit',
    'AuditEntry',
    'LpnSequence',
    'CountSession',
]
