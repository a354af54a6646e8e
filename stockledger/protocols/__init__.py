"""
Stockledger Protocols.

Defines the storage interface and the typed records crossing component
boundaries.
"""

from stockledger.protocols.backend import PersistenceBackend, Row
from stockledger.protocols.records import (
    Actor,
    BatchResult,
    CountRecord,
    DiffResult,
    DriftReport,
    EntryRecord,
    ReconciliationRow,
    UnitRecord,
)

__all__ = [
    "PersistenceBackend",
    "Row",
    "Actor",
    "BatchResult",
    "CountRecord",
    "DiffResult",
    "DriftReport",
    "EntryRecord",
    "ReconciliationRow",
    "UnitRecord",
]
