"""
Django Stockledger — Razão de estoque por LPN.

Unidades físicas identificadas por LPN, trilha de auditoria imutável,
conciliação de planilhas e lotes de entrada/saída atômicos.

Uso:
    from stockledger import StockLedger, StockLedgerError

    with StockLedger.connect() as ledger:
        ledger.withdraw([{'lpn': 'NZ-00000001', 'quantity': 4, 'reason': 'Defeito'}], actor='Ana')
        ledger.inventory()
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'StockLedger':
        from stockledger.service import StockLedger
        return StockLedger
    elif name == 'StockLedgerError':
        from stockledger.exceptions import StockLedgerError
        return StockLedgerError
    elif name == 'ValidationError':
        from stockledger.exceptions import ValidationError
        return ValidationError
    elif name == 'NotFoundError':
        from stockledger.exceptions import NotFoundError
        return NotFoundError
    elif name == 'StorageError':
        from stockledger.exceptions import StorageError
        return StorageError
    elif name == 'ConflictError':
        from stockledger.exceptions import ConflictError
        return ConflictError
    elif name == 'StockUnit':
        from stockledger.models.unit import StockUnit
        return StockUnit
    elif name == 'AuditEntry':
        from stockledger.models.audit import AuditEntry
        return AuditEntry
    elif name == 'UnitStatus':
        from stockledger.models.enums import UnitStatus
        return UnitStatus
    elif name == 'AuditAction':
        from stockledger.models.enums import AuditAction
        return AuditAction
    elif name == 'WithdrawalReason':
        from stockledger.models.enums import WithdrawalReason
        return WithdrawalReason
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'StockLedger',
    'StockLedgerError',
    'ValidationError',
    'NotFoundError',
    'StorageError',
    'ConflictError',
    'StockUnit',
    'AuditEntry',
    'UnitStatus',
    'AuditAction',
    'WithdrawalReason',
]

__version__ = '0.1.0'
