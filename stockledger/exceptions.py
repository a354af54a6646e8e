"""
Exceptions for Stockledger.

All errors carry a structured code for programmatic handling. The four
families mirror how a batch can fail:

- ValidationError: input rejected before anything is written
- NotFoundError: referenced LPN absent from the store
- StorageError: backend unreachable or rejected the write
- ConflictError: concurrent modification (stale version, identifier race)
"""

from decimal import Decimal
from typing import Any


class StockLedgerError(Exception):
    """
    Structured exception for stock ledger operations.

    Usage:
        try:
            store.delete_by_identifier('NZ-00000001', version=3)
        except StockLedgerError as e:
            if e.code == 'STALE_VERSION':
                ...

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'BATCH_CANCELLED': 'Lote cancelado antes da conclusão',
        'BATCH_TIMEOUT': 'Tempo limite do lote excedido',
    }

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._lookup_message(code)
        self.data = data
        super().__init__(self.message)

    @classmethod
    def _lookup_message(cls, code: str) -> str:
        for klass in cls.__mro__:
            messages = klass.__dict__.get('_default_messages', {})
            if code in messages:
                return messages[code]
        return code

    @property
    def reason(self) -> str:
        """Single-line reason with the LPN / item context, for end users."""
        parts = []
        if 'item' in self.data:
            parts.append(f"Item {self.data['item']}")
        if 'lpn' in self.data and self.data['lpn']:
            parts.append(str(self.data['lpn']))
        prefix = ' '.join(parts)
        text = f"{prefix}: {self.message}" if prefix else self.message
        if 'field' in self.data:
            text = f"{text} ({self.data['field']})"
        if 'available' in self.data and 'requested' in self.data:
            text = (
                f"{text} (saldo {self.data['available']}, "
                f"solicitado {self.data['requested']})"
            )
        return text

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.data!r})"


class ValidationError(StockLedgerError):
    """Input rejected locally; never reaches the persistence layer."""

    _default_messages = {
        'MISSING_FIELD': 'Campo obrigatório não informado',
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser positiva)',
        'INVALID_NUMBER': 'Valor numérico inválido',
        'INVALID_REASON': 'Motivo de saída inválido',
        'INSUFFICIENT_BALANCE': 'Saldo insuficiente',
        'DUPLICATE_IDENTIFIER': 'LPN duplicado',
        'EMPTY_BATCH': 'Nenhum item informado',
        'BATCH_TOO_LARGE': 'Lote excede o número máximo de itens',
        'INVALID_STATUS': 'Status de conciliação inválido',
        'VERSION_REQUIRED': 'Versão do registro é obrigatória',
        'INVALID_ACTOR': 'Responsável pela operação não informado',
        'DOCUMENT_ALREADY_USED': 'Documento já utilizado em outra saída',
    }


class NotFoundError(StockLedgerError):
    """Referenced identifier absent from the store."""

    _default_messages = {
        'UNIT_NOT_FOUND': 'Item não encontrado no estoque',
    }


class StorageError(StockLedgerError):
    """Backend failure (connectivity, constraint violation)."""

    _default_messages = {
        'BACKEND_FAILURE': 'Falha na camada de persistência',
        'LPN_EXHAUSTED': 'Não foi possível gerar um LPN livre',
    }


class ConflictError(StockLedgerError):
    """Concurrent modification detected."""

    _default_messages = {
        'STALE_VERSION': 'Registro alterado por outra operação',
        'IDENTIFIER_TAKEN': 'LPN já utilizado por outro registro',
    }
