"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class UnitStatus(models.TextChoices):
    """
    Lifecycle of a stock unit (one roll/lot at one location).

    CLOSED:   quantity at or above the standard (nominal) amount
    OPEN:     partially consumed
    DEPLETED: nothing left (quantity within epsilon of zero)
    """
    OPEN = 'open', _('Rolo aberto')
    CLOSED = 'closed', _('Rolo fechado')
    DEPLETED = 'depleted', _('Esgotado')


class WithdrawalReason(models.TextChoices):
    """Why material left the warehouse."""
    SALE = 'Venda', _('Venda')
    EXCHANGE = 'Troca', _('Troca')
    DAMAGE = 'Defeito', _('Defeito')
    ADJUSTMENT = 'Ajuste', _('Ajuste')
    AUDIT = 'Auditoria', _('Auditoria')


class AuditAction(models.TextChoices):
    """Kind of action recorded on the audit ledger."""
    ENTRY_REGISTERED = 'ENTRY_REGISTERED', _('Entrada registrada')
    WITHDRAWAL_SALE = 'WITHDRAWAL_SALE', _('Saída por venda')
    WITHDRAWAL_EXCHANGE = 'WITHDRAWAL_EXCHANGE', _('Saída por troca')
    WITHDRAWAL_DAMAGE = 'WITHDRAWAL_DAMAGE', _('Saída por defeito')
    WITHDRAWAL_ADJUSTMENT = 'WITHDRAWAL_ADJUSTMENT', _('Saída por ajuste')
    WITHDRAWAL_AUDIT = 'WITHDRAWAL_AUDIT', _('Saída por auditoria')
    BULK_CREATE = 'BULK_CREATE', _('Carga em massa')
    BULK_UPDATE = 'BULK_UPDATE', _('Atualização em massa')
    BULK_DELETE = 'BULK_DELETE', _('Remoção em massa')
    MANUAL_EDIT = 'MANUAL_EDIT', _('Edição de cadastro')
    COUNT_CONFIRMED = 'COUNT_CONFIRMED', _('Inventário confirmado')
    COUNT_SURPLUS = 'COUNT_SURPLUS', _('Sobra de inventário')


# WithdrawalReason → ledger action
WITHDRAWAL_ACTIONS = {
    WithdrawalReason.SALE: AuditAction.WITHDRAWAL_SALE,
    WithdrawalReason.EXCHANGE: AuditAction.WITHDRAWAL_EXCHANGE,
    WithdrawalReason.DAMAGE: AuditAction.WITHDRAWAL_DAMAGE,
    WithdrawalReason.ADJUSTMENT: AuditAction.WITHDRAWAL_ADJUSTMENT,
    WithdrawalReason.AUDIT: AuditAction.WITHDRAWAL_AUDIT,
}


class ReconciliationStatus(models.TextChoices):
    """Classification of one snapshot row against the store."""
    NEW = 'NEW', _('Novo')
    CHANGED = 'CHANGED', _('Alterado')
    DELETED = 'DELETED', _('Removido')
    UNCHANGED = 'UNCHANGED', _('Sem alteração')
