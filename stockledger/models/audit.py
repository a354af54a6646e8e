"""
AuditEntry model — immutable ledger of every stock mutation.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import AuditAction


IMMUTABLE_MESSAGE = (
    "Registros de auditoria são imutáveis. "
    "Para corrigir, registre uma nova entrada com delta inverso."
)


class AuditEntryQuerySet(models.QuerySet):
    """QuerySet that refuses bulk changes."""

    def update(self, **kwargs):
        raise ValueError(IMMUTABLE_MESSAGE)

    def delete(self):
        raise ValueError(IMMUTABLE_MESSAGE)

    def for_lpn(self, lpn):
        return self.filter(lpn=lpn)

    def newest_first(self):
        return self.order_by('-timestamp', '-id')


class AuditEntry(models.Model):
    """
    Immutable record of one action on the stock.

    Rules:
    - NEVER update() or delete()
    - Corrections are new entries with inverse delta
    - The signed deltas recorded against an LPN add up to its balance

    Subject references are plain strings (not foreign keys): the history of
    a unit survives its hard deletion.
    """

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    # Actor (opaque, recorded as given)
    actor_name = models.CharField(max_length=150, blank=True, default='', verbose_name=_('Usuário'))
    actor_email = models.CharField(max_length=254, blank=True, default='', verbose_name=_('E-mail'))
    actor_role = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Perfil'))

    action = models.CharField(
        max_length=40,
        choices=AuditAction.choices,
        db_index=True,
        verbose_name=_('Ação'),
    )

    # Subject
    sku = models.CharField(max_length=50, blank=True, default='', db_index=True, verbose_name=_('SKU'))
    lpn = models.CharField(max_length=50, blank=True, default='', db_index=True, verbose_name=_('LPN'))
    lot = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Lote'))
    name = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Nome'))

    delta = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )
    value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Valor da operação'),
    )
    narrative = models.CharField(max_length=500, blank=True, default='', verbose_name=_('Detalhes'))

    document_ref = models.CharField(max_length=100, blank=True, default='', db_index=True, verbose_name=_('Documento'))
    kind = models.CharField(max_length=30, blank=True, default='LOGISTICA', verbose_name=_('Tipo'))
    category = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Categoria'))
    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Motivo'))
    counterparty = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Cliente/Fornecedor'))

    # Correlates every entry written by one batch call
    batch_ref = models.CharField(max_length=40, blank=True, default='', db_index=True, verbose_name=_('Lote de operação'))

    objects = AuditEntryQuerySet.as_manager()

    class Meta:
        verbose_name = _('Registro de auditoria')
        verbose_name_plural = _('Registros de auditoria')
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['lpn', 'timestamp'], name='stockledger_entry_lpn_ts_idx'),
        ]

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk:
            raise ValueError(IMMUTABLE_MESSAGE)
        if not self.action:
            raise ValueError("Ação é obrigatória")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — entries are immutable."""
        raise ValueError(IMMUTABLE_MESSAGE)

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{self.action} {self.lpn} {signal}{self.delta}"
