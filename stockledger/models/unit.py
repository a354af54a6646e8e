"""
StockUnit model — one physical lot of material at a location.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import UnitStatus


class StockUnit(models.Model):
    """
    A stock unit identified by its LPN (license plate number).

    The `quantity` column is the authoritative balance. It only changes
    through BatchMutator, which writes it together with the matching
    AuditEntry inside one transaction.

    Concurrency:
    - `version` increments on every write
    - writers present the version they read; a mismatch is a conflict
    """

    lpn = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('LPN'),
    )

    # Material
    sku = models.CharField(max_length=50, db_index=True, verbose_name=_('SKU'))
    name = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Nome'))
    category = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Categoria'))
    brand = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Marca'))
    supplier = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Fornecedor'))
    lot = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Lote'))
    document_ref = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Documento de origem'),
        help_text=_('NF / controle que originou a entrada'),
    )

    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Custo unitário'),
    )
    width = models.DecimalField(
        max_digits=8,
        decimal_places=3,
        default=Decimal('1.52'),
        verbose_name=_('Largura'),
    )

    # Balance
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade'),
    )
    status = models.CharField(
        max_length=20,
        choices=UnitStatus.choices,
        default=UnitStatus.CLOSED,
        db_index=True,
        verbose_name=_('Status'),
    )
    standard_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Metragem padrão'),
    )
    min_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Estoque mínimo'),
    )

    # Location (free text, not validated against any layout)
    zone = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Coluna'))
    level = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Prateleira'))
    box = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Caixa'))

    note = models.TextField(blank=True, default='', verbose_name=_('Observação'))
    inbound_reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Motivo de entrada'))
    responsible = models.CharField(max_length=150, blank=True, default='', verbose_name=_('Responsável'))

    version = models.PositiveIntegerField(default=1, verbose_name=_('Versão'))
    created_at = models.DateTimeField(default=timezone.now, verbose_name=_('Entrada'))
    updated_at = models.DateTimeField(default=timezone.now, verbose_name=_('Última atualização'))

    class Meta:
        verbose_name = _('Unidade de estoque')
        verbose_name_plural = _('Unidades de estoque')
        ordering = ['lpn']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name='stockunit_quantity_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(unit_cost__gte=0),
                name='stockunit_unit_cost_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['zone', 'level'], name='stockledger_unit_location_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.lpn} {self.sku} [{self.zone}-{self.level}]: {self.quantity}"
