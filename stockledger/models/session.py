"""
CountSession model — summary of one completed physical inventory count.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class CountSession(models.Model):
    """
    One physical count, recorded in the same transaction as its adjustments.

    `reference` equals the batch_ref of the AuditEntries the count produced.
    """

    reference = models.CharField(max_length=40, unique=True, verbose_name=_('Referência'))
    started_at = models.DateTimeField(default=timezone.now, verbose_name=_('Início'))
    finished_at = models.DateTimeField(default=timezone.now, verbose_name=_('Fim'))
    responsible = models.CharField(max_length=150, blank=True, default='', verbose_name=_('Responsável'))
    items_count = models.PositiveIntegerField(default=0, verbose_name=_('Itens contados'))
    surplus_count = models.PositiveIntegerField(default=0, verbose_name=_('Ajustes positivos'))
    shortfall_count = models.PositiveIntegerField(default=0, verbose_name=_('Ajustes negativos'))
    note = models.TextField(blank=True, default='', verbose_name=_('Observação'))
    duration_seconds = models.PositiveIntegerField(default=0, verbose_name=_('Duração (s)'))

    class Meta:
        verbose_name = _('Sessão de inventário')
        verbose_name_plural = _('Sessões de inventário')
        ordering = ['-started_at']

    def __str__(self) -> str:
        return f"Inventário {self.reference} ({self.items_count} itens)"
