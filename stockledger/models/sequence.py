"""
LpnSequence model — monotonic counter behind LPN allocation.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LpnSequence(models.Model):
    """Last number issued for an LPN prefix. Incremented under row lock."""

    prefix = models.CharField(max_length=10, unique=True, verbose_name=_('Prefixo'))
    last_value = models.PositiveBigIntegerField(default=0, verbose_name=_('Último número'))

    class Meta:
        verbose_name = _('Sequência de LPN')
        verbose_name_plural = _('Sequências de LPN')

    def __str__(self) -> str:
        return f"{self.prefix}: {self.last_value}"
