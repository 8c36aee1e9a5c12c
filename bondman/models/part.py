"""
Part model — Catalog reference for what is stored.

Part master data is maintained elsewhere; Bondman only needs a stable
row to hang lots and shipment lines on.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Part(models.Model):

    code = models.CharField(
        max_length=64,
        unique=True,
        verbose_name=_('Part number'),
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Description'),
    )
    hts_code = models.CharField(
        max_length=20,
        blank=True,
        default='',
        verbose_name=_('HTS code'),
    )
    unit_of_measure = models.CharField(
        max_length=10,
        default='EA',
        verbose_name=_('Unit of measure'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Part')
        verbose_name_plural = _('Parts')
        ordering = ['code']

    def __str__(self) -> str:
        return self.code
