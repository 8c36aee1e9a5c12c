"""
Lot model — One receipt of a part, tracked as an independent quantity pool.
"""

import logging
from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger('bondman')


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def active(self):
        """Lots that still take part in on-hand (not voided)."""
        return self.filter(voided=False)

    def for_part(self, part):
        part_id = getattr(part, 'pk', part)
        return self.filter(part_id=part_id)

    def with_stock(self):
        return self.filter(_quantity__gt=0)


class Lot(models.Model):
    """
    A distinct receipt of a part for a customer at a location.

    Quantity is never written directly: it is derived from the
    Transaction ledger. `_quantity` is a running total updated in the
    same database transaction as every ledger append, so reads are O(1).
    Use recalculate() for audit/correction.
    """

    part = models.ForeignKey(
        'bondman.Part',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Part'),
    )
    customer = models.ForeignKey(
        'bondman.Customer',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Customer'),
    )
    storage_location = models.ForeignKey(
        'bondman.StorageLocation',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='lots',
        verbose_name=_('Storage location'),
    )
    unit_value = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Unit value'),
    )

    # Running total (updated atomically by Transaction)
    _quantity = models.IntegerField(
        default=0,
        verbose_name=_('Quantity'),
    )

    voided = models.BooleanField(default=False, db_index=True, verbose_name=_('Voided'))
    voided_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Voided at'))

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lot')
        verbose_name_plural = _('Lots')
        ordering = ['created_at', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(_quantity__gte=0),
                name='lot_quantity_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['part', 'voided'], name='bondman_lot_part_void_idx'),
        ]

    @property
    def quantity(self) -> int:
        """Current quantity — O(1) running total read."""
        return self._quantity

    @property
    def total_value(self) -> Decimal:
        return self.unit_value * self._quantity

    def ledger_total(self) -> int:
        """Sum of every transaction delta recorded against this lot."""
        return self.transactions.aggregate(
            t=Coalesce(Sum('quantity'), 0)
        )['t']

    def recalculate(self) -> int:
        """
        Recalculate quantity from the ledger.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            New calculated quantity
        """
        total = self.ledger_total()

        if total != self._quantity:
            old = self._quantity
            self._quantity = total
            self.save(update_fields=['_quantity', 'updated_at'])

            logger.warning(
                "ledger.lot.recalculated",
                extra={"lot_id": self.pk, "old": old, "new": total, "diff": total - old},
            )

        return total

    def as_record(self) -> dict:
        return {
            'id': self.pk,
            'part_id': self.part_id,
            'customer_id': self.customer_id,
            'storage_location_id': self.storage_location_id,
            'unit_value': self.unit_value,
            'created_at': self.created_at,
        }

    def __str__(self) -> str:
        loc = self.storage_location.code if self.storage_location else '?'
        return f"Lot {self.pk} {self.part} [{loc}]: {self._quantity}"
