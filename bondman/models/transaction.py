"""
Transaction model — Immutable, append-only ledger of quantity changes.
"""

from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from bondman.models.enums import TransactionKind


class Transaction(models.Model):
    """
    Immutable record of a lot quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new transactions with inverse quantity
    - Updates Lot._quantity atomically on save()

    This is the ONLY model that changes quantity. Balance checks live in
    LedgerStore.record_transaction, which locks the lot before appending.
    """

    lot = models.ForeignKey(
        'bondman.Lot',
        on_delete=models.PROTECT,
        related_name='transactions',
        verbose_name=_('Lot'),
    )

    quantity = models.IntegerField(
        verbose_name=_('Quantity'),
        help_text=_('Positive = into the zone, negative = out'),
    )
    kind = models.CharField(
        max_length=20,
        choices=TransactionKind.choices,
        db_index=True,
        verbose_name=_('Kind'),
    )

    # External reference (receipt document, shipment id, count sheet)
    reference = models.CharField(
        max_length=100,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Reference'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Notes'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadata'))

    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Created at'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )

    class Meta:
        verbose_name = _('Transaction')
        verbose_name_plural = _('Transactions')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['lot', 'created_at'], name='bondman_txn_lot_created_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save transaction and update lot running total atomically."""
        if self.pk:
            raise ValueError(
                "Transactions are immutable. "
                "To correct, record a new transaction with the inverse quantity."
            )

        with transaction.atomic():
            super().save(*args, **kwargs)

            from bondman.models.lot import Lot

            Lot.objects.filter(pk=self.lot_id).update(
                _quantity=F('_quantity') + self.quantity,
                updated_at=timezone.now()
            )

    def delete(self, *args, **kwargs):
        """Prevent deletion — transactions are immutable."""
        raise ValueError(
            "Transactions are immutable. "
            "To reverse, record a new transaction with the inverse quantity."
        )

    def as_record(self) -> dict:
        return {
            'id': self.pk,
            'lot_id': self.lot_id,
            'quantity': self.quantity,
            'kind': self.kind,
            'created_at': self.created_at,
            'reference': self.reference,
            'notes': self.notes,
        }

    def __str__(self) -> str:
        signal = '+' if self.quantity > 0 else ''
        return f"{signal}{self.quantity} {self.kind} | {self.reference or '-'}"
