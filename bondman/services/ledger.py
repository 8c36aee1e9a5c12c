"""
Ledger store — lots and their append-only transactions.

The only writer of quantity. Every mutation runs under
transaction.atomic() and locks the lot row before checking the balance.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from bondman.exceptions import InsufficientAllocation, InsufficientQuantity, NotFound, ValidationError
from bondman.locking import allocation_guard
from bondman.models.enums import TransactionKind
from bondman.models.lot import Lot
from bondman.models.transaction import Transaction
from bondman.services.allocation import AllocationReservation

logger = logging.getLogger('bondman')


def _as_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(fields=[field], message=f"{field} must be an integer", value=value)
    return value


def _as_money(value, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(fields=[field], message=f"{field} must be a number", value=value) from None


def _check_commitments(lot: Lot, withdrawal: int) -> None:
    """Refuse a write-down that would leave open shipments uncovered."""
    shortfalls = AllocationReservation.check_withdrawal(lot, withdrawal)
    if shortfalls:
        logger.info(
            "allocation.rejected",
            extra={"lot_id": lot.pk, "shortfalls": [s.as_dict() for s in shortfalls]},
        )
        raise InsufficientAllocation(lot_id=lot.pk, shortfalls=shortfalls)


class LedgerStore:
    """Lot and transaction operations."""

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_lot(cls, lot_id) -> Lot:
        try:
            return Lot.objects.get(pk=lot_id)
        except Lot.DoesNotExist:
            raise NotFound(resource='lot', id=lot_id) from None

    @classmethod
    def current_quantity(cls, lot_id) -> int:
        """
        Current quantity of a lot.

        O(1): reads the running total kept in lock-step with the ledger
        by Transaction.save(). Lot.recalculate() audits it.
        """
        try:
            return Lot.objects.values_list('_quantity', flat=True).get(pk=lot_id)
        except Lot.DoesNotExist:
            raise NotFound(resource='lot', id=lot_id) from None

    @classmethod
    def transaction_history(cls, lot_id):
        """
        Ledger entries for a lot, newest first.

        Returns a lazy QuerySet: restartable and finite.
        """
        if not Lot.objects.filter(pk=lot_id).exists():
            raise NotFound(resource='lot', id=lot_id)
        return Transaction.objects.filter(lot_id=lot_id).order_by('-created_at', '-id')

    # ══════════════════════════════════════════════════════════════
    # MUTATIONS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_lot(cls, part, customer, location, initial_quantity, unit_value,
                   reference='', notes='', user=None, **metadata) -> Lot:
        """
        Admit a receipt into the zone.

        Creates the Lot and its first `receipt` transaction in one unit
        of work.

        Raises:
            ValidationError: initial_quantity <= 0 or unit_value < 0
        """
        initial_quantity = _as_int(initial_quantity, 'initial_quantity')
        if initial_quantity <= 0:
            raise ValidationError(
                fields=['initial_quantity'],
                message='Initial quantity must be positive',
                requested=initial_quantity,
            )
        unit_value = _as_money(unit_value, 'unit_value')
        if unit_value < 0:
            raise ValidationError(fields=['unit_value'], message='Unit value cannot be negative')

        with transaction.atomic():
            lot = Lot.objects.create(
                part=part,
                customer=customer,
                storage_location=location,
                unit_value=unit_value,
                metadata=metadata,
            )
            Transaction.objects.create(
                lot=lot,
                quantity=initial_quantity,
                kind=TransactionKind.RECEIPT,
                reference=reference,
                notes=notes,
                user=user,
            )
            lot.refresh_from_db()

        logger.info(
            "ledger.lot.created",
            extra={"lot_id": lot.pk, "part_id": lot.part_id, "qty": initial_quantity},
        )
        return lot

    @classmethod
    def record_transaction(cls, lot_id, delta, kind, reference='', notes='',
                           user=None, **metadata) -> Transaction:
        """
        Append a ledger entry.

        receipt and adjustment may carry any sign; shipment is
        conventionally negative.

        Raises:
            NotFound: Unknown lot
            ValidationError: delta is 0 or not an integer, unknown kind,
                lot is voided
            InsufficientQuantity: balance would go below zero

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on the Lot
            - Checks the balance after the lock
        """
        delta = _as_int(delta, 'delta')
        if delta == 0:
            raise ValidationError(fields=['delta'], message='Transaction quantity cannot be zero')
        if kind not in TransactionKind.values:
            raise ValidationError(fields=['kind'], message=f"Unknown transaction kind {kind!r}")

        with transaction.atomic():
            try:
                lot = Lot.objects.select_for_update().get(pk=lot_id)
            except Lot.DoesNotExist:
                raise NotFound(resource='lot', id=lot_id) from None

            if lot.voided:
                raise ValidationError(fields=['lot_id'], message='Lot is voided', lot_id=lot.pk)

            if lot._quantity + delta < 0:
                logger.info(
                    "ledger.transaction.rejected",
                    extra={"lot_id": lot.pk, "available": lot._quantity, "delta": delta},
                )
                raise InsufficientQuantity(
                    lot_id=lot.pk,
                    available=lot._quantity,
                    requested=-delta,
                )

            entry = Transaction.objects.create(
                lot=lot,
                quantity=delta,
                kind=kind,
                reference=reference,
                notes=notes,
                user=user,
                metadata=metadata,
            )

        logger.info(
            "ledger.transaction.recorded",
            extra={"lot_id": lot.pk, "kind": kind, "qty": delta, "reference": reference},
        )
        return entry

    @classmethod
    def adjust_lot(cls, lot_id, new_quantity, reason, user=None) -> Transaction | None:
        """
        Inventory count correction.

        Calculates delta automatically: new_quantity - current quantity.
        Returns None when the lot already holds new_quantity.

        Raises:
            ValidationError: Empty reason or negative target
            InsufficientAllocation: A write-down below what open
                shipments have committed
        """
        if not reason:
            raise ValidationError(fields=['reason'], message='Reason is required')
        new_quantity = _as_int(new_quantity, 'new_quantity')
        if new_quantity < 0:
            raise ValidationError(fields=['new_quantity'], message='Quantity cannot be negative')

        part_id = cls.get_lot(lot_id).part_id
        with allocation_guard([part_id]):
            lot = Lot.objects.select_for_update().get(pk=lot_id)

            old = lot._quantity
            if new_quantity == old:
                return None
            if new_quantity < old:
                _check_commitments(lot, old - new_quantity)

            entry = cls.record_transaction(
                lot.pk,
                new_quantity - old,
                TransactionKind.ADJUSTMENT,
                notes=f"{reason} ({old} → {new_quantity})",
                user=user,
            )

        logger.info(
            "ledger.lot.adjusted",
            extra={"lot_id": lot.pk, "from": old, "to": new_quantity},
        )
        return entry

    @classmethod
    def void_lot(cls, lot_id, reason, user=None) -> Lot:
        """
        Remove a lot from the zone's on-hand.

        Writes an adjustment down to zero, then flags the lot voided.
        A voided lot takes no further transactions. Refused with
        InsufficientAllocation while open shipments depend on its stock.
        """
        if not reason:
            raise ValidationError(fields=['reason'], message='Reason is required')

        part_id = cls.get_lot(lot_id).part_id
        with allocation_guard([part_id]):
            lot = Lot.objects.select_for_update().get(pk=lot_id)

            if lot.voided:
                raise ValidationError(fields=['lot_id'], message='Lot is already voided', lot_id=lot.pk)

            if lot._quantity:
                _check_commitments(lot, lot._quantity)
                cls.record_transaction(
                    lot.pk,
                    -lot._quantity,
                    TransactionKind.ADJUSTMENT,
                    notes=f"VOID: {reason}",
                    user=user,
                )

            Lot.objects.filter(pk=lot.pk).update(voided=True, voided_at=timezone.now())
            lot.refresh_from_db()

        logger.info("ledger.lot.voided", extra={"lot_id": lot.pk, "reason": reason})
        return lot

    @classmethod
    def recalculate(cls, lot_id) -> int:
        """Audit one lot against its ledger; repairs the running total."""
        with transaction.atomic():
            try:
                lot = Lot.objects.select_for_update().get(pk=lot_id)
            except Lot.DoesNotExist:
                raise NotFound(resource='lot', id=lot_id) from None
            return lot.recalculate()
