"""
Allocation reservation — available-to-promise per part.

available_to_promise = on_hand - committed

on_hand: running totals of the part's active lots (Ledger Store).
committed: item quantities of every open (non-terminal) preshipment.

Read-only against the ledger. Callers that write a commitment must run
check and write inside bondman.locking.allocation_guard().
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass

from django.db.models import Sum
from django.db.models.functions import Coalesce

from bondman.exceptions import InsufficientAllocation, NotFound, ValidationError
from bondman.models.lot import Lot
from bondman.models.part import Part
from bondman.models.preshipment import TERMINAL_STAGES, PreshipmentItem

logger = logging.getLogger('bondman')


@dataclass(frozen=True)
class Shortfall:
    part_id: int
    available: int
    requested: int
    lot_id: int | None = None

    def as_dict(self) -> dict[str, int]:
        data = asdict(self)
        if self.lot_id is None:
            del data['lot_id']
        return data


def _field(item, name, default=None):
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def item_part_id(item):
    """part_id of a requested item (mapping or object with .part/.part_id)."""
    part_id = _field(item, 'part_id')
    if part_id is None:
        part = _field(item, 'part')
        part_id = getattr(part, 'pk', part)
    return part_id


def item_lot_id(item):
    lot_id = _field(item, 'lot_id')
    if lot_id is None:
        lot = _field(item, 'lot')
        lot_id = getattr(lot, 'pk', lot)
    return lot_id


def _open_items(exclude_shipment_id=None):
    qs = PreshipmentItem.objects.exclude(preshipment__stage__in=TERMINAL_STAGES)
    if exclude_shipment_id is not None:
        qs = qs.exclude(preshipment__shipment_id=exclude_shipment_id)
    return qs


class AllocationReservation:
    """Available-to-promise queries and the admission check."""

    @classmethod
    def on_hand(cls, part_id) -> int:
        """Sum of current quantity across the part's active lots."""
        return Lot.objects.active().filter(part_id=part_id).aggregate(
            t=Coalesce(Sum('_quantity'), 0)
        )['t']

    @classmethod
    def committed(cls, part_id, exclude_shipment_id=None) -> int:
        """
        Quantity of the part promised to open preshipments.

        Args:
            part_id: Part primary key
            exclude_shipment_id: Shipment to leave out (re-validating
                an update of itself)
        """
        qs = _open_items(exclude_shipment_id).filter(part_id=part_id)
        return qs.aggregate(t=Coalesce(Sum('quantity'), 0))['t']

    @classmethod
    def available_to_promise(cls, part_id, exclude_shipment_id=None) -> int:
        return cls.on_hand(part_id) - cls.committed(part_id, exclude_shipment_id)

    @classmethod
    def pinned(cls, lot_id, exclude_shipment_id=None) -> int:
        """Quantity open preshipments have pinned to one lot."""
        qs = _open_items(exclude_shipment_id).filter(lot_id=lot_id)
        return qs.aggregate(t=Coalesce(Sum('quantity'), 0))['t']

    @classmethod
    def pinned_by_lot(cls, part_id, exclude_shipment_id=None) -> dict:
        """{lot_id: pinned quantity} across the part's lots."""
        rows = (
            _open_items(exclude_shipment_id)
            .filter(part_id=part_id, lot__isnull=False)
            .values('lot_id')
            .annotate(t=Sum('quantity'))
        )
        return {row['lot_id']: row['t'] for row in rows}

    @classmethod
    def check_allocation(cls, items: Iterable, exclude_shipment_id=None) -> list[Shortfall]:
        """
        Shortfalls for a request, empty when it fits.

        Items for the same part are summed before comparing, so two lines
        of 30 against 50 available is a shortfall of requested=60.
        Items pinned to a lot must also fit what is left of that lot
        after other open shipments' pins; such shortfalls carry lot_id.

        Args:
            items: Mappings or objects with part_id (or part), quantity
                and optional lot_id (or lot)
            exclude_shipment_id: Shipment whose own commitment is ignored

        Raises:
            NotFound: Unknown part or lot
            ValidationError: Quantity not a positive integer, or lot does
                not belong to the item's part
        """
        requested: dict = {}
        pinned: dict = {}
        lot_parts = {}
        for item in items:
            part_id = item_part_id(item)
            quantity = _field(item, 'quantity')
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError(
                    fields=['quantity'],
                    message='Quantity must be a positive integer',
                    part_id=part_id,
                    quantity=quantity,
                )
            requested[part_id] = requested.get(part_id, 0) + quantity
            lot_id = item_lot_id(item)
            if lot_id is not None:
                pinned[lot_id] = pinned.get(lot_id, 0) + quantity
                lot_parts[lot_id] = part_id

        known = set(Part.objects.filter(pk__in=list(requested)).values_list('pk', flat=True))
        missing = [pk for pk in requested if pk not in known]
        if missing:
            raise NotFound(resource='part', ids=missing)

        lots = {}
        if lot_parts:
            lots = {lot.pk: lot for lot in Lot.objects.filter(pk__in=list(lot_parts))}
            for lot_id, part_id in lot_parts.items():
                if lot_id not in lots:
                    raise NotFound(resource='lot', id=lot_id)
                if lots[lot_id].part_id != part_id:
                    raise ValidationError(
                        fields=['lot_id'],
                        message='Lot does not belong to the requested part',
                        lot_id=lot_id,
                        part_id=part_id,
                    )

        shortfalls = []
        for part_id, qty in requested.items():
            available = cls.available_to_promise(part_id, exclude_shipment_id)
            if qty > available:
                shortfalls.append(Shortfall(part_id=part_id, available=available, requested=qty))
        for lot_id, qty in pinned.items():
            lot = lots[lot_id]
            on_lot = 0 if lot.voided else lot._quantity
            available = on_lot - cls.pinned(lot_id, exclude_shipment_id)
            if qty > available:
                shortfalls.append(Shortfall(
                    part_id=lot.part_id, available=available, requested=qty, lot_id=lot_id,
                ))
        return shortfalls

    @classmethod
    def check_withdrawal(cls, lot, quantity) -> list[Shortfall]:
        """
        Shortfalls if `quantity` left the lot outside any shipment.

        Empty when on-hand after the withdrawal still covers the part's
        commitments and the lot still covers its own pins.
        """
        shortfalls = []
        available = cls.available_to_promise(lot.part_id)
        if quantity > available:
            shortfalls.append(Shortfall(part_id=lot.part_id, available=available, requested=quantity))
        available = lot._quantity - cls.pinned(lot.pk)
        if quantity > available:
            shortfalls.append(Shortfall(
                part_id=lot.part_id, available=available, requested=quantity, lot_id=lot.pk,
            ))
        return shortfalls

    @classmethod
    def reserve(cls, items: Iterable, exclude_shipment_id=None) -> None:
        """
        Admit a request or reject it whole.

        Must be called inside allocation_guard() together with the write
        that records the commitment.

        Raises:
            InsufficientAllocation: With the shortfall list
        """
        shortfalls = cls.check_allocation(items, exclude_shipment_id)
        if shortfalls:
            logger.info(
                "allocation.rejected",
                extra={
                    "shipment_id": exclude_shipment_id,
                    "shortfalls": [s.as_dict() for s in shortfalls],
                },
            )
            raise InsufficientAllocation(shortfalls=shortfalls)
