"""
Preshipment lifecycle — create, update, read.

Stage and entry summary status are NOT writable here; they move only
through ShipmentWorkflow.attempt_transition().
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction

from bondman import compliance
from bondman.conf import bondman_settings
from bondman.exceptions import ConflictError, InvalidTransition, NotFound, ValidationError
from bondman.locking import allocation_guard
from bondman.models.customer import Customer
from bondman.models.enums import EntrySummaryStatus, EntryType, Priority, Stage
from bondman.models.preshipment import Preshipment, PreshipmentItem
from bondman.services.allocation import AllocationReservation, _field, item_lot_id, item_part_id

logger = logging.getLogger('bondman')

# Free-text fields accepted by create()/update()
TEXT_FIELDS = (
    'entry_number',
    'filing_district_port',
    'entry_filer_code',
    'importer_of_record_number',
    'foreign_trade_zone_id',
    'bill_of_lading_number',
    'voyage_flight_trip_number',
    'carrier_code',
    'importing_conveyance_name',
    'manufacturer_name',
    'manufacturer_address',
    'seller_name',
    'seller_address',
    'bond_type_code',
    'surety_company_code',
    'compliance_notes',
    'carrier_name',
    'tracking_number',
    'notes',
)
OTHER_FIELDS = (
    'date_of_importation',
    'consolidated_entry',
    'weekly_entry',
    'zone_week_ending_date',
    'requires_pga_review',
    'estimated_total_value',
    'estimated_duty_amount',
    'requested_ship_date',
    'priority',
    'metadata',
)
WRITABLE_FIELDS = frozenset(TEXT_FIELDS + OTHER_FIELDS)

# Only workflow actions may set these
PROTECTED_FIELDS = frozenset({
    'shipment_id',
    'stage',
    'stage_before_hold',
    'entry_summary_status',
    'customer',
    'customer_id',
    'ready_at',
    'staged_at',
    'label_generated_at',
    'filed_at',
    'shipped_at',
    'cancelled_at',
    'driver_name',
    'driver_license_number',
    'license_plate_number',
    'signature_data',
    'driver_notes',
    'created_at',
    'updated_at',
})


def sanitize(value):
    """Trim and strip angle brackets from free text."""
    if not isinstance(value, str):
        return value
    return value.strip().replace('<', '').replace('>', '')


def _clean_items(items) -> list[dict]:
    """Validate line items. Collects every problem before raising."""
    if not items:
        raise ValidationError(fields=['items'], message='At least one item is required')

    cleaned = []
    violations = []
    for index, item in enumerate(items):
        part_id = item_part_id(item)
        quantity = _field(item, 'quantity', _field(item, 'qty'))
        if part_id is None:
            violations.append(compliance.Violation(f'items[{index}].part_id', 'required', 'Part is required'))
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            violations.append(compliance.Violation(
                f'items[{index}].quantity', 'invalid', 'Quantity must be a positive integer',
            ))
        try:
            unit_value = Decimal(str(_field(item, 'unit_value', 0) or 0))
        except ArithmeticError:
            violations.append(compliance.Violation(
                f'items[{index}].unit_value', 'invalid', 'Unit value must be a number',
            ))
            unit_value = Decimal('0')
        cleaned.append({
            'part_id': part_id,
            'lot_id': item_lot_id(item),
            'quantity': quantity,
            'unit_value': unit_value,
        })

    if violations:
        raise ValidationError(violations=violations)
    return cleaned


def _check_fields(fields: dict) -> None:
    unknown = set(fields) - WRITABLE_FIELDS
    protected = unknown & PROTECTED_FIELDS
    if protected:
        raise ValidationError(
            fields=sorted(protected),
            message='Stage, status and lifecycle fields change only through workflow actions',
        )
    if unknown:
        raise ValidationError(fields=sorted(unknown), message='Unknown preshipment fields')

    violations = []
    priority = fields.get('priority')
    if priority is not None and priority not in Priority.values:
        violations.append(compliance.Violation('priority', 'invalid', f"Priority must be one of {Priority.values}"))
    tracking = fields.get('tracking_number') or ''
    if len(tracking) > bondman_settings.MAX_TRACKING_NUMBER_LENGTH:
        violations.append(compliance.Violation(
            'tracking_number', 'too_long',
            f"Tracking number must be {bondman_settings.MAX_TRACKING_NUMBER_LENGTH} characters or less",
        ))
    if violations:
        raise ValidationError(violations=violations)


def _items_total(items: list[dict]) -> Decimal:
    return sum((item['unit_value'] * item['quantity'] for item in items), Decimal('0'))


def _write_items(preshipment: Preshipment, items: list[dict]) -> None:
    PreshipmentItem.objects.bulk_create([
        PreshipmentItem(
            preshipment=preshipment,
            position=index,
            part_id=item['part_id'],
            lot_id=item['lot_id'],
            quantity=item['quantity'],
            unit_value=item['unit_value'],
        )
        for index, item in enumerate(items)
    ])


class Preshipments:
    """Create, update and read outbound shipments."""

    @classmethod
    def get(cls, shipment_id) -> Preshipment:
        try:
            return Preshipment.objects.select_related('customer').get(shipment_id=shipment_id)
        except Preshipment.DoesNotExist:
            raise NotFound(resource='preshipment', shipment_id=shipment_id) from None

    @classmethod
    def list(cls, stage=None, status=None, customer=None):
        qs = Preshipment.objects.select_related('customer')
        if stage is not None:
            qs = qs.filter(stage=stage)
        if status is not None:
            qs = qs.filter(entry_summary_status=status)
        if customer is not None:
            qs = qs.filter(customer_id=getattr(customer, 'pk', customer))
        return qs

    @classmethod
    def create(cls, shipment_id, entry_type, customer, items, user=None, **fields) -> Preshipment:
        """
        Create a preshipment and commit its items against inventory.

        1. Validates required fields and line items
        2. Runs compliance checks, reporting every violation at once
        3. Inside the allocation guard: rejects duplicates, checks
           available-to-promise, inserts

        Always starts in Planning / NOT_PREPARED.

        Raises:
            ValidationError, NotFound, InsufficientAllocation, ConflictError
        """
        shipment_id = sanitize(shipment_id or '')
        missing = [
            name for name, value in (
                ('shipment_id', shipment_id), ('entry_type', entry_type), ('customer', customer),
            ) if not value
        ]
        if missing:
            raise ValidationError(fields=missing, message=f"Missing required fields: {', '.join(missing)}")
        if entry_type not in EntryType.values:
            raise ValidationError(fields=['entry_type'], message=f"Entry type must be one of {EntryType.values}")

        customer_id = getattr(customer, 'pk', customer)
        if not Customer.objects.filter(pk=customer_id).exists():
            raise NotFound(resource='customer', id=customer_id)

        _check_fields(fields)
        fields = {k: sanitize(v) if k in TEXT_FIELDS else v for k, v in fields.items()}
        violations = compliance.validate(fields)
        if violations:
            raise ValidationError(violations=violations)
        fields = compliance.normalize(fields)

        cleaned = _clean_items(items)
        if not fields.get('estimated_total_value'):
            fields['estimated_total_value'] = _items_total(cleaned)

        part_ids = {item['part_id'] for item in cleaned}
        with allocation_guard(part_ids):
            if Preshipment.objects.filter(shipment_id=shipment_id).exists():
                raise ConflictError(
                    message=f"Shipment ID '{shipment_id}' already exists",
                    shipment_id=shipment_id,
                )

            AllocationReservation.reserve(cleaned)

            try:
                with transaction.atomic():
                    preshipment = Preshipment.objects.create(
                        shipment_id=shipment_id,
                        entry_type=entry_type,
                        customer_id=customer_id,
                        stage=Stage.PLANNING,
                        entry_summary_status=EntrySummaryStatus.NOT_PREPARED,
                        **fields,
                    )
                    _write_items(preshipment, cleaned)
            except IntegrityError:
                raise ConflictError(
                    message=f"Shipment ID '{shipment_id}' already exists",
                    shipment_id=shipment_id,
                ) from None

        logger.info(
            "preshipment.created",
            extra={
                "shipment_id": shipment_id,
                "items": len(cleaned),
                "user": getattr(user, 'pk', None),
            },
        )
        return preshipment

    @classmethod
    def update(cls, shipment_id, items=None, user=None, **fields) -> Preshipment:
        """
        Update regulatory/transport fields and optionally replace items.

        Regulatory fields are validated on the merged record. Replaced
        items are re-checked excluding this shipment's own commitment,
        inside the allocation guard over old and new parts.

        Raises:
            ValidationError: Protected/unknown field or compliance violation
            InvalidTransition: Items changed on a shipped/cancelled shipment
            ConflictError: Items replaced concurrently; safe to retry
            InsufficientAllocation, NotFound
        """
        _check_fields(fields)
        fields = {k: sanitize(v) if k in TEXT_FIELDS else v for k, v in fields.items()}

        current = cls.get(shipment_id)
        if fields.keys() & compliance.REGULATORY_FIELDS:
            merged = {name: getattr(current, name) for name in compliance.REGULATORY_FIELDS}
            merged.update(fields)
            violations = compliance.validate(merged)
            if violations:
                raise ValidationError(violations=violations)
            fields = compliance.normalize(fields)

        cleaned = _clean_items(items) if items is not None else None
        part_ids = set(current.items.values_list('part_id', flat=True))
        if cleaned is not None:
            part_ids |= {item['part_id'] for item in cleaned}

        with allocation_guard(part_ids):
            preshipment = Preshipment.objects.select_for_update().get(pk=current.pk)

            if cleaned is not None:
                if preshipment.is_terminal:
                    raise InvalidTransition(
                        current_stage=preshipment.stage,
                        current_status=preshipment.entry_summary_status,
                        action='update_items',
                    )
                # Items replaced between the read above and the lock
                if not set(preshipment.items.values_list('part_id', flat=True)) <= part_ids:
                    raise ConflictError(
                        message='Items changed concurrently, retry the update',
                        shipment_id=preshipment.shipment_id,
                    )
                AllocationReservation.reserve(cleaned, exclude_shipment_id=preshipment.shipment_id)
                preshipment.items.all().delete()
                _write_items(preshipment, cleaned)
                if 'estimated_total_value' not in fields:
                    fields['estimated_total_value'] = _items_total(cleaned)

            for name, value in fields.items():
                setattr(preshipment, name, value)
            preshipment.save()

        logger.info(
            "preshipment.updated",
            extra={
                "shipment_id": preshipment.shipment_id,
                "fields": sorted(fields),
                "items_replaced": cleaned is not None,
                "user": getattr(user, 'pk', None),
            },
        )
        return preshipment
