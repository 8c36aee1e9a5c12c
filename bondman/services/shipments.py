"""
Shipment workflow service — applies bondman.workflow to stored preshipments.

Every action goes through attempt_transition():

    1. lock the preshipment row
    2. resolve (stage, status, action) against the transition tables
    3. run the action's side effects
    4. save, append a WorkflowEvent, log

An illegal action raises InvalidTransition before step 3: nothing is
written. driver_signoff is the only action that touches the ledger.
"""

import logging
import secrets
import string
import time
from collections.abc import Mapping

from django.utils import timezone

from bondman import compliance, workflow
from bondman.conf import bondman_settings
from bondman.exceptions import InsufficientQuantity, InvalidTransition, NotFound, ValidationError
from bondman.locking import allocation_guard
from bondman.models.enums import EventAxis, Stage, TransactionKind
from bondman.models.events import ShippingLabel, WorkflowEvent
from bondman.models.lot import Lot
from bondman.models.preshipment import Preshipment, PreshipmentItem
from bondman.services.allocation import AllocationReservation
from bondman.services.ledger import LedgerStore
from bondman.workflow import Action

logger = logging.getLogger('bondman')

SIGNOFF_REQUIRED_FIELDS = ('driver_name', 'driver_license_number', 'license_plate_number')

_TRACKING_ALPHABET = string.digits + string.ascii_uppercase


def generate_tracking_number() -> str:
    """TRK + last 6 digits of the clock in ms + 6 random base-36 characters."""
    stamp = str(int(time.time() * 1000))[-6:]
    suffix = ''.join(secrets.choice(_TRACKING_ALPHABET) for _ in range(6))
    return f"{bondman_settings.TRACKING_PREFIX}{stamp}{suffix}"


def _lookup(shipment):
    if isinstance(shipment, Preshipment):
        return {'pk': shipment.pk}
    return {'shipment_id': shipment}


class ShipmentWorkflow:
    """Stage and entry-summary transitions on preshipments."""

    @classmethod
    def attempt_transition(cls, shipment, action, payload=None, user=None) -> Preshipment:
        """
        Apply one workflow action.

        Args:
            shipment: Preshipment or its shipment_id
            action: workflow.Action value
            payload: Action-specific data (driver details, label options,
                entry number, cancel reason)
            user: Acting user, stored on the event and ledger rows

        Returns:
            The updated Preshipment

        Raises:
            NotFound: Unknown shipment
            InvalidTransition: Action not allowed from the current state
            ValidationError: Payload or record missing required data
            InsufficientQuantity: Lots cannot cover a signoff
        """
        payload = dict(payload or {})
        action = str(action)

        # Signoff debits lots: serialize with allocation on the same parts
        part_ids = ()
        if action == Action.DRIVER_SIGNOFF:
            part_ids = set(
                PreshipmentItem.objects.filter(
                    **{f'preshipment__{k}': v for k, v in _lookup(shipment).items()}
                ).values_list('part_id', flat=True)
            )

        with allocation_guard(part_ids):
            try:
                preshipment = Preshipment.objects.select_for_update().get(**_lookup(shipment))
            except Preshipment.DoesNotExist:
                raise NotFound(resource='preshipment', shipment_id=str(shipment)) from None

            from_stage = preshipment.stage
            from_status = preshipment.entry_summary_status
            try:
                target = workflow.resolve(
                    from_stage, from_status, action, preshipment.stage_before_hold,
                )
            except InvalidTransition:
                logger.info(
                    "workflow.rejected",
                    extra={
                        "shipment_id": preshipment.shipment_id,
                        "stage": from_stage,
                        "status": from_status,
                        "action": action,
                    },
                )
                raise

            handler = getattr(cls, f'_on_{action}', None)
            details = handler(preshipment, target, payload, user) if handler else {}

            preshipment.stage = target.stage
            preshipment.entry_summary_status = target.status
            preshipment.save()

            axis = workflow.axis_of(action)
            if axis == EventAxis.STATUS:
                from_state, to_state = from_status, target.status
            else:
                from_state, to_state = from_stage, target.stage
            WorkflowEvent.objects.create(
                preshipment=preshipment,
                axis=axis,
                action=action,
                from_state=from_state,
                to_state=to_state,
                payload=details or {},
                user=user,
            )

        logger.info(
            "workflow.transition",
            extra={
                "shipment_id": preshipment.shipment_id,
                "action": action,
                "from": from_state,
                "to": to_state,
                "user": getattr(user, 'pk', None),
            },
        )
        if target.stage == Stage.SHIPPED and from_stage != Stage.SHIPPED:
            logger.info(
                "workflow.shipped",
                extra={
                    "shipment_id": preshipment.shipment_id,
                    "consumed": details.get('consumed', []),
                },
            )
        return preshipment

    # ══════════════════════════════════════════════════════════════
    # SIDE EFFECTS (run after resolve(), inside the same transaction)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _on_advance(cls, preshipment, target, payload, user) -> dict:
        now = timezone.now()
        if target.stage == Stage.READY_TO_SHIP:
            preshipment.ready_at = now
        elif target.stage == Stage.STAGED:
            preshipment.staged_at = now
        return {}

    @classmethod
    def _on_hold(cls, preshipment, target, payload, user) -> dict:
        preshipment.stage_before_hold = preshipment.stage
        return {'reason': str(payload.get('reason', ''))}

    @classmethod
    def _on_resume(cls, preshipment, target, payload, user) -> dict:
        preshipment.stage_before_hold = ''
        return {}

    @classmethod
    def _on_cancel(cls, preshipment, target, payload, user) -> dict:
        preshipment.stage_before_hold = ''
        preshipment.cancelled_at = timezone.now()
        return {'reason': str(payload.get('reason', ''))}

    @classmethod
    def _on_mark_ready(cls, preshipment, target, payload, user) -> dict:
        record = {name: getattr(preshipment, name) for name in compliance.REGULATORY_FIELDS}
        violations = compliance.require_filing_fields(record) + compliance.validate(record)
        if violations:
            raise ValidationError(violations=violations)
        return {}

    @classmethod
    def _on_file(cls, preshipment, target, payload, user) -> dict:
        entry_number = payload.get('entry_number')
        if entry_number:
            preshipment.entry_number = str(entry_number).strip()
        preshipment.filed_at = timezone.now()
        return {'entry_number': preshipment.entry_number}

    @classmethod
    def _on_generate_label(cls, preshipment, target, payload, user) -> dict:
        tracking_number = payload.get('tracking_number') or generate_tracking_number()
        if len(tracking_number) > bondman_settings.MAX_TRACKING_NUMBER_LENGTH:
            raise ValidationError(
                fields=['tracking_number'],
                message=f"Tracking number must be {bondman_settings.MAX_TRACKING_NUMBER_LENGTH} characters or less",
            )
        carrier = payload.get('carrier') or preshipment.carrier_name or bondman_settings.DEFAULT_CARRIER
        service_type = payload.get('service_type') or bondman_settings.DEFAULT_SERVICE_TYPE
        label_format = payload.get('label_format') or bondman_settings.DEFAULT_LABEL_FORMAT

        ship_from = dict(bondman_settings.SHIP_FROM)
        ship_from.update(payload.get('ship_from') or {})
        ship_to = dict(payload.get('ship_to') or {})
        ship_to.update({k: v for k, v in preshipment.customer.ship_to().items() if v})
        package = payload.get('package') or {}

        data = {
            'shipment_id': preshipment.shipment_id,
            'ship_from': ship_from,
            'ship_to': ship_to,
            'package': {
                'weight': package.get('weight', 1),
                'length': package.get('length', 12),
                'width': package.get('width', 12),
                'height': package.get('height', 12),
                'package_type': package.get('package_type', 'BOX'),
            },
            'items': [
                {
                    'part_id': item.part_id,
                    'part_code': item.part.code,
                    'quantity': item.quantity,
                    'unit_value': str(item.unit_value),
                }
                for item in preshipment.items.select_related('part')
            ],
        }
        label = ShippingLabel.objects.create(
            preshipment=preshipment,
            carrier=carrier,
            service_type=service_type,
            tracking_number=tracking_number,
            label_format=label_format,
            data=data,
        )

        preshipment.tracking_number = tracking_number
        preshipment.carrier_name = carrier
        preshipment.label_generated_at = timezone.now()
        return {'label_id': label.pk, 'tracking_number': tracking_number, 'carrier': carrier}

    @classmethod
    def _on_driver_signoff(cls, preshipment, target, payload, user) -> dict:
        missing = [name for name in SIGNOFF_REQUIRED_FIELDS if not str(payload.get(name) or '').strip()]
        if missing:
            raise ValidationError(
                fields=missing,
                message=f"Missing required driver fields: {', '.join(missing)}",
            )
        tracking_number = payload.get('tracking_number')
        if tracking_number and len(tracking_number) > bondman_settings.MAX_TRACKING_NUMBER_LENGTH:
            raise ValidationError(
                fields=['tracking_number'],
                message=f"Tracking number must be {bondman_settings.MAX_TRACKING_NUMBER_LENGTH} characters or less",
            )

        now = timezone.now()
        for name in SIGNOFF_REQUIRED_FIELDS:
            setattr(preshipment, name, str(payload[name]).strip())
        if payload.get('carrier_name'):
            preshipment.carrier_name = payload['carrier_name']
        if tracking_number:
            preshipment.tracking_number = tracking_number
        if payload.get('driver_notes'):
            preshipment.driver_notes = payload['driver_notes']
        signature = payload.get('signature_data')
        if isinstance(signature, Mapping):
            preshipment.signature_data = {
                'signature_image': signature.get('image'),
                'signature_method': signature.get('method') or 'digital',
                'signature_timestamp': now.isoformat(),
            }
        preshipment.shipped_at = now

        consumed = cls._consume_lots(preshipment, user)
        return {
            'driver_name': preshipment.driver_name,
            'license_plate_number': preshipment.license_plate_number,
            'consumed': consumed,
        }

    @classmethod
    def _consume_lots(cls, preshipment, user) -> list[dict]:
        """
        Record one `shipment` transaction per lot drawn.

        Lot-pinned items first, then FIFO (oldest lot first) across the
        part's active lots. The FIFO draw leaves alone whatever other open
        shipments have pinned to a lot. Raises InsufficientQuantity if
        stock is gone.
        """
        items = list(preshipment.items.all())
        consumed = []
        reference = preshipment.shipment_id

        for item in (i for i in items if i.lot_id is not None):
            LedgerStore.record_transaction(
                item.lot_id, -item.quantity, TransactionKind.SHIPMENT,
                reference=reference, user=user,
            )
            consumed.append({'lot_id': item.lot_id, 'part_id': item.part_id, 'quantity': item.quantity})

        for item in (i for i in items if i.lot_id is None):
            remaining = item.quantity
            reserved = AllocationReservation.pinned_by_lot(item.part_id, exclude_shipment_id=reference)
            lots = (
                Lot.objects.active()
                .select_for_update()
                .filter(part_id=item.part_id, _quantity__gt=0)
                .order_by('created_at', 'id')
            )
            for lot in lots:
                if remaining == 0:
                    break
                take = min(remaining, lot._quantity - reserved.get(lot.pk, 0))
                if take <= 0:
                    continue
                LedgerStore.record_transaction(
                    lot.pk, -take, TransactionKind.SHIPMENT,
                    reference=reference, user=user,
                )
                consumed.append({'lot_id': lot.pk, 'part_id': item.part_id, 'quantity': take})
                remaining -= take

            if remaining:
                available = item.quantity - remaining
                logger.info(
                    "ledger.transaction.rejected",
                    extra={"part_id": item.part_id, "available": available, "requested": item.quantity},
                )
                raise InsufficientQuantity(
                    part_id=item.part_id,
                    available=available,
                    requested=item.quantity,
                )
        return consumed

    # ══════════════════════════════════════════════════════════════
    # CONVENIENCE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def advance(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.ADVANCE, user=user)

    @classmethod
    def revert(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.REVERT, user=user)

    @classmethod
    def hold(cls, shipment, reason='', user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.HOLD, {'reason': reason}, user=user)

    @classmethod
    def resume(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.RESUME, user=user)

    @classmethod
    def cancel(cls, shipment, reason='', user=None) -> Preshipment:
        """Cancel and release the shipment's commitment."""
        return cls.attempt_transition(shipment, Action.CANCEL, {'reason': reason}, user=user)

    @classmethod
    def driver_signoff(cls, shipment, user=None, **signoff) -> Preshipment:
        """
        Driver signoff: the goods leave the zone.

        Args:
            driver_name, driver_license_number, license_plate_number: required
            carrier_name, tracking_number, driver_notes: optional
            signature_data: optional {'image': ..., 'method': ...}
        """
        return cls.attempt_transition(shipment, Action.DRIVER_SIGNOFF, signoff, user=user)

    @classmethod
    def generate_label(cls, shipment, user=None, **options) -> Preshipment:
        return cls.attempt_transition(shipment, Action.GENERATE_LABEL, options, user=user)

    @classmethod
    def prepare_entry(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.PREPARE, user=user)

    @classmethod
    def mark_ready_to_file(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.MARK_READY, user=user)

    @classmethod
    def file_entry(cls, shipment, entry_number=None, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.FILE, {'entry_number': entry_number}, user=user)

    @classmethod
    def accept_entry(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.ACCEPT, user=user)

    @classmethod
    def reject_entry(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.REJECT, user=user)

    @classmethod
    def correct_entry(cls, shipment, user=None) -> Preshipment:
        return cls.attempt_transition(shipment, Action.CORRECT, user=user)

    @classmethod
    def allowed_actions(cls, shipment) -> list[str]:
        preshipment = shipment
        if not isinstance(shipment, Preshipment):
            try:
                preshipment = Preshipment.objects.get(shipment_id=shipment)
            except Preshipment.DoesNotExist:
                raise NotFound(resource='preshipment', shipment_id=shipment) from None
        return workflow.allowed_actions(
            preshipment.stage, preshipment.entry_summary_status, preshipment.stage_before_hold,
        )

