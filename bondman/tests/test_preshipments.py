"""
Tests for preshipment create / update / read.
"""

from contextlib import contextmanager
from decimal import Decimal

import pytest

from bondman import allocation, preshipments, shipments
from bondman.exceptions import (
    ConflictError,
    InsufficientAllocation,
    InvalidTransition,
    NotFound,
    ValidationError,
    as_result,
)
from bondman.locking import allocation_guard
from bondman.models import EntrySummaryStatus, EntryType, Preshipment, PreshipmentItem, Priority, Stage


pytestmark = pytest.mark.django_db


def line(part, quantity, **extra):
    return {'part_id': part.pk, 'quantity': quantity, **extra}


class TestCreate:
    """Tests for preshipments.create()."""

    def test_starts_in_planning(self, part, customer, lot):
        preshipment = preshipments.create('PS-100', EntryType.CONSUMPTION, customer, [line(part, 10)])

        assert preshipment.stage == Stage.PLANNING
        assert preshipment.entry_summary_status == EntrySummaryStatus.NOT_PREPARED
        assert preshipment.priority == Priority.NORMAL
        assert [i.as_record()['quantity'] for i in preshipment.items.all()] == [10]

    def test_stage_cannot_be_supplied(self, part, customer, lot):
        with pytest.raises(ValidationError) as exc:
            preshipments.create(
                'PS-100', EntryType.CONSUMPTION, customer, [line(part, 10)], stage=Stage.SHIPPED,
            )

        assert exc.value.data['fields'] == ['stage']
        assert not Preshipment.objects.exists()

    def test_item_order_preserved(self, part, other_part, customer, make_lot):
        make_lot(50)
        make_lot(50, lot_part=other_part)

        preshipment = preshipments.create(
            'PS-100', EntryType.TE_EXPORT, customer, [line(other_part, 5), line(part, 7)],
        )

        assert [i.part_id for i in preshipment.items.all()] == [other_part.pk, part.pk]

    def test_estimated_total_from_items(self, part, customer, lot):
        preshipment = preshipments.create(
            'PS-100', EntryType.CONSUMPTION, customer,
            [line(part, 10, unit_value='2.50'), line(part, 4, unit_value=Decimal('1.25'))],
        )
        preshipment.refresh_from_db()

        assert preshipment.estimated_total_value == Decimal('30.00')

    def test_codes_uppercased(self, part, customer, lot):
        preshipment = preshipments.create(
            'PS-100', EntryType.CONSUMPTION, customer, [line(part, 1)],
            filing_district_port='52a1', entry_filer_code='abc', carrier_code='FDEG',
        )

        assert preshipment.filing_district_port == '52A1'
        assert preshipment.entry_filer_code == 'ABC'
        assert preshipment.carrier_code == 'FDEG'

    def test_compliance_violations_reported_together(self, part, customer, lot):
        with pytest.raises(ValidationError) as exc:
            preshipments.create(
                'PS-100', EntryType.CONSUMPTION, customer, [line(part, 1)],
                filing_district_port='270', carrier_code='fdeg',
            )

        assert {v.field for v in exc.value.violations} == {'filing_district_port', 'carrier_code'}
        assert not Preshipment.objects.exists()

    def test_free_text_sanitized(self, part, customer, lot):
        preshipment = preshipments.create(
            '  PS-100 ', EntryType.CONSUMPTION, customer, [line(part, 1)],
            notes='<script>x</script>',
        )

        assert preshipment.shipment_id == 'PS-100'
        assert preshipment.notes == 'scriptx/script'

    def test_duplicate_shipment_id(self, part, customer, lot):
        preshipments.create('PS-100', EntryType.CONSUMPTION, customer, [line(part, 1)])

        with pytest.raises(ConflictError) as exc:
            preshipments.create('PS-100', EntryType.CONSUMPTION, customer, [line(part, 1)])

        assert exc.value.code == 'CONFLICT'
        assert allocation.committed(part.pk) == 1

    @pytest.mark.parametrize('kwargs,field', [
        ({'shipment_id': ''}, 'shipment_id'),
        ({'entry_type': 'Form 3461'}, 'entry_type'),
        ({'items': []}, 'items'),
    ])
    def test_required_fields(self, part, customer, lot, kwargs, field):
        args = {
            'shipment_id': 'PS-100',
            'entry_type': EntryType.CONSUMPTION,
            'customer': customer,
            'items': [line(part, 1)],
        }
        args.update(kwargs)

        with pytest.raises(ValidationError) as exc:
            preshipments.create(**args)

        assert field in exc.value.data['fields']

    @pytest.mark.parametrize('quantity', [0, -5, 2.5, True])
    def test_item_quantity_must_be_positive_integer(self, part, customer, lot, quantity):
        with pytest.raises(ValidationError):
            preshipments.create('PS-100', EntryType.CONSUMPTION, customer, [line(part, quantity)])

    def test_unknown_customer(self, part, lot):
        with pytest.raises(NotFound):
            preshipments.create('PS-100', EntryType.CONSUMPTION, 999999, [line(part, 1)])

    def test_invalid_priority(self, part, customer, lot):
        with pytest.raises(ValidationError):
            preshipments.create('PS-100', EntryType.CONSUMPTION, customer, [line(part, 1)], priority='ASAP')

    def test_tracking_number_length(self, part, customer, lot):
        with pytest.raises(ValidationError):
            preshipments.create(
                'PS-100', EntryType.CONSUMPTION, customer, [line(part, 1)], tracking_number='9' * 101,
            )

    def test_over_allocation_creates_nothing(self, part, customer, lot):
        with pytest.raises(InsufficientAllocation):
            preshipments.create('PS-100', EntryType.CONSUMPTION, customer, [line(part, 101)])

        assert not Preshipment.objects.exists()


class TestUpdate:
    """Tests for preshipments.update()."""

    def test_transport_fields(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 10)

        updated = preshipments.update('PS-1', carrier_name='FedEx Ground', priority=Priority.URGENT)

        assert updated.carrier_name == 'FedEx Ground'
        assert updated.priority == 'Urgent'

    @pytest.mark.parametrize('field', ['stage', 'entry_summary_status', 'shipment_id', 'shipped_at'])
    def test_workflow_fields_protected(self, part, lot, make_shipment, field):
        make_shipment('PS-1', part, 10)

        with pytest.raises(ValidationError):
            preshipments.update('PS-1', **{field: 'x'})

        assert preshipments.get('PS-1').stage == Stage.PLANNING

    def test_unknown_field(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 10)

        with pytest.raises(ValidationError):
            preshipments.update('PS-1', colour='red')

    def test_regulatory_fields_validated_on_merged_record(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 10)

        with pytest.raises(ValidationError) as exc:
            preshipments.update('PS-1', weekly_entry=True)

        assert exc.value.violations[0].field == 'zone_week_ending_date'

    def test_regulatory_fields_normalized(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 10)

        assert preshipments.update('PS-1', entry_filer_code='x9z').entry_filer_code == 'X9Z'

    def test_replace_items_excludes_own_commitment(self, part, lot, make_shipment):
        """A shipment holding 60 may grow to all 100 on hand."""
        make_shipment('PS-1', part, 60)

        updated = preshipments.update('PS-1', items=[line(part, 100)])

        assert updated.total_quantity == 100
        assert allocation.available_to_promise(part.pk) == 0

    def test_replace_items_over_allocation(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 60)
        make_shipment('PS-2', part, 30)

        with pytest.raises(InsufficientAllocation) as exc:
            preshipments.update('PS-1', items=[line(part, 80)])

        assert exc.value.shortfalls[0].available == 70
        assert preshipments.get('PS-1').total_quantity == 60

    def test_replace_items_on_cancelled(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 60)
        shipments.cancel('PS-1')

        with pytest.raises(InvalidTransition):
            preshipments.update('PS-1', items=[line(part, 10)])

    def test_items_swapped_before_lock(self, part, other_part, lot, make_shipment, monkeypatch):
        """Items replaced between the read and the row lock abort the update."""
        make_shipment('PS-1', part, 60)

        @contextmanager
        def swap_then_guard(part_ids, **kwargs):
            PreshipmentItem.objects.filter(preshipment__shipment_id='PS-1').update(part=other_part)
            with allocation_guard(part_ids, **kwargs):
                yield

        monkeypatch.setattr('bondman.services.preshipments.allocation_guard', swap_then_guard)

        with pytest.raises(ConflictError):
            preshipments.update('PS-1', items=[line(part, 80)])

        item = preshipments.get('PS-1').items.get()
        assert (item.part_id, item.quantity) == (other_part.pk, 60)

    def test_notes_on_terminal_shipment(self, part, lot, make_shipment):
        """Non-item fields stay editable after cancellation."""
        make_shipment('PS-1', part, 60)
        shipments.cancel('PS-1')

        assert preshipments.update('PS-1', notes='Refiled as PS-2').notes == 'Refiled as PS-2'


class TestRead:

    def test_get_unknown(self, db):
        with pytest.raises(NotFound):
            preshipments.get('nope')

    def test_list_filters(self, part, customer, lot, make_shipment):
        make_shipment('PS-1', part, 10)
        make_shipment('PS-2', part, 10)
        shipments.advance('PS-2')

        assert [p.shipment_id for p in preshipments.list(stage=Stage.PICKING)] == ['PS-2']
        assert preshipments.list(status=EntrySummaryStatus.NOT_PREPARED).count() == 2
        assert preshipments.list(customer=customer).count() == 2

    def test_as_record(self, part, lot, make_shipment):
        record = make_shipment('PS-1', part, 10).as_record()

        assert record['shipment_id'] == 'PS-1'
        assert record['items'] == [{'part_id': part.pk, 'lot_id': None, 'quantity': 10, 'unit_value': Decimal('2.50')}]


class TestStructuredResults:
    """Tests for exceptions.as_result() around preshipment operations."""

    def test_success(self, part, customer, lot):
        result = as_result(preshipments.create, 'PS-1', EntryType.CONSUMPTION, customer, [line(part, 5)])

        assert result['success'] is True
        assert result['data'].shipment_id == 'PS-1'

    def test_business_error(self, part, customer, lot):
        result = as_result(preshipments.create, 'PS-1', EntryType.CONSUMPTION, customer, [line(part, 500)])

        assert result['success'] is False
        assert result['error']['code'] == 'INSUFFICIENT_ALLOCATION'
        assert result['error']['data']['shortfalls'][0]['available'] == 100
