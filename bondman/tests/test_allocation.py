"""
Tests for available-to-promise and the allocation guard.
"""

from decimal import Decimal

import pytest
from django.db import connection

from bondman import allocation, ledger, preshipments, shipments
from bondman.exceptions import InsufficientAllocation, NotFound, ValidationError
from bondman.locking import allocation_guard, lock_key
from bondman.models import EntryType, Preshipment
from bondman.services.allocation import Shortfall


pytestmark = pytest.mark.django_db


class TestOnHandAndCommitted:
    """Tests for on_hand / committed / available_to_promise."""

    def test_empty(self, part):
        assert allocation.on_hand(part.pk) == 0
        assert allocation.committed(part.pk) == 0
        assert allocation.available_to_promise(part.pk) == 0

    def test_on_hand_sums_active_lots(self, part, make_lot):
        make_lot(40)
        voided = make_lot(25)
        make_lot(10)
        ledger.void_lot(voided.pk, 'Rejected at inspection')

        assert allocation.on_hand(part.pk) == 50

    def test_committed_counts_open_shipments(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 30)
        make_shipment('PS-2', part, 20)

        assert allocation.committed(part.pk) == 50
        assert allocation.committed(part.pk, exclude_shipment_id='PS-1') == 20
        assert allocation.available_to_promise(part.pk) == 50

    def test_cancelled_releases_commitment(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 70)
        assert allocation.available_to_promise(part.pk) == 30

        shipments.cancel('PS-1', reason='Customer withdrew')

        assert allocation.committed(part.pk) == 0
        assert allocation.available_to_promise(part.pk) == 100

    def test_on_hold_keeps_commitment(self, part, lot, make_shipment):
        make_shipment('PS-1', part, 70)

        shipments.hold('PS-1')

        assert allocation.available_to_promise(part.pk) == 30


class TestCheckAllocation:
    """Tests for allocation.check_allocation() and reserve()."""

    def test_fits(self, part, lot):
        assert allocation.check_allocation([{'part_id': part.pk, 'quantity': 100}]) == []

    def test_shortfall(self, part, lot):
        shortfalls = allocation.check_allocation([{'part_id': part.pk, 'quantity': 101}])

        assert shortfalls == [Shortfall(part_id=part.pk, available=100, requested=101)]

    def test_lines_for_same_part_are_summed(self, part, make_lot):
        """Two lines of 30 against 50 available is one shortfall of 60."""
        make_lot(50)

        shortfalls = allocation.check_allocation([
            {'part_id': part.pk, 'quantity': 30},
            {'part_id': part.pk, 'quantity': 30},
        ])

        assert shortfalls == [Shortfall(part_id=part.pk, available=50, requested=60)]

    def test_reports_every_short_part(self, part, other_part, make_lot):
        make_lot(10)
        make_lot(5, lot_part=other_part)

        shortfalls = allocation.check_allocation([
            {'part_id': part.pk, 'quantity': 20},
            {'part_id': other_part.pk, 'quantity': 6},
        ])

        assert [s.part_id for s in shortfalls] == [part.pk, other_part.pk]

    def test_unknown_part(self, db):
        with pytest.raises(NotFound):
            allocation.check_allocation([{'part_id': 999999, 'quantity': 1}])

    def test_lot_of_another_part(self, part, other_part, make_lot):
        foreign = make_lot(10, lot_part=other_part)

        with pytest.raises(ValidationError):
            allocation.check_allocation([{'part_id': part.pk, 'lot_id': foreign.pk, 'quantity': 1}])

    def test_accepts_objects(self, part, lot):
        """Items may be model-like objects with .part and .quantity."""

        class Line:
            def __init__(self, part, quantity):
                self.part = part
                self.quantity = quantity

        assert allocation.check_allocation([Line(part, 100)]) == []

    def test_reserve_raises_with_shortfalls(self, part, lot):
        with pytest.raises(InsufficientAllocation) as exc:
            allocation.reserve([{'part_id': part.pk, 'quantity': 150}])

        assert exc.value.code == 'INSUFFICIENT_ALLOCATION'
        assert exc.value.shortfalls[0].available == 100
        assert exc.value.as_dict()['data']['shortfalls'] == [
            {'part_id': part.pk, 'available': 100, 'requested': 150},
        ]

    @pytest.mark.parametrize('quantity', [-60, 0, '5', 2.5, True, None])
    def test_quantity_must_be_positive_integer(self, part, lot, quantity):
        with pytest.raises(ValidationError):
            allocation.check_allocation([{'part_id': part.pk, 'quantity': quantity}])

    def test_negative_line_cannot_hide_shortfall(self, part, lot):
        with pytest.raises(ValidationError):
            allocation.check_allocation([
                {'part_id': part.pk, 'quantity': 150},
                {'part_id': part.pk, 'quantity': -60},
            ])


class TestPinnedLots:
    """Items pinned to a lot must fit that lot, not just the part."""

    def test_pin_beyond_lot(self, part, make_lot):
        small = make_lot(10)
        make_lot(100)

        shortfalls = allocation.check_allocation([
            {'part_id': part.pk, 'lot_id': small.pk, 'quantity': 50},
        ])

        assert shortfalls == [Shortfall(part_id=part.pk, available=10, requested=50, lot_id=small.pk)]

    def test_create_rejects_pin_beyond_lot(self, part, customer, make_lot):
        small = make_lot(10)
        make_lot(100)

        with pytest.raises(InsufficientAllocation) as exc:
            preshipments.create(
                'PS-1', EntryType.CONSUMPTION, customer,
                [{'part_id': part.pk, 'lot_id': small.pk, 'quantity': 50}],
            )

        assert exc.value.as_dict()['data']['shortfalls'] == [
            {'part_id': part.pk, 'available': 10, 'requested': 50, 'lot_id': small.pk},
        ]
        assert not Preshipment.objects.exists()

    def test_other_pins_reduce_lot(self, part, customer, make_lot):
        pinned = make_lot(60)
        make_lot(100)
        preshipments.create(
            'PS-1', EntryType.CONSUMPTION, customer,
            [{'part_id': part.pk, 'lot_id': pinned.pk, 'quantity': 40}],
        )

        shortfalls = allocation.check_allocation([
            {'part_id': part.pk, 'lot_id': pinned.pk, 'quantity': 30},
        ])

        assert shortfalls == [Shortfall(part_id=part.pk, available=20, requested=30, lot_id=pinned.pk)]
        assert allocation.pinned(pinned.pk) == 40

    def test_repeated_pins_summed(self, part, make_lot):
        small = make_lot(10)
        make_lot(100)

        shortfalls = allocation.check_allocation([
            {'part_id': part.pk, 'lot_id': small.pk, 'quantity': 6},
            {'part_id': part.pk, 'lot_id': small.pk, 'quantity': 6},
        ])

        assert shortfalls == [Shortfall(part_id=part.pk, available=10, requested=12, lot_id=small.pk)]

    def test_own_pins_excluded(self, part, customer, make_lot):
        small = make_lot(10)
        preshipments.create(
            'PS-1', EntryType.CONSUMPTION, customer,
            [{'part_id': part.pk, 'lot_id': small.pk, 'quantity': 8}],
        )

        assert allocation.check_allocation(
            [{'part_id': part.pk, 'lot_id': small.pk, 'quantity': 10}],
            exclude_shipment_id='PS-1',
        ) == []

    def test_cancelled_pins_released(self, part, customer, make_lot):
        small = make_lot(10)
        preshipments.create(
            'PS-1', EntryType.CONSUMPTION, customer,
            [{'part_id': part.pk, 'lot_id': small.pk, 'quantity': 10}],
        )
        shipments.cancel('PS-1')

        assert allocation.pinned(small.pk) == 0
        assert allocation.pinned_by_lot(part.pk) == {}


class TestScenarioAB:
    """Two preshipments competing for one part with 100 on hand."""

    def test_second_shipment_limited_to_remainder(self, part, customer, lot):
        preshipments.create('A', EntryType.CONSUMPTION, customer, [{'part_id': part.pk, 'quantity': 60}])

        with pytest.raises(InsufficientAllocation) as exc:
            preshipments.create('B', EntryType.CONSUMPTION, customer, [{'part_id': part.pk, 'quantity': 50}])

        assert exc.value.shortfalls == [Shortfall(part_id=part.pk, available=40, requested=50)]

        preshipments.create('B', EntryType.CONSUMPTION, customer, [{'part_id': part.pk, 'quantity': 40}])

        assert allocation.available_to_promise(part.pk) == 0
        assert ledger.current_quantity(lot.pk) == 100

    def test_reservation_never_touches_ledger(self, part, customer, lot):
        preshipments.create('A', EntryType.CONSUMPTION, customer, [{'part_id': part.pk, 'quantity': 60}])

        assert lot.transactions.count() == 1


class TestAllocationGuard:
    """Tests for bondman.locking.allocation_guard()."""

    def test_yields_inside_transaction(self, db):
        with allocation_guard([1, 2]):
            assert connection.in_atomic_block

    def test_lock_key(self, db):
        assert lock_key(42) == 'bondman:part:42'

    def test_lock_key_prefix_from_settings(self, settings):
        settings.BONDMAN = {'ADVISORY_LOCK_PREFIX': 'zone12'}

        assert lock_key(7) == 'zone12:part:7'

    def test_nested_guards_same_thread(self, db):
        """Re-entering the guard on the same part does not deadlock."""
        with allocation_guard([1]):
            with allocation_guard([1]):
                assert connection.in_atomic_block

    def test_advisory_requires_postgres(self, settings, db):
        settings.BONDMAN = {'LOCK_STRATEGY': 'advisory'}

        with pytest.raises(ValueError):
            with allocation_guard([1]):
                pass

    def test_exception_rolls_back(self, part, customer, dock):
        with pytest.raises(RuntimeError):
            with allocation_guard([part.pk]):
                ledger.create_lot(part, customer, dock, 10, Decimal('1'))
                raise RuntimeError('abort')

        assert allocation.on_hand(part.pk) == 0
