"""
Pytest fixtures for Bondman tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from bondman import ledger, preshipments
from bondman.models import Customer, EntryType, LocationKind, Part, StorageLocation


User = get_user_model()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='clerk',
        password='testpass123'
    )


@pytest.fixture
def part(db):
    """Part with no stock."""
    return Part.objects.create(
        code='PN-1001',
        description='Brake caliper assembly',
        hts_code='8708.30.50',
    )


@pytest.fixture
def other_part(db):
    return Part.objects.create(code='PN-2002', description='Rotor')


@pytest.fixture
def customer(db):
    return Customer.objects.create(
        code='ACME',
        name='Acme Automotive',
        address='500 Industrial Pkwy',
        city='Detroit',
        state='MI',
        zip_code='48201',
    )


@pytest.fixture
def dock(db):
    """Physical storage location."""
    return StorageLocation.objects.create(
        code='dock-1',
        name='Dock 1',
        kind=LocationKind.PHYSICAL,
    )


@pytest.fixture
def make_lot(part, customer, dock):
    """Factory: receive a lot of the given quantity (defaults to `part`)."""
    def _make(quantity, unit_value=Decimal('2.5000'), lot_part=None):
        return ledger.create_lot(
            lot_part or part, customer, dock, quantity, unit_value,
            reference='RCV-TEST',
        )
    return _make


@pytest.fixture
def lot(make_lot):
    """Lot of 100 units of `part`."""
    return make_lot(100)


@pytest.fixture
def make_shipment(customer):
    """Factory: create a preshipment for a single part line."""
    def _make(shipment_id, part, quantity, **fields):
        return preshipments.create(
            shipment_id,
            EntryType.CONSUMPTION,
            customer,
            [{'part_id': part.pk, 'quantity': quantity, 'unit_value': Decimal('2.50')}],
            **fields,
        )
    return _make


@pytest.fixture
def filing_fields():
    """ACE identifiers that satisfy the filing checks."""
    return {
        'filing_district_port': '5201',
        'entry_filer_code': 'ABC',
        'importer_of_record_number': '12-3456789AB',
        'carrier_code': 'FDEG',
    }
