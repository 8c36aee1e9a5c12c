"""
Bondman Models.

Core models for the bonded-inventory engine:
- Part, Customer, StorageLocation: reference rows
- Lot: quantity pool with running-total cache
- Transaction: immutable ledger of changes
- Preshipment / PreshipmentItem: outbound commitments + workflow state
- WorkflowEvent, ShippingLabel: audit of accepted actions
"""

from bondman.models.customer import Customer
from bondman.models.enums import (
    EntrySummaryStatus,
    EntryType,
    EventAxis,
    LocationKind,
    Priority,
    Stage,
    TransactionKind,
)
from bondman.models.events import ShippingLabel, WorkflowEvent
from bondman.models.location import StorageLocation
from bondman.models.lot import Lot
from bondman.models.part import Part
from bondman.models.preshipment import TERMINAL_STAGES, Preshipment, PreshipmentItem
from bondman.models.transaction import Transaction

__all__ = [
    'LocationKind',
    'TransactionKind',
    'Stage',
    'EntrySummaryStatus',
    'EntryType',
    'Priority',
    'EventAxis',
    'Part',
    'Customer',
    'StorageLocation',
    'Lot',
    'Transaction',
    'Preshipment',
    'PreshipmentItem',
    'TERMINAL_STAGES',
    'WorkflowEvent',
    'ShippingLabel',
]
