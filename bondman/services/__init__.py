"""
Bondman services — one class per component.

    from bondman.services import LedgerStore, AllocationReservation, ShipmentWorkflow, Preshipments
"""

from bondman.services.allocation import AllocationReservation
from bondman.services.ledger import LedgerStore
from bondman.services.preshipments import Preshipments
from bondman.services.shipments import ShipmentWorkflow

__all__ = [
    'LedgerStore',
    'AllocationReservation',
    'ShipmentWorkflow',
    'Preshipments',
]
