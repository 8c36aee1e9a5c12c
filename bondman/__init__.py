"""
Django Bondman — bonded-warehouse inventory ledger and outbound engine.

Usage:
    from bondman import ledger, preshipments, shipments

    lot = ledger.create_lot(part, customer, dock, 100, Decimal('4.50'))
    preshipments.create('PS-1', '7501 Consumption Entry', customer,
                        [{'part_id': part.pk, 'quantity': 60}])
    shipments.advance('PS-1')
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from bondman.services.ledger import LedgerStore
        return LedgerStore
    elif name == 'allocation':
        from bondman.services.allocation import AllocationReservation
        return AllocationReservation
    elif name == 'shipments':
        from bondman.services.shipments import ShipmentWorkflow
        return ShipmentWorkflow
    elif name == 'preshipments':
        from bondman.services.preshipments import Preshipments
        return Preshipments
    elif name == 'compliance':
        import bondman.compliance
        return bondman.compliance
    elif name in ('BondmanError', 'ValidationError', 'InsufficientQuantity',
                  'InsufficientAllocation', 'InvalidTransition', 'ConflictError',
                  'NotFound', 'as_result'):
        from bondman import exceptions
        return getattr(exceptions, name)
    elif name in ('Part', 'Customer', 'StorageLocation', 'Lot', 'Transaction',
                  'Preshipment', 'PreshipmentItem', 'WorkflowEvent', 'ShippingLabel',
                  'Stage', 'EntrySummaryStatus', 'EntryType', 'Priority', 'TransactionKind'):
        from bondman import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'allocation',
    'shipments',
    'preshipments',
    'compliance',
    'BondmanError',
    'ValidationError',
    'InsufficientQuantity',
    'InsufficientAllocation',
    'InvalidTransition',
    'ConflictError',
    'NotFound',
    'as_result',
    'Part',
    'Customer',
    'StorageLocation',
    'Lot',
    'Transaction',
    'Preshipment',
    'PreshipmentItem',
    'WorkflowEvent',
    'ShippingLabel',
    'Stage',
    'EntrySummaryStatus',
    'EntryType',
    'Priority',
    'TransactionKind',
]

__version__ = '0.1.0'
