"""
Enums for Bondman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LocationKind(models.TextChoices):
    """
    Type of storage location.

    PHYSICAL: Place where goods exist in the zone (rack, dock, yard).
    VIRTUAL:  Accounting bucket, goods don't physically sit there
              (adjustments, quarantine write-offs).
    """
    PHYSICAL = 'physical', _('Physical')
    VIRTUAL = 'virtual', _('Virtual')


class TransactionKind(models.TextChoices):
    """Ledger entry kind."""
    RECEIPT = 'receipt', _('Receipt')           # Goods admitted into the zone
    SHIPMENT = 'shipment', _('Shipment')        # Goods left on a signed-off shipment
    ADJUSTMENT = 'adjustment', _('Adjustment')  # Count corrections, voids


class Stage(models.TextChoices):
    """Physical handling stage of a preshipment."""
    PLANNING = 'Planning', _('Planning')
    PICKING = 'Picking', _('Picking')
    PACKING = 'Packing', _('Packing')
    LOADING = 'Loading', _('Loading')
    READY_TO_SHIP = 'Ready to Ship', _('Ready to Ship')
    STAGED = 'Staged', _('Staged')
    SHIPPED = 'Shipped', _('Shipped')
    ON_HOLD = 'On Hold', _('On Hold')
    CANCELLED = 'Cancelled', _('Cancelled')


class EntrySummaryStatus(models.TextChoices):
    """ACE entry summary filing status."""
    NOT_PREPARED = 'NOT_PREPARED', _('Not Prepared')
    DRAFT = 'DRAFT', _('Draft')
    READY_TO_FILE = 'READY_TO_FILE', _('Ready to File')
    FILED = 'FILED', _('Filed')
    ACCEPTED = 'ACCEPTED', _('Accepted')
    REJECTED = 'REJECTED', _('Rejected')


class EntryType(models.TextChoices):
    """CBP entry form for the outbound movement."""
    CONSUMPTION = '7501 Consumption Entry', _('7501 Consumption Entry')
    TE_EXPORT = '7512 T&E Export', _('7512 T&E Export')


class Priority(models.TextChoices):
    LOW = 'Low', _('Low')
    NORMAL = 'Normal', _('Normal')
    HIGH = 'High', _('High')
    URGENT = 'Urgent', _('Urgent')


class EventAxis(models.TextChoices):
    """Which axis of the workflow an event touched."""
    STAGE = 'stage', _('Stage')
    STATUS = 'status', _('Entry summary status')
    ACTION = 'action', _('Side-effect only')
