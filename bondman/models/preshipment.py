"""
Preshipment model — Outbound movement under preparation.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from bondman.models.enums import EntrySummaryStatus, EntryType, Priority, Stage

# Stages whose line items no longer commit inventory
TERMINAL_STAGES = (Stage.SHIPPED, Stage.CANCELLED)


class PreshipmentQuerySet(models.QuerySet):

    def open(self):
        """Non-terminal preshipments: their items commit inventory."""
        return self.exclude(stage__in=TERMINAL_STAGES)

    def at_stage(self, stage):
        return self.filter(stage=stage)


class Preshipment(models.Model):
    """
    One outbound shipment moving through two workflows at once.

    STAGE (physical handling):

        Planning → Picking → Packing → Loading → Ready to Ship → Staged
                                                      │            │
                                                      └─ signoff ──┴──► Shipped

        On Hold is reachable from any open stage and returns to it.
        Cancelled is reachable from any open stage (incl. On Hold).

    ENTRY SUMMARY STATUS (ACE filing):

        NOT_PREPARED → DRAFT → READY_TO_FILE → FILED → ACCEPTED
                         ▲                       │
                         └──── REJECTED ◄────────┘

    stage and entry_summary_status change ONLY through
    ShipmentWorkflow.attempt_transition(); see bondman.workflow.

    Items hold references to parts/lots. Their quantity is a commitment,
    not inventory truth.
    """

    shipment_id = models.CharField(
        max_length=64,
        unique=True,
        verbose_name=_('Shipment ID'),
    )
    entry_type = models.CharField(
        max_length=32,
        choices=EntryType.choices,
        verbose_name=_('Entry type'),
    )
    customer = models.ForeignKey(
        'bondman.Customer',
        on_delete=models.PROTECT,
        related_name='preshipments',
        verbose_name=_('Customer'),
    )
    entry_number = models.CharField(max_length=32, blank=True, default='', verbose_name=_('Entry number'))

    # Workflow
    stage = models.CharField(
        max_length=20,
        choices=Stage.choices,
        default=Stage.PLANNING,
        db_index=True,
        verbose_name=_('Stage'),
    )
    stage_before_hold = models.CharField(
        max_length=20,
        choices=Stage.choices,
        blank=True,
        default='',
        verbose_name=_('Stage before hold'),
    )
    entry_summary_status = models.CharField(
        max_length=20,
        choices=EntrySummaryStatus.choices,
        default=EntrySummaryStatus.NOT_PREPARED,
        db_index=True,
        verbose_name=_('Entry summary status'),
    )

    # ACE entry summary
    filing_district_port = models.CharField(max_length=4, blank=True, default='')
    entry_filer_code = models.CharField(max_length=3, blank=True, default='')
    importer_of_record_number = models.CharField(max_length=32, blank=True, default='')
    date_of_importation = models.DateField(null=True, blank=True)
    foreign_trade_zone_id = models.CharField(max_length=32, blank=True, default='')
    bill_of_lading_number = models.CharField(max_length=64, blank=True, default='')
    voyage_flight_trip_number = models.CharField(max_length=32, blank=True, default='')
    carrier_code = models.CharField(max_length=4, blank=True, default='', verbose_name=_('Carrier SCAC'))
    importing_conveyance_name = models.CharField(max_length=100, blank=True, default='')
    manufacturer_name = models.CharField(max_length=200, blank=True, default='')
    manufacturer_address = models.CharField(max_length=255, blank=True, default='')
    seller_name = models.CharField(max_length=200, blank=True, default='')
    seller_address = models.CharField(max_length=255, blank=True, default='')
    bond_type_code = models.CharField(max_length=8, blank=True, default='')
    surety_company_code = models.CharField(max_length=8, blank=True, default='')
    consolidated_entry = models.BooleanField(default=False)
    weekly_entry = models.BooleanField(default=False)
    zone_week_ending_date = models.DateField(null=True, blank=True)
    requires_pga_review = models.BooleanField(default=False)
    compliance_notes = models.TextField(blank=True, default='')
    estimated_total_value = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0'))
    estimated_duty_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0'))

    # Transport / driver signoff
    requested_ship_date = models.DateField(null=True, blank=True)
    carrier_name = models.CharField(max_length=100, blank=True, default='')
    tracking_number = models.CharField(max_length=100, blank=True, default='', db_index=True)
    driver_name = models.CharField(max_length=100, blank=True, default='')
    driver_license_number = models.CharField(max_length=50, blank=True, default='')
    license_plate_number = models.CharField(max_length=20, blank=True, default='')
    signature_data = models.JSONField(null=True, blank=True)
    driver_notes = models.TextField(blank=True, default='')

    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.NORMAL,
        verbose_name=_('Priority'),
    )
    notes = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)

    # Lifecycle stamps (set by workflow actions only)
    ready_at = models.DateTimeField(null=True, blank=True)
    staged_at = models.DateTimeField(null=True, blank=True)
    label_generated_at = models.DateTimeField(null=True, blank=True)
    filed_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PreshipmentQuerySet.as_manager()

    class Meta:
        verbose_name = _('Preshipment')
        verbose_name_plural = _('Preshipments')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['stage', 'entry_summary_status'], name='bondman_ps_stage_status_idx'),
        ]

    @property
    def is_terminal(self) -> bool:
        """Shipped or cancelled: items no longer commit inventory."""
        return self.stage in TERMINAL_STAGES

    @property
    def total_quantity(self) -> int:
        return self.items.aggregate(t=Coalesce(Sum('quantity'), 0))['t']

    def as_record(self) -> dict:
        return {
            'shipment_id': self.shipment_id,
            'customer_id': self.customer_id,
            'entry_type': self.entry_type,
            'items': [item.as_record() for item in self.items.all()],
            'stage': self.stage,
            'entry_summary_status': self.entry_summary_status,
            'filing_district_port': self.filing_district_port,
            'entry_filer_code': self.entry_filer_code,
            'carrier_code': self.carrier_code,
            'importer_of_record_number': self.importer_of_record_number,
            'weekly_entry': self.weekly_entry,
            'zone_week_ending_date': self.zone_week_ending_date,
            'tracking_number': self.tracking_number,
            'priority': self.priority,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    def __str__(self) -> str:
        return f"{self.shipment_id} [{self.stage} / {self.entry_summary_status}]"


class PreshipmentItem(models.Model):
    """Line item: a requested quantity of a part, optionally pinned to a lot."""

    preshipment = models.ForeignKey(
        Preshipment,
        on_delete=models.CASCADE,
        related_name='items',
    )
    position = models.PositiveIntegerField(default=0)
    part = models.ForeignKey(
        'bondman.Part',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Part'),
    )
    lot = models.ForeignKey(
        'bondman.Lot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Lot'),
        help_text=_('Empty = consume FIFO across the part\'s lots on shipment'),
    )
    quantity = models.PositiveIntegerField(verbose_name=_('Quantity'))
    unit_value = models.DecimalField(max_digits=15, decimal_places=4, default=Decimal('0'))

    class Meta:
        verbose_name = _('Preshipment item')
        verbose_name_plural = _('Preshipment items')
        ordering = ['preshipment', 'position']
        indexes = [
            models.Index(fields=['part'], name='bondman_psitem_part_idx'),
        ]

    @property
    def total_value(self) -> Decimal:
        return self.unit_value * self.quantity

    def as_record(self) -> dict:
        return {
            'part_id': self.part_id,
            'lot_id': self.lot_id,
            'quantity': self.quantity,
            'unit_value': self.unit_value,
        }

    def __str__(self) -> str:
        return f"{self.quantity}x {self.part}"
