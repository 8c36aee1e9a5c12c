"""
Bondman Admin — read-only views for operations and audits.

Quantities and workflow state only change through the services, so the
ledger and preshipment admins never add, edit or delete:
- Part, Customer, StorageLocation: editable reference rows
- Lot: read-only (part, customer, quantity, voided) with "verify" action
- Transaction: read-only ledger
- Preshipment: read-only with items, events and labels inline
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from bondman.models import (
    Customer,
    Lot,
    Part,
    Preshipment,
    PreshipmentItem,
    ShippingLabel,
    StorageLocation,
    Transaction,
    WorkflowEvent,
)

logger = logging.getLogger(__name__)


class ReadOnlyMixin:

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# REFERENCE ROWS
# =========================================================================

@admin.register(Part)
class PartAdmin(admin.ModelAdmin):
    list_display = ['code', 'description', 'hts_code', 'unit_of_measure', 'is_active']
    list_filter = ['is_active']
    search_fields = ['code', 'description', 'hts_code']
    readonly_fields = ['created_at']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'city', 'state', 'country']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at']


@admin.register(StorageLocation)
class StorageLocationAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'kind', 'is_active']
    list_filter = ['kind', 'is_active']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']


# =========================================================================
# LEDGER (read-only)
# =========================================================================

@admin.register(Lot)
class LotAdmin(ReadOnlyMixin, admin.ModelAdmin):
    """Lot admin — read-only. Quantity only changes via LedgerStore."""

    list_display = ['id', 'part', 'customer', 'storage_location', 'quantity_display',
                    'unit_value', 'voided', 'created_at']
    list_filter = ['voided', 'storage_location']
    search_fields = ['part__code', 'customer__name']
    readonly_fields = ['part', 'customer', 'storage_location', 'unit_value', '_quantity',
                       'voided', 'voided_at', 'metadata', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'
    actions = ['verify_lots']

    @admin.display(description=_('Quantity'))
    def quantity_display(self, obj):
        return obj.quantity

    @admin.action(description=_('Verify selected lots against their ledger'))
    def verify_lots(self, request, queryset):
        from bondman import ledger

        drifted = 0
        for lot in queryset:
            cached = lot._quantity
            if ledger.recalculate(lot.pk) != cached:
                drifted += 1

        self.message_user(
            request,
            _('{count} lot(s) checked, {drifted} repaired.').format(
                count=queryset.count(), drifted=drifted,
            ),
        )


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyMixin, admin.ModelAdmin):
    """Transaction admin — read-only. Immutable ledger."""

    list_display = ['created_at', 'lot', 'quantity', 'kind', 'reference', 'user']
    list_filter = ['kind', 'created_at']
    search_fields = ['reference', 'notes']
    readonly_fields = ['lot', 'quantity', 'kind', 'reference', 'notes',
                       'metadata', 'created_at', 'user']
    date_hierarchy = 'created_at'


# =========================================================================
# PRESHIPMENT (read-only, state moves via ShipmentWorkflow)
# =========================================================================

class PreshipmentItemInline(ReadOnlyMixin, admin.TabularInline):
    model = PreshipmentItem
    fields = ['position', 'part', 'lot', 'quantity', 'unit_value']
    readonly_fields = fields
    extra = 0


class WorkflowEventInline(ReadOnlyMixin, admin.TabularInline):
    model = WorkflowEvent
    fields = ['created_at', 'axis', 'action', 'from_state', 'to_state', 'user']
    readonly_fields = fields
    extra = 0


class ShippingLabelInline(ReadOnlyMixin, admin.TabularInline):
    model = ShippingLabel
    fields = ['created_at', 'carrier', 'service_type', 'tracking_number', 'label_format']
    readonly_fields = fields
    extra = 0


@admin.register(Preshipment)
class PreshipmentAdmin(ReadOnlyMixin, admin.ModelAdmin):
    list_display = ['shipment_id', 'customer', 'entry_type', 'stage',
                    'entry_summary_status', 'priority', 'created_at']
    list_filter = ['stage', 'entry_summary_status', 'priority', 'entry_type']
    search_fields = ['shipment_id', 'entry_number', 'tracking_number', 'customer__name']
    date_hierarchy = 'created_at'
    inlines = [PreshipmentItemInline, WorkflowEventInline, ShippingLabelInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]
