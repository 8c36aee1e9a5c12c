"""
Initial migration for Bondman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


STAGE_CHOICES = [
    ('Planning', 'Planning'),
    ('Picking', 'Picking'),
    ('Packing', 'Packing'),
    ('Loading', 'Loading'),
    ('Ready to Ship', 'Ready to Ship'),
    ('Staged', 'Staged'),
    ('Shipped', 'Shipped'),
    ('On Hold', 'On Hold'),
    ('Cancelled', 'Cancelled'),
]


class Migration(migrations.Migration):
    """Create Bondman models: reference rows, Lot, Transaction, Preshipment, audit."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=32, unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('address', models.CharField(blank=True, default='', max_length=255)),
                ('city', models.CharField(blank=True, default='', max_length=100)),
                ('state', models.CharField(blank=True, default='', max_length=50)),
                ('zip_code', models.CharField(blank=True, default='', max_length=20)),
                ('country', models.CharField(default='US', max_length=2)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Customer',
                'verbose_name_plural': 'Customers',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Part',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=64, unique=True, verbose_name='Part number')),
                ('description', models.CharField(blank=True, default='', max_length=255, verbose_name='Description')),
                ('hts_code', models.CharField(blank=True, default='', max_length=20, verbose_name='HTS code')),
                ('unit_of_measure', models.CharField(default='EA', max_length=10, verbose_name='Unit of measure')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Part',
                'verbose_name_plural': 'Parts',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='StorageLocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Unique identifier (e.g. a-01-03, dock-2)', unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('kind', models.CharField(choices=[('physical', 'Physical'), ('virtual', 'Virtual')], default='physical', max_length=20, verbose_name='Kind')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Storage location',
                'verbose_name_plural': 'Storage locations',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('unit_value', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=15, verbose_name='Unit value')),
                ('_quantity', models.IntegerField(default=0, verbose_name='Quantity')),
                ('voided', models.BooleanField(db_index=True, default=False, verbose_name='Voided')),
                ('voided_at', models.DateTimeField(blank=True, null=True, verbose_name='Voided at')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='bondman.customer', verbose_name='Customer')),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='bondman.part', verbose_name='Part')),
                ('storage_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='bondman.storagelocation', verbose_name='Storage location')),
            ],
            options={
                'verbose_name': 'Lot',
                'verbose_name_plural': 'Lots',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.IntegerField(help_text='Positive = into the zone, negative = out', verbose_name='Quantity')),
                ('kind', models.CharField(choices=[('receipt', 'Receipt'), ('shipment', 'Shipment'), ('adjustment', 'Adjustment')], db_index=True, max_length=20, verbose_name='Kind')),
                ('reference', models.CharField(blank=True, db_index=True, default='', max_length=100, verbose_name='Reference')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Notes')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Created at')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='bondman.lot', verbose_name='Lot')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Transaction',
                'verbose_name_plural': 'Transactions',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='Preshipment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('shipment_id', models.CharField(max_length=64, unique=True, verbose_name='Shipment ID')),
                ('entry_type', models.CharField(choices=[('7501 Consumption Entry', '7501 Consumption Entry'), ('7512 T&E Export', '7512 T&E Export')], max_length=32, verbose_name='Entry type')),
                ('entry_number', models.CharField(blank=True, default='', max_length=32, verbose_name='Entry number')),
                ('stage', models.CharField(choices=STAGE_CHOICES, db_index=True, default='Planning', max_length=20, verbose_name='Stage')),
                ('stage_before_hold', models.CharField(blank=True, choices=STAGE_CHOICES, default='', max_length=20, verbose_name='Stage before hold')),
                ('entry_summary_status', models.CharField(choices=[('NOT_PREPARED', 'Not Prepared'), ('DRAFT', 'Draft'), ('READY_TO_FILE', 'Ready to File'), ('FILED', 'Filed'), ('ACCEPTED', 'Accepted'), ('REJECTED', 'Rejected')], db_index=True, default='NOT_PREPARED', max_length=20, verbose_name='Entry summary status')),
                ('filing_district_port', models.CharField(blank=True, default='', max_length=4)),
                ('entry_filer_code', models.CharField(blank=True, default='', max_length=3)),
                ('importer_of_record_number', models.CharField(blank=True, default='', max_length=32)),
                ('date_of_importation', models.DateField(blank=True, null=True)),
                ('foreign_trade_zone_id', models.CharField(blank=True, default='', max_length=32)),
                ('bill_of_lading_number', models.CharField(blank=True, default='', max_length=64)),
                ('voyage_flight_trip_number', models.CharField(blank=True, default='', max_length=32)),
                ('carrier_code', models.CharField(blank=True, default='', max_length=4, verbose_name='Carrier SCAC')),
                ('importing_conveyance_name', models.CharField(blank=True, default='', max_length=100)),
                ('manufacturer_name', models.CharField(blank=True, default='', max_length=200)),
                ('manufacturer_address', models.CharField(blank=True, default='', max_length=255)),
                ('seller_name', models.CharField(blank=True, default='', max_length=200)),
                ('seller_address', models.CharField(blank=True, default='', max_length=255)),
                ('bond_type_code', models.CharField(blank=True, default='', max_length=8)),
                ('surety_company_code', models.CharField(blank=True, default='', max_length=8)),
                ('consolidated_entry', models.BooleanField(default=False)),
                ('weekly_entry', models.BooleanField(default=False)),
                ('zone_week_ending_date', models.DateField(blank=True, null=True)),
                ('requires_pga_review', models.BooleanField(default=False)),
                ('compliance_notes', models.TextField(blank=True, default='')),
                ('estimated_total_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=15)),
                ('estimated_duty_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=15)),
                ('requested_ship_date', models.DateField(blank=True, null=True)),
                ('carrier_name', models.CharField(blank=True, default='', max_length=100)),
                ('tracking_number', models.CharField(blank=True, db_index=True, default='', max_length=100)),
                ('driver_name', models.CharField(blank=True, default='', max_length=100)),
                ('driver_license_number', models.CharField(blank=True, default='', max_length=50)),
                ('license_plate_number', models.CharField(blank=True, default='', max_length=20)),
                ('signature_data', models.JSONField(blank=True, null=True)),
                ('driver_notes', models.TextField(blank=True, default='')),
                ('priority', models.CharField(choices=[('Low', 'Low'), ('Normal', 'Normal'), ('High', 'High'), ('Urgent', 'Urgent')], default='Normal', max_length=10, verbose_name='Priority')),
                ('notes', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('ready_at', models.DateTimeField(blank=True, null=True)),
                ('staged_at', models.DateTimeField(blank=True, null=True)),
                ('label_generated_at', models.DateTimeField(blank=True, null=True)),
                ('filed_at', models.DateTimeField(blank=True, null=True)),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='preshipments', to='bondman.customer', verbose_name='Customer')),
            ],
            options={
                'verbose_name': 'Preshipment',
                'verbose_name_plural': 'Preshipments',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PreshipmentItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField(default=0)),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
                ('unit_value', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=15)),
                ('lot', models.ForeignKey(blank=True, help_text="Empty = consume FIFO across the part's lots on shipment", null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='bondman.lot', verbose_name='Lot')),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='bondman.part', verbose_name='Part')),
                ('preshipment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='bondman.preshipment')),
            ],
            options={
                'verbose_name': 'Preshipment item',
                'verbose_name_plural': 'Preshipment items',
                'ordering': ['preshipment', 'position'],
            },
        ),
        migrations.CreateModel(
            name='ShippingLabel',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('carrier', models.CharField(max_length=50)),
                ('service_type', models.CharField(max_length=30)),
                ('tracking_number', models.CharField(db_index=True, max_length=100)),
                ('label_format', models.CharField(default='PDF', max_length=10)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('preshipment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='labels', to='bondman.preshipment')),
            ],
            options={
                'verbose_name': 'Shipping label',
                'verbose_name_plural': 'Shipping labels',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='WorkflowEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('axis', models.CharField(choices=[('stage', 'Stage'), ('status', 'Entry summary status'), ('action', 'Side-effect only')], max_length=10)),
                ('action', models.CharField(max_length=32)),
                ('from_state', models.CharField(blank=True, default='', max_length=20)),
                ('to_state', models.CharField(blank=True, default='', max_length=20)),
                ('payload', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('preshipment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='events', to='bondman.preshipment')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Workflow event',
                'verbose_name_plural': 'Workflow events',
                'ordering': ['created_at', 'id'],
            },
        ),
        # Indexes
        migrations.AddIndex(
            model_name='lot',
            index=models.Index(fields=['part', 'voided'], name='bondman_lot_part_void_idx'),
        ),
        migrations.AddConstraint(
            model_name='lot',
            constraint=models.CheckConstraint(condition=models.Q(('_quantity__gte', 0)), name='lot_quantity_non_negative'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['lot', 'created_at'], name='bondman_txn_lot_created_idx'),
        ),
        migrations.AddIndex(
            model_name='preshipment',
            index=models.Index(fields=['stage', 'entry_summary_status'], name='bondman_ps_stage_status_idx'),
        ),
        migrations.AddIndex(
            model_name='preshipmentitem',
            index=models.Index(fields=['part'], name='bondman_psitem_part_idx'),
        ),
    ]
