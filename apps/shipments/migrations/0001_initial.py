# Generated manually for the shipments app

from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion
import uuid


CURRENCY_CHOICES = [('EGP', 'Egyptian Pound'), ('RMB', 'Chinese Yuan')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ExchangeRate',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('rate_date', models.DateField()),
                ('from_currency', models.CharField(choices=CURRENCY_CHOICES, max_length=10)),
                ('to_currency', models.CharField(choices=CURRENCY_CHOICES, max_length=10)),
                ('rate_value', models.DecimalField(decimal_places=6, max_digits=15, validators=[MinValueValidator(Decimal('0.000001'))])),
                ('source', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'exchange_rates',
                'ordering': ['-rate_date', '-created_at'],
                'indexes': [models.Index(fields=['from_currency', 'to_currency', 'rate_date'], name='exchange_rates_pair_idx')],
            },
        ),
        migrations.CreateModel(
            name='Shipment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('shipment_code', models.CharField(max_length=50, unique=True)),
                ('shipment_name', models.CharField(max_length=255)),
                ('purchase_date', models.DateField()),
                ('status', models.CharField(choices=[('new', 'New'), ('awaiting_shipping', 'Awaiting Shipping'), ('ready_for_pickup', 'Ready for Pickup'), ('received', 'Received'), ('archived', 'Archived')], default='new', max_length=30)),
                ('purchase_cost_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('commission_cost_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('shipping_cost_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('customs_cost_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('clearance_cost_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('purchase_cost_rmb', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('final_total_cost_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('total_paid_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('balance_egp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('last_payment_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='shipments_created', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'shipments',
                'ordering': ['-purchase_date', '-created_at'],
                'indexes': [models.Index(fields=['status'], name='shipments_status_idx'), models.Index(fields=['purchase_date'], name='shipments_purchase_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='ShipmentItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('product_name', models.CharField(max_length=255)),
                ('cartons_ctn', models.PositiveIntegerField(default=0)),
                ('pieces_per_carton', models.PositiveIntegerField(default=0)),
                ('total_pieces', models.PositiveIntegerField(default=0)),
                ('purchase_price_per_piece_rmb', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=10)),
                ('total_purchase_cost_rmb', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('customs_cost_per_carton_egp', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('clearance_cost_per_carton_egp', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('shipment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='shipments.shipment')),
            ],
            options={
                'db_table': 'shipment_items',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='ShipmentPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('payment_date', models.DateField()),
                ('currency', models.CharField(choices=CURRENCY_CHOICES, max_length=10)),
                ('amount_original', models.DecimalField(decimal_places=2, max_digits=15)),
                ('exchange_rate_to_egp', models.DecimalField(blank=True, decimal_places=4, max_digits=10, null=True)),
                ('amount_egp', models.DecimalField(decimal_places=2, max_digits=15)),
                ('cost_component', models.CharField(choices=[('purchase', 'Goods Purchase'), ('commission', 'Commission'), ('shipping', 'Shipping'), ('customs', 'Customs'), ('clearance', 'Clearance'), ('other', 'Other')], max_length=20)),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('bank_transfer', 'Bank Transfer'), ('mobile_wallet', 'Mobile Wallet'), ('instapay', 'InstaPay'), ('other', 'Other')], max_length=20)),
                ('cash_receiver_name', models.CharField(blank=True, max_length=255)),
                ('reference_number', models.CharField(blank=True, max_length=100)),
                ('note', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments_recorded', to=settings.AUTH_USER_MODEL)),
                ('shipment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='shipments.shipment')),
            ],
            options={
                'db_table': 'shipment_payments',
                'ordering': ['-payment_date', '-created_at'],
                'indexes': [models.Index(fields=['shipment', 'payment_date'], name='payments_shipment_date_idx'), models.Index(fields=['currency'], name='payments_currency_idx')],
            },
        ),
    ]
