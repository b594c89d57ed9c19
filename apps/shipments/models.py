from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class Currency(models.TextChoices):
    EGP = 'EGP', 'Egyptian Pound'
    RMB = 'RMB', 'Chinese Yuan'


# Ledger base currency and the single foreign currency pegged to it
BASE_CURRENCY = Currency.EGP
FOREIGN_CURRENCY = Currency.RMB


class ShipmentStatus(models.TextChoices):
    NEW = 'new', 'New'
    AWAITING_SHIPPING = 'awaiting_shipping', 'Awaiting Shipping'
    READY_FOR_PICKUP = 'ready_for_pickup', 'Ready for Pickup'
    RECEIVED = 'received', 'Received'
    ARCHIVED = 'archived', 'Archived'


LOCKED_STATUSES = frozenset({ShipmentStatus.ARCHIVED})


class CostComponent(models.TextChoices):
    PURCHASE = 'purchase', 'Goods Purchase'
    COMMISSION = 'commission', 'Commission'
    SHIPPING = 'shipping', 'Shipping'
    CUSTOMS = 'customs', 'Customs'
    CLEARANCE = 'clearance', 'Clearance'
    OTHER = 'other', 'Other'


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    BANK_TRANSFER = 'bank_transfer', 'Bank Transfer'
    MOBILE_WALLET = 'mobile_wallet', 'Mobile Wallet'
    INSTAPAY = 'instapay', 'InstaPay'
    OTHER = 'other', 'Other'


def money_field(**kwargs):
    """EGP/RMB amount column, 2 decimal places."""
    kwargs.setdefault('default', Decimal('0.00'))
    return models.DecimalField(max_digits=15, decimal_places=2, **kwargs)


class Shipment(models.Model):
    """Imported shipment with its declared costs and running payment totals."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shipment_code = models.CharField(max_length=50, unique=True)
    shipment_name = models.CharField(max_length=255)
    purchase_date = models.DateField()
    status = models.CharField(
        max_length=30,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.NEW
    )

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='shipments_created'
    )

    # Declared cost components (EGP)
    purchase_cost_egp = money_field()
    commission_cost_egp = money_field()
    shipping_cost_egp = money_field()
    customs_cost_egp = money_field()
    clearance_cost_egp = money_field()

    # Goods cost as invoiced by the supplier
    purchase_cost_rmb = money_field()

    final_total_cost_egp = money_field()

    # Running totals, written only by the payment guard
    total_paid_egp = money_field()
    balance_egp = money_field()
    last_payment_date = models.DateField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'shipments'
        indexes = [
            models.Index(fields=['status'], name='shipments_status_idx'),
            models.Index(fields=['purchase_date'], name='shipments_purchase_date_idx'),
        ]
        ordering = ['-purchase_date', '-created_at']

    def __str__(self):
        return f"{self.shipment_code} - {self.shipment_name}"

    @property
    def is_locked(self):
        return self.status in LOCKED_STATUSES


class ShipmentItem(models.Model):
    """Line item of a shipment; source of cost recovery."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shipment = models.ForeignKey(
        Shipment,
        on_delete=models.CASCADE,
        related_name='items'
    )
    product_name = models.CharField(max_length=255)

    cartons_ctn = models.PositiveIntegerField(default=0)
    pieces_per_carton = models.PositiveIntegerField(default=0)
    total_pieces = models.PositiveIntegerField(default=0)

    purchase_price_per_piece_rmb = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        default=Decimal('0')
    )
    total_purchase_cost_rmb = money_field()

    # Customs and clearance are charged per carton
    customs_cost_per_carton_egp = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )
    clearance_cost_per_carton_egp = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'shipment_items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.product_name} ({self.cartons_ctn} ctn)"


class ExchangeRateQuerySet(models.QuerySet):

    def latest_rate(self, from_currency, to_currency):
        """Most recent stored rate for the pair, or None."""
        return (
            self.filter(from_currency=from_currency, to_currency=to_currency)
            .order_by('-rate_date', '-created_at')
            .first()
        )


class ExchangeRate(models.Model):
    """Daily conversion rate between two currencies."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    rate_date = models.DateField()
    from_currency = models.CharField(max_length=10, choices=Currency.choices)
    to_currency = models.CharField(max_length=10, choices=Currency.choices)
    rate_value = models.DecimalField(
        max_digits=15,
        decimal_places=6,
        validators=[MinValueValidator(Decimal('0.000001'))]
    )
    source = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = ExchangeRateQuerySet.as_manager()

    class Meta:
        db_table = 'exchange_rates'
        indexes = [
            models.Index(fields=['from_currency', 'to_currency', 'rate_date'], name='exchange_rates_pair_idx'),
        ]
        ordering = ['-rate_date', '-created_at']

    def __str__(self):
        return f"1 {self.from_currency} = {self.rate_value} {self.to_currency} ({self.rate_date})"


class ShipmentPayment(models.Model):
    """
    Payment made against a shipment.

    Append-only: rows are created by the payment guard and never updated.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shipment = models.ForeignKey(
        Shipment,
        on_delete=models.PROTECT,
        related_name='payments'
    )
    payment_date = models.DateField()

    currency = models.CharField(max_length=10, choices=Currency.choices)
    amount_original = models.DecimalField(max_digits=15, decimal_places=2)
    exchange_rate_to_egp = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        null=True,
        blank=True
    )
    amount_egp = models.DecimalField(max_digits=15, decimal_places=2)

    cost_component = models.CharField(max_length=20, choices=CostComponent.choices)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    cash_receiver_name = models.CharField(max_length=255, blank=True)
    reference_number = models.CharField(max_length=100, blank=True)
    note = models.TextField(blank=True)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments_recorded'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'shipment_payments'
        indexes = [
            models.Index(fields=['shipment', 'payment_date'], name='payments_shipment_date_idx'),
            models.Index(fields=['currency'], name='payments_currency_idx'),
        ]
        ordering = ['-payment_date', '-created_at']

    def __str__(self):
        return f"{self.amount_original} {self.currency} -> {self.amount_egp} EGP ({self.shipment_id})"
