from rest_framework import serializers

from apps.accounts.serializers import UserPublicSerializer
from .models import (
    CostComponent,
    Currency,
    PaymentMethod,
    Shipment,
    ShipmentItem,
    ShipmentPayment,
    ShipmentStatus,
)


# =============================================================================
# INPUT SERIALIZERS
# =============================================================================

class PaymentCreateInputSerializer(serializers.Serializer):
    """
    Shape check for a payment submission.

    Only ``shipment_id`` is checked here. Every other field is validated by
    the payment guard, after the shipment lookup, so API callers get the same
    error codes in the same order as any other caller.
    """

    shipment_id = serializers.UUIDField()
    payment_date = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="Calendar date, YYYY-MM-DD"
    )
    currency = serializers.CharField(required=False, allow_blank=True, help_text="EGP or RMB")
    amount_original = serializers.JSONField(required=False, help_text="Amount in the payment currency")
    exchange_rate_to_egp = serializers.JSONField(
        required=False,
        allow_null=True,
        help_text="RMB to EGP rate; the latest stored rate is used when omitted"
    )
    cost_component = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text=", ".join(CostComponent.values)
    )
    payment_method = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text=", ".join(PaymentMethod.values)
    )
    cash_receiver_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reference_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PaymentFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for payment listing.

    Query Parameters:
        shipment (uuid): Filter by shipment ID
        currency (str): Filter by payment currency
        date_from (date): Payments on or after this date
        date_to (date): Payments on or before this date
    """

    shipment = serializers.UUIDField(required=False)
    currency = serializers.ChoiceField(choices=Currency.choices, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        """Validate date range."""
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')

        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({
                'date_to': 'End date must be after start date'
            })

        return attrs


class ShipmentFilterSerializer(serializers.Serializer):
    """Query parameters for shipment listing."""

    status = serializers.ChoiceField(choices=ShipmentStatus.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True)


# =============================================================================
# OUTPUT SERIALIZERS
# =============================================================================

class ShipmentPaymentSerializer(serializers.ModelSerializer):
    """Recorded payment. Payments are immutable, so every field is read-only."""

    shipment_code = serializers.CharField(source='shipment.shipment_code', read_only=True)
    created_by = UserPublicSerializer(read_only=True)

    class Meta:
        model = ShipmentPayment
        fields = [
            'id',
            'shipment',
            'shipment_code',
            'payment_date',
            'currency',
            'amount_original',
            'exchange_rate_to_egp',
            'amount_egp',
            'cost_component',
            'payment_method',
            'cash_receiver_name',
            'reference_number',
            'note',
            'created_by',
            'created_at',
        ]
        read_only_fields = fields


class ShipmentItemSerializer(serializers.ModelSerializer):

    class Meta:
        model = ShipmentItem
        fields = [
            'id',
            'product_name',
            'cartons_ctn',
            'pieces_per_carton',
            'total_pieces',
            'purchase_price_per_piece_rmb',
            'total_purchase_cost_rmb',
            'customs_cost_per_carton_egp',
            'clearance_cost_per_carton_egp',
        ]
        read_only_fields = fields


class ShipmentListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for shipment lists."""

    class Meta:
        model = Shipment
        fields = [
            'id',
            'shipment_code',
            'shipment_name',
            'purchase_date',
            'status',
            'final_total_cost_egp',
            'total_paid_egp',
            'balance_egp',
            'last_payment_date',
        ]
        read_only_fields = fields


class ShipmentSerializer(serializers.ModelSerializer):
    """Full shipment with cost components and line items."""

    items = ShipmentItemSerializer(many=True, read_only=True)
    created_by = UserPublicSerializer(read_only=True)
    is_locked = serializers.BooleanField(read_only=True)

    class Meta:
        model = Shipment
        fields = [
            'id',
            'shipment_code',
            'shipment_name',
            'purchase_date',
            'status',
            'is_locked',
            'purchase_cost_rmb',
            'purchase_cost_egp',
            'commission_cost_egp',
            'shipping_cost_egp',
            'customs_cost_egp',
            'clearance_cost_egp',
            'final_total_cost_egp',
            'total_paid_egp',
            'balance_egp',
            'last_payment_date',
            'items',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class CurrencyTotalsSerializer(serializers.Serializer):
    original = serializers.DecimalField(max_digits=15, decimal_places=2)
    converted_to_egp = serializers.DecimalField(max_digits=15, decimal_places=2)


class RecoveredTotalsSerializer(serializers.Serializer):
    purchase_cost_rmb = serializers.DecimalField(max_digits=15, decimal_places=2)
    purchase_cost_egp = serializers.DecimalField(max_digits=15, decimal_places=2)
    customs_cost_egp = serializers.DecimalField(max_digits=15, decimal_places=2)
    clearance_cost_egp = serializers.DecimalField(max_digits=15, decimal_places=2)
    final_total_cost_egp = serializers.DecimalField(max_digits=15, decimal_places=2)


class PaymentSnapshotSerializer(serializers.Serializer):
    """Renders a ``PaymentSnapshot``."""

    known_total_cost = serializers.DecimalField(max_digits=15, decimal_places=2)
    total_paid_egp = serializers.DecimalField(max_digits=15, decimal_places=2)
    remaining_allowed = serializers.DecimalField(max_digits=15, decimal_places=2)
    paid_by_currency = serializers.DictField(child=CurrencyTotalsSerializer())
    recovered_from_items = serializers.BooleanField()
    recovered_totals = RecoveredTotalsSerializer(allow_null=True)
