from django.contrib import admin
from django.utils.html import format_html

from .models import ExchangeRate, Shipment, ShipmentItem, ShipmentPayment, ShipmentStatus


STATUS_COLORS = {
    ShipmentStatus.NEW: ('#E8DDD4', '#2C1810'),
    ShipmentStatus.AWAITING_SHIPPING: ('#E5C49A', '#2C1810'),
    ShipmentStatus.READY_FOR_PICKUP: ('#A47449', 'white'),
    ShipmentStatus.RECEIVED: ('#6B8E5E', 'white'),
    ShipmentStatus.ARCHIVED: ('#8A8A8A', 'white'),
}


class ShipmentItemInline(admin.TabularInline):
    model = ShipmentItem
    extra = 0
    fields = [
        'product_name',
        'cartons_ctn',
        'pieces_per_carton',
        'total_pieces',
        'purchase_price_per_piece_rmb',
        'total_purchase_cost_rmb',
        'customs_cost_per_carton_egp',
        'clearance_cost_per_carton_egp',
    ]


class ShipmentPaymentInline(admin.TabularInline):
    """Payments are recorded through the API only."""
    model = ShipmentPayment
    extra = 0
    fields = [
        'payment_date',
        'currency',
        'amount_original',
        'exchange_rate_to_egp',
        'amount_egp',
        'cost_component',
        'payment_method',
        'created_by',
    ]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    """
    Admin interface for Shipments.

    Cost components and items are editable. Running payment totals are
    maintained by the payment guard and shown read-only.
    """

    list_display = [
        'shipment_code',
        'shipment_name',
        'purchase_date',
        'status_badge',
        'final_total_cost_egp',
        'total_paid_egp',
        'balance_egp',
        'last_payment_date',
    ]

    list_filter = [
        'status',
        'purchase_date',
    ]

    search_fields = [
        'shipment_code',
        'shipment_name',
    ]

    readonly_fields = [
        'total_paid_egp',
        'balance_egp',
        'last_payment_date',
        'created_by',
        'created_at',
        'updated_at',
    ]

    date_hierarchy = 'purchase_date'
    ordering = ['-purchase_date']
    inlines = [ShipmentItemInline, ShipmentPaymentInline]

    fieldsets = (
        ('Shipment', {
            'fields': ('shipment_code', 'shipment_name', 'purchase_date', 'status')
        }),
        ('Costs', {
            'fields': (
                'purchase_cost_rmb',
                'purchase_cost_egp',
                'commission_cost_egp',
                'shipping_cost_egp',
                'customs_cost_egp',
                'clearance_cost_egp',
                'final_total_cost_egp',
            )
        }),
        ('Payments', {
            'fields': ('total_paid_egp', 'balance_egp', 'last_payment_date'),
        }),
        ('Metadata', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def status_badge(self, obj):
        """Display shipment status as colored badge."""
        bg, fg = STATUS_COLORS.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def save_model(self, request, obj, form, change):
        if not change and obj.created_by is None:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(ShipmentPayment)
class ShipmentPaymentAdmin(admin.ModelAdmin):
    """Read-only payment ledger."""

    list_display = [
        'payment_date',
        'shipment',
        'currency',
        'amount_original',
        'exchange_rate_to_egp',
        'amount_egp',
        'cost_component',
        'payment_method',
        'created_by',
    ]

    list_filter = [
        'currency',
        'cost_component',
        'payment_method',
        'payment_date',
    ]

    search_fields = [
        'shipment__shipment_code',
        'reference_number',
        'cash_receiver_name',
    ]

    date_hierarchy = 'payment_date'

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('shipment', 'created_by')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ExchangeRate)
class ExchangeRateAdmin(admin.ModelAdmin):
    list_display = ['rate_date', 'from_currency', 'to_currency', 'rate_value', 'source']
    list_filter = ['from_currency', 'to_currency']
    date_hierarchy = 'rate_date'
    ordering = ['-rate_date', '-created_at']
