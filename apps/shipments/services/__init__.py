"""Payment reconciliation services for shipments."""

from .currency import (
    NormalizedAmount,
    normalize_payment_amount,
    parse_amount,
    parse_amount_or_zero,
    parse_rate,
    round_money,
    round_rate,
)
from .snapshot import (
    CurrencyTotals,
    PaymentSnapshot,
    RecoveredTotals,
    RecoveryData,
    ShipmentCostFacts,
    SnapshotBuilder,
    build_shipment_snapshot,
    load_recovery_data,
)
from .payment_guard import (
    PaymentGuard,
    PaymentRequest,
    PaymentState,
    get_payment_guard,
    parse_payment_request,
)

__all__ = [
    # Currency normalization
    'NormalizedAmount',
    'normalize_payment_amount',
    'parse_amount',
    'parse_amount_or_zero',
    'parse_rate',
    'round_money',
    'round_rate',
    # Snapshot
    'CurrencyTotals',
    'PaymentSnapshot',
    'RecoveredTotals',
    'RecoveryData',
    'ShipmentCostFacts',
    'SnapshotBuilder',
    'build_shipment_snapshot',
    'load_recovery_data',
    # Guard
    'PaymentGuard',
    'PaymentRequest',
    'PaymentState',
    'get_payment_guard',
    'parse_payment_request',
]
