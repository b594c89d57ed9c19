"""
Cost and payment aggregation for a shipment.

A ``PaymentSnapshot`` is the read-side view of a shipment's cost and payment
state: what the shipment is known to cost, how much has been paid (in total
and per currency) and how much may still be paid. Snapshots are rebuilt on
every request and never cached, because cost facts and the payment list can
change between calls.

When none of the five declared cost fields is set, the builder can recover an
approximate total from the shipment's line items through a caller-supplied
hook. The builder only reports recovered figures; persisting them is up to
the caller.

Example::

    builder = SnapshotBuilder(default_rate=Decimal('7.15'))
    snapshot = builder.build(
        cost_facts=ShipmentCostFacts.from_shipment(shipment),
        payments=shipment.payments.all(),
        recovery=lambda: load_recovery_data(shipment),
    )
    snapshot.remaining_allowed  # Decimal('550.00')
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from django.conf import settings

from apps.shipments.models import BASE_CURRENCY, FOREIGN_CURRENCY, ExchangeRate
from .currency import ZERO, parse_amount_or_zero, parse_rate, round_money

logger = logging.getLogger(__name__)

DEFAULT_RMB_TO_EGP_RATE = Decimal('7.15')


@dataclass(frozen=True)
class ShipmentCostFacts:
    """Declared EGP cost components of a shipment."""
    purchase_cost_egp: Decimal = ZERO
    commission_cost_egp: Decimal = ZERO
    shipping_cost_egp: Decimal = ZERO
    customs_cost_egp: Decimal = ZERO
    clearance_cost_egp: Decimal = ZERO

    @classmethod
    def from_shipment(cls, shipment):
        return cls(
            purchase_cost_egp=parse_amount_or_zero(shipment.purchase_cost_egp),
            commission_cost_egp=parse_amount_or_zero(shipment.commission_cost_egp),
            shipping_cost_egp=parse_amount_or_zero(shipment.shipping_cost_egp),
            customs_cost_egp=parse_amount_or_zero(shipment.customs_cost_egp),
            clearance_cost_egp=parse_amount_or_zero(shipment.clearance_cost_egp),
        )

    @property
    def known_total_cost(self) -> Decimal:
        return round_money(
            self.purchase_cost_egp
            + self.commission_cost_egp
            + self.shipping_cost_egp
            + self.customs_cost_egp
            + self.clearance_cost_egp
        )


@dataclass(frozen=True)
class RecoveryData:
    """Line items plus the RMB->EGP rate to value them with (may be None)."""
    items: List
    rate: Optional[Decimal] = None


@dataclass(frozen=True)
class RecoveredTotals:
    purchase_cost_rmb: Decimal
    purchase_cost_egp: Decimal
    customs_cost_egp: Decimal
    clearance_cost_egp: Decimal
    final_total_cost_egp: Decimal


@dataclass(frozen=True)
class CurrencyTotals:
    original: Decimal = ZERO
    converted_to_egp: Decimal = ZERO


@dataclass(frozen=True)
class PaymentSnapshot:
    known_total_cost: Decimal
    total_paid_egp: Decimal
    remaining_allowed: Decimal
    paid_by_currency: Dict[str, CurrencyTotals] = field(default_factory=dict)
    recovered_totals: Optional[RecoveredTotals] = None

    @property
    def recovered_from_items(self) -> bool:
        return self.recovered_totals is not None


class SnapshotBuilder:
    """
    Builds ``PaymentSnapshot`` objects from cost facts and stored payments.

    Pure aggregation: never raises on bad stored data, malformed amounts
    count as zero.
    """

    def __init__(self, default_rate=DEFAULT_RMB_TO_EGP_RATE):
        self.default_rate = Decimal(default_rate)

    def build(
        self,
        cost_facts: ShipmentCostFacts,
        payments: Iterable,
        recovery: Optional[Callable[[], RecoveryData]] = None,
    ) -> PaymentSnapshot:
        known_total_cost = cost_facts.known_total_cost
        recovered_totals = None

        if known_total_cost == 0 and recovery is not None:
            recovered_totals = self.recover_totals(recovery())
            if recovered_totals is not None:
                known_total_cost = recovered_totals.final_total_cost_egp

        originals: Dict[str, Decimal] = {}
        converted: Dict[str, Decimal] = {}
        total_paid = Decimal('0')

        for payment in payments:
            currency = payment.currency
            amount_original = parse_amount_or_zero(payment.amount_original)
            amount_egp = parse_amount_or_zero(payment.amount_egp)

            originals[currency] = originals.get(currency, Decimal('0')) + amount_original
            converted[currency] = converted.get(currency, Decimal('0')) + amount_egp
            total_paid += amount_egp

        total_paid_egp = round_money(total_paid)
        remaining_allowed = round_money(max(Decimal('0'), known_total_cost - total_paid_egp))

        paid_by_currency = {
            currency: CurrencyTotals(
                original=round_money(originals[currency]),
                converted_to_egp=round_money(converted[currency]),
            )
            for currency in originals
        }

        return PaymentSnapshot(
            known_total_cost=round_money(known_total_cost),
            total_paid_egp=total_paid_egp,
            remaining_allowed=remaining_allowed,
            paid_by_currency=paid_by_currency,
            recovered_totals=recovered_totals,
        )

    def recover_totals(self, data: RecoveryData) -> Optional[RecoveredTotals]:
        """
        Estimate a shipment's total cost from its line items.

        Purchase cost is converted from RMB with ``data.rate`` (or the
        default rate). Customs and clearance are per-carton EGP charges.
        Returns None when there are no items or the estimate is not positive.
        """
        if not data.items:
            return None

        rate = parse_rate(data.rate) or self.default_rate

        purchase_rmb = Decimal('0')
        customs_egp = Decimal('0')
        clearance_egp = Decimal('0')

        for item in data.items:
            cartons = parse_amount_or_zero(item.cartons_ctn)
            purchase_rmb += parse_amount_or_zero(item.total_purchase_cost_rmb)
            customs_egp += cartons * parse_amount_or_zero(item.customs_cost_per_carton_egp)
            clearance_egp += cartons * parse_amount_or_zero(item.clearance_cost_per_carton_egp)

        purchase_egp = purchase_rmb * rate
        final_total = purchase_egp + customs_egp + clearance_egp

        if final_total <= 0:
            return None

        return RecoveredTotals(
            purchase_cost_rmb=round_money(purchase_rmb),
            purchase_cost_egp=round_money(purchase_egp),
            customs_cost_egp=round_money(customs_egp),
            clearance_cost_egp=round_money(clearance_egp),
            final_total_cost_egp=round_money(final_total),
        )


def get_default_rate() -> Decimal:
    return Decimal(settings.LEDGER.get('DEFAULT_RMB_TO_EGP_RATE', DEFAULT_RMB_TO_EGP_RATE))


def load_recovery_data(shipment) -> RecoveryData:
    """Recovery hook backed by the ORM: shipment items and latest stored rate."""
    items = list(shipment.items.all())
    latest = ExchangeRate.objects.latest_rate(FOREIGN_CURRENCY, BASE_CURRENCY)
    rate = latest.rate_value if latest else None
    logger.debug(
        "Loaded %d item(s) for cost recovery of shipment %s (rate=%s)",
        len(items), shipment.pk, rate,
    )
    return RecoveryData(items=items, rate=rate)


def build_shipment_snapshot(shipment, builder: Optional[SnapshotBuilder] = None) -> PaymentSnapshot:
    """Read-side snapshot for a cost inquiry. Recovery enabled, nothing persisted."""
    builder = builder or SnapshotBuilder(default_rate=get_default_rate())
    return builder.build(
        cost_facts=ShipmentCostFacts.from_shipment(shipment),
        payments=shipment.payments.all(),
        recovery=lambda: load_recovery_data(shipment),
    )
