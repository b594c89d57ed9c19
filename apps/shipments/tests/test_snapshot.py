from decimal import Decimal
from types import SimpleNamespace

import pytest

from apps.shipments.models import ShipmentPayment
from apps.shipments.services.snapshot import (
    RecoveryData,
    ShipmentCostFacts,
    SnapshotBuilder,
    build_shipment_snapshot,
    load_recovery_data,
)


def payment(currency='EGP', amount_original='100.00', amount_egp='100.00'):
    return SimpleNamespace(
        currency=currency,
        amount_original=amount_original,
        amount_egp=amount_egp,
    )


def item(total_purchase_cost_rmb='100', cartons_ctn=10, customs='5', clearance='3'):
    return SimpleNamespace(
        total_purchase_cost_rmb=total_purchase_cost_rmb,
        cartons_ctn=cartons_ctn,
        customs_cost_per_carton_egp=customs,
        clearance_cost_per_carton_egp=clearance,
    )


@pytest.fixture
def builder():
    return SnapshotBuilder(default_rate=Decimal('7.15'))


# =============================================================================
# Aggregation
# =============================================================================

class TestSnapshotBuilder:
    """Known total, totals per currency and remaining allowance."""

    def test_partial_cost_data(self, builder):
        facts = ShipmentCostFacts(
            shipping_cost_egp=Decimal('250'),
            customs_cost_egp=Decimal('500'),
        )

        snapshot = builder.build(facts, [payment(amount_original='200', amount_egp='200')])

        assert snapshot.known_total_cost == Decimal('750.00')
        assert snapshot.total_paid_egp == Decimal('200.00')
        assert snapshot.remaining_allowed == Decimal('550.00')
        assert snapshot.paid_by_currency['EGP'].original == Decimal('200.00')
        assert snapshot.paid_by_currency['EGP'].converted_to_egp == Decimal('200.00')
        assert snapshot.recovered_totals is None

    def test_mixed_currencies(self, builder):
        facts = ShipmentCostFacts(
            purchase_cost_egp=Decimal('1000'),
            shipping_cost_egp=Decimal('500'),
            clearance_cost_egp=Decimal('500'),
        )
        payments = [
            payment(currency='RMB', amount_original='100', amount_egp='750'),
            payment(currency='EGP', amount_original='300', amount_egp='300'),
        ]

        snapshot = builder.build(facts, payments)

        assert snapshot.known_total_cost == Decimal('2000.00')
        assert snapshot.total_paid_egp == Decimal('1050.00')
        assert snapshot.remaining_allowed == Decimal('950.00')
        assert snapshot.paid_by_currency['RMB'].original == Decimal('100.00')
        assert snapshot.paid_by_currency['RMB'].converted_to_egp == Decimal('750.00')
        assert snapshot.paid_by_currency['EGP'].original == Decimal('300.00')

    def test_total_paid_is_exact_sum(self, builder):
        amounts = ['0.10', '0.20', '33.33', '33.33', '33.34', '0.01']
        facts = ShipmentCostFacts(purchase_cost_egp=Decimal('500'))

        snapshot = builder.build(facts, [payment(amount_original=a, amount_egp=a) for a in amounts])

        assert snapshot.total_paid_egp == sum(Decimal(a) for a in amounts)
        assert snapshot.total_paid_egp == Decimal('100.31')

    def test_overpaid_shipment_has_zero_remaining(self, builder):
        facts = ShipmentCostFacts(purchase_cost_egp=Decimal('100'))

        snapshot = builder.build(facts, [payment(amount_egp='150')])

        assert snapshot.remaining_allowed == Decimal('0.00')

    def test_no_payments(self, builder):
        facts = ShipmentCostFacts(commission_cost_egp=Decimal('99.999'))

        snapshot = builder.build(facts, [])

        assert snapshot.known_total_cost == Decimal('100.00')
        assert snapshot.total_paid_egp == Decimal('0.00')
        assert snapshot.paid_by_currency == {}

    def test_malformed_stored_amounts_count_as_zero(self, builder):
        facts = ShipmentCostFacts(purchase_cost_egp=Decimal('100'))
        payments = [
            payment(amount_original=None, amount_egp='garbage'),
            payment(amount_original='40', amount_egp='40'),
        ]

        snapshot = builder.build(facts, payments)

        assert snapshot.total_paid_egp == Decimal('40.00')
        assert snapshot.remaining_allowed == Decimal('60.00')

    def test_cost_facts_from_shipment_tolerate_bad_values(self):
        shipment = SimpleNamespace(
            purchase_cost_egp='10',
            commission_cost_egp=None,
            shipping_cost_egp='abc',
            customs_cost_egp=Decimal('5.5'),
            clearance_cost_egp=0,
        )

        facts = ShipmentCostFacts.from_shipment(shipment)

        assert facts.known_total_cost == Decimal('15.50')


# =============================================================================
# Recovery from line items
# =============================================================================

class TestCostRecovery:
    """Recovering the known total when no cost field is set."""

    def test_recovery_with_stored_rate(self, builder):
        snapshot = builder.build(
            ShipmentCostFacts(),
            [payment(amount_original='0', amount_egp='0')],
            recovery=lambda: RecoveryData(items=[item()], rate=Decimal('7')),
        )

        assert snapshot.known_total_cost == Decimal('780.00')
        assert snapshot.remaining_allowed == Decimal('780.00')
        assert snapshot.recovered_from_items is True

    def test_recovery_falls_back_to_default_rate(self, builder):
        snapshot = builder.build(
            ShipmentCostFacts(),
            [],
            recovery=lambda: RecoveryData(items=[item()], rate=None),
        )

        # 100 * 7.15 + 10 * 5 + 10 * 3
        assert snapshot.known_total_cost == Decimal('795.00')
        recovered = snapshot.recovered_totals
        assert recovered.purchase_cost_rmb == Decimal('100.00')
        assert recovered.purchase_cost_egp == Decimal('715.00')
        assert recovered.customs_cost_egp == Decimal('50.00')
        assert recovered.clearance_cost_egp == Decimal('30.00')
        assert recovered.final_total_cost_egp == Decimal('795.00')

    @pytest.mark.parametrize('rate', [0, Decimal('-1'), 'abc'])
    def test_unusable_rate_uses_default(self, builder, rate):
        snapshot = builder.build(
            ShipmentCostFacts(),
            [],
            recovery=lambda: RecoveryData(items=[item()], rate=rate),
        )

        assert snapshot.known_total_cost == Decimal('795.00')

    def test_custom_default_rate(self):
        builder = SnapshotBuilder(default_rate=Decimal('7'))

        snapshot = builder.build(
            ShipmentCostFacts(),
            [],
            recovery=lambda: RecoveryData(items=[item()]),
        )

        assert snapshot.known_total_cost == Decimal('780.00')

    def test_recovery_not_called_when_costs_declared(self, builder):
        def recovery():
            raise AssertionError('recovery must not run')

        snapshot = builder.build(
            ShipmentCostFacts(purchase_cost_egp=Decimal('10')),
            [],
            recovery=recovery,
        )

        assert snapshot.known_total_cost == Decimal('10.00')
        assert snapshot.recovered_totals is None

    def test_no_items_keeps_zero_total(self, builder):
        snapshot = builder.build(
            ShipmentCostFacts(),
            [],
            recovery=lambda: RecoveryData(items=[], rate=Decimal('7')),
        )

        assert snapshot.known_total_cost == Decimal('0.00')
        assert snapshot.recovered_totals is None

    def test_items_without_costs_are_not_adopted(self, builder):
        snapshot = builder.build(
            ShipmentCostFacts(),
            [],
            recovery=lambda: RecoveryData(
                items=[item(total_purchase_cost_rmb='0', customs=None, clearance=None)],
            ),
        )

        assert snapshot.known_total_cost == Decimal('0.00')
        assert snapshot.recovered_totals is None

    def test_no_recovery_hook(self, builder):
        snapshot = builder.build(ShipmentCostFacts(), [])

        assert snapshot.known_total_cost == Decimal('0.00')
        assert snapshot.remaining_allowed == Decimal('0.00')


# =============================================================================
# ORM-backed helpers
# =============================================================================

@pytest.mark.django_db
class TestShipmentSnapshot:
    """Snapshots built from stored shipments."""

    def test_build_from_stored_payments(self, shipment):
        ShipmentPayment.objects.create(
            shipment=shipment,
            payment_date='2024-02-01',
            currency='RMB',
            amount_original=Decimal('10.00'),
            exchange_rate_to_egp=Decimal('5.5000'),
            amount_egp=Decimal('55.00'),
            cost_component='purchase',
            payment_method='cash',
        )

        snapshot = build_shipment_snapshot(shipment)

        assert snapshot.known_total_cost == Decimal('1000.00')
        assert snapshot.total_paid_egp == Decimal('55.00')
        assert snapshot.remaining_allowed == Decimal('945.00')

    def test_recovery_uses_latest_stored_rate(self, itemized_shipment, rmb_rate):
        data = load_recovery_data(itemized_shipment)

        assert data.rate == Decimal('7')
        assert len(data.items) == 1
        assert build_shipment_snapshot(itemized_shipment).known_total_cost == Decimal('780.00')

    def test_recovery_default_rate_without_stored_rate(self, itemized_shipment):
        assert load_recovery_data(itemized_shipment).rate is None
        assert build_shipment_snapshot(itemized_shipment).known_total_cost == Decimal('795.00')

    def test_read_side_does_not_persist(self, itemized_shipment):
        build_shipment_snapshot(itemized_shipment)

        itemized_shipment.refresh_from_db()
        assert itemized_shipment.purchase_cost_egp == Decimal('0.00')
        assert itemized_shipment.final_total_cost_egp == Decimal('0.00')
