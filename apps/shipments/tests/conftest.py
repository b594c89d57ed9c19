import itertools
from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, UserRole
from apps.shipments.models import (
    Currency,
    ExchangeRate,
    Shipment,
    ShipmentItem,
    ShipmentStatus,
)
from apps.shipments.services import PaymentGuard


_shipment_codes = itertools.count(1)


@pytest.fixture
def make_payload():
    """Factory for an EGP cash payment payload, overridable per test."""
    def _make(**overrides):
        payload = {
            'payment_date': '2024-03-01',
            'currency': 'EGP',
            'amount_original': '100.00',
            'cost_component': 'purchase',
            'payment_method': 'cash',
            'cash_receiver_name': 'Ali',
        }
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def accountant(db):
    """User allowed to record payments."""
    return User.objects.create_user(
        email='accountant@example.com',
        password='TestPass123!',
        display_name='Accountant',
        role=UserRole.ACCOUNTANT,
    )


@pytest.fixture
def viewer(db):
    """Read-only user."""
    return User.objects.create_user(
        email='viewer@example.com',
        password='TestPass123!',
        display_name='Viewer',
        role=UserRole.VIEWER,
    )


@pytest.fixture
def accountant_client(api_client, accountant):
    """Return API client authenticated as accountant."""
    refresh = RefreshToken.for_user(accountant)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def viewer_client(viewer):
    """Return API client authenticated as viewer."""
    client = APIClient()
    refresh = RefreshToken.for_user(viewer)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def make_shipment(db):
    """Factory for shipments; cost fields default to zero."""
    def _make(**fields):
        number = next(_shipment_codes)
        fields.setdefault('shipment_code', f'SH-{number:04d}')
        fields.setdefault('shipment_name', f'Test Shipment {number}')
        fields.setdefault('purchase_date', date(2024, 1, 1))
        return Shipment.objects.create(**fields)
    return _make


@pytest.fixture
def shipment(make_shipment):
    """Shipment with a known total cost of 1000.00 EGP."""
    return make_shipment(
        purchase_cost_egp=Decimal('800.00'),
        shipping_cost_egp=Decimal('200.00'),
    )


@pytest.fixture
def archived_shipment(make_shipment):
    return make_shipment(
        purchase_cost_egp=Decimal('500.00'),
        status=ShipmentStatus.ARCHIVED,
    )


@pytest.fixture
def itemized_shipment(make_shipment):
    """
    Shipment with no cost fields and one item.

    100 RMB of goods, 10 cartons at 5 EGP customs and 3 EGP clearance each.
    """
    shipment = make_shipment()
    ShipmentItem.objects.create(
        shipment=shipment,
        product_name='Widgets',
        cartons_ctn=10,
        total_purchase_cost_rmb=Decimal('100.00'),
        customs_cost_per_carton_egp=Decimal('5.00'),
        clearance_cost_per_carton_egp=Decimal('3.00'),
    )
    return shipment


@pytest.fixture
def rmb_rate(db):
    """Latest stored RMB->EGP rate: 7.0"""
    ExchangeRate.objects.create(
        rate_date=date(2024, 1, 1),
        from_currency=Currency.RMB,
        to_currency=Currency.EGP,
        rate_value=Decimal('6.800000'),
    )
    return ExchangeRate.objects.create(
        rate_date=date(2024, 2, 1),
        from_currency=Currency.RMB,
        to_currency=Currency.EGP,
        rate_value=Decimal('7.000000'),
    )


@pytest.fixture
def guard():
    return PaymentGuard(default_rate=Decimal('7.15'), epsilon=Decimal('0.0001'), lock_timeout=5)
