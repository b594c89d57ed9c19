"""
Currency normalization for the payment ledger.

Every EGP amount the ledger produces goes through ``round_money``; rates go
through ``round_rate``. Both use half-up rounding on ``Decimal`` values so
repeated normalization of the same inputs is idempotent.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from apps.shipments.exceptions import (
    CurrencyUnsupportedError,
    PayloadInvalidError,
    RateMissingError,
)
from apps.shipments.models import BASE_CURRENCY, Currency

MONEY_PLACES = Decimal('0.01')
RATE_PLACES = Decimal('0.0001')
ZERO = Decimal('0.00')

# Exclusive upper bounds of the money (15,2) and rate (10,4) columns.
MAX_AMOUNT = Decimal(10) ** 13
MAX_RATE = Decimal(10) ** 6


def to_decimal(value) -> Decimal:
    """
    Convert a number or numeric string to a finite ``Decimal``.

    Floats go through ``str`` so 0.1 stays 0.1. Booleans, blanks, NaN and
    infinities are rejected with ``ValueError``.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    else:
        raise ValueError(f"Not a number: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round_money(value) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return _quantize(value, MONEY_PLACES)


def round_rate(value) -> Decimal:
    """Round a conversion rate to 4 decimal places, half-up."""
    return _quantize(value, RATE_PLACES)


def _quantize(value, places) -> Decimal:
    try:
        return to_decimal(value).quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Too many digits to round: {value!r}")


def parse_amount(value, field='amount_original') -> Decimal:
    """Strict parse of a non-negative amount; raises ``PayloadInvalidError``."""
    try:
        amount = to_decimal(value)
    except ValueError:
        raise PayloadInvalidError(
            f"{field} must be a valid number.",
            field=field,
        )
    if amount < 0:
        raise PayloadInvalidError(
            f"{field} cannot be negative.",
            field=field,
        )
    if amount >= MAX_AMOUNT or round_money(amount) >= MAX_AMOUNT:
        raise PayloadInvalidError(
            f"{field} is too large.",
            field=field,
        )
    return amount


def parse_amount_or_zero(value) -> Decimal:
    """Lenient parse for stored values: anything malformed counts as zero."""
    try:
        return to_decimal(value)
    except ValueError:
        return Decimal('0')


def parse_rate(value) -> Optional[Decimal]:
    """Return the rate if it is a number greater than zero, else None."""
    if value is None or value == '':
        return None
    try:
        rate = to_decimal(value)
    except ValueError:
        return None
    return rate if rate > 0 else None


@dataclass(frozen=True)
class NormalizedAmount:
    amount_egp: Decimal
    exchange_rate_to_egp: Optional[Decimal]


def normalize_payment_amount(currency, amount_original, rate=None) -> NormalizedAmount:
    """
    Convert a payment's declared amount into EGP.

    Args:
        currency: ``EGP`` or ``RMB``.
        amount_original: Declared amount in ``currency``; finite and >= 0.
        rate: RMB to EGP rate. Required and > 0 for RMB, ignored for EGP.

    Returns:
        NormalizedAmount with the EGP amount (2 dp) and the effective
        rate (4 dp, ``None`` for EGP payments).

    Raises:
        CurrencyUnsupportedError: currency is not EGP or RMB.
        RateMissingError: RMB payment without a rate greater than zero.
        PayloadInvalidError: amount is non-numeric, negative or too large,
            or the rate does not fit the ledger.
    """
    if currency not in Currency.values:
        raise CurrencyUnsupportedError(details={'currency': currency})

    amount = parse_amount(amount_original)

    if currency == BASE_CURRENCY:
        return NormalizedAmount(
            amount_egp=_bounded_money(amount),
            exchange_rate_to_egp=None,
        )

    effective_rate = parse_rate(rate)
    if effective_rate is None:
        raise RateMissingError(details={'currency': currency})
    if effective_rate >= MAX_RATE or round_rate(effective_rate) >= MAX_RATE:
        raise PayloadInvalidError(
            "exchange_rate_to_egp is too large.",
            field='exchange_rate_to_egp',
        )

    return NormalizedAmount(
        amount_egp=_bounded_money(amount * effective_rate),
        exchange_rate_to_egp=round_rate(effective_rate),
    )


def _bounded_money(value) -> Decimal:
    if value < MAX_AMOUNT:
        amount = round_money(value)
        if amount < MAX_AMOUNT:
            return amount
    raise PayloadInvalidError(
        "amount_original is too large once converted to EGP.",
        field='amount_original',
    )
