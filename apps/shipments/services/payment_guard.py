"""
Payment submission with overpayment protection.

Every payment enters the ledger through ``PaymentGuard.submit_payment``. A
submission moves through

    RECEIVED -> VALIDATED -> NORMALIZED -> CHECKED -> APPROVED | REJECTED

and either commits the payment together with the shipment's running totals,
or raises a ``PaymentError`` without writing anything.

Concurrent submissions for one shipment are serialized, so the check
``amount_egp <= remaining_allowed`` always sees every previously committed
payment. See ``locking`` for the two layers involved.
"""
import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import OperationalError, transaction
from django.db.models import Max, Sum

from apps.audit.models import ActionType, EntityType
from apps.audit.services import dispatch_after_commit
from apps.shipments.exceptions import (
    ConflictRetryError,
    PayloadInvalidError,
    PaymentDateInvalidError,
    PaymentError,
    PaymentOverpayError,
    RateMissingError,
    ShipmentLockedError,
    ShipmentNotFoundError,
    UnknownPaymentError,
)
from apps.shipments.models import (
    BASE_CURRENCY,
    FOREIGN_CURRENCY,
    CostComponent,
    ExchangeRate,
    PaymentMethod,
    Shipment,
    ShipmentPayment,
)
from .currency import (
    ZERO,
    NormalizedAmount,
    normalize_payment_amount,
    parse_amount,
    parse_amount_or_zero,
    parse_rate,
    round_money,
)
from .locking import set_database_lock_timeout, shipment_write_lock
from .snapshot import (
    DEFAULT_RMB_TO_EGP_RATE,
    PaymentSnapshot,
    ShipmentCostFacts,
    SnapshotBuilder,
    load_recovery_data,
)

logger = logging.getLogger(__name__)

DEFAULT_OVERPAY_EPSILON = Decimal('0.0001')
DEFAULT_LOCK_TIMEOUT = 5.0


class PaymentState(enum.Enum):
    RECEIVED = 'received'
    VALIDATED = 'validated'
    NORMALIZED = 'normalized'
    CHECKED = 'checked'
    APPROVED = 'approved'
    REJECTED = 'rejected'


# =============================================================================
# REQUEST PARSING
# =============================================================================

@dataclass(frozen=True)
class PaymentRequest:
    """Validated submission, before currency normalization."""
    payment_date: date
    currency: str
    amount_original: Decimal
    exchange_rate_to_egp: Optional[Decimal]
    cost_component: str
    payment_method: str
    cash_receiver_name: str = ''
    reference_number: str = ''
    note: str = ''


def parse_payment_date(value) -> date:
    """
    Accept a ``date``, an ISO ``YYYY-MM-DD`` string or an ISO datetime.

    Datetimes are truncated to their calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise PaymentDateInvalidError(details={'payment_date': value})

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        # Trailing "Z" is not accepted by fromisoformat before Python 3.11
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        raise PaymentDateInvalidError(details={'payment_date': value})


def _clean_text(payload, key, max_length=None) -> str:
    value = payload.get(key)
    if value is None:
        return ''
    text = str(value).strip()
    if max_length is not None and len(text) > max_length:
        raise PayloadInvalidError(
            f"{key} must be at most {max_length} characters.",
            field=key,
        )
    return text


def _parse_choice(payload, key, choices) -> str:
    value = _clean_text(payload, key)
    if value not in choices.values:
        raise PayloadInvalidError(
            f"{key} must be one of: {', '.join(choices.values)}.",
            field=key,
        )
    return value


def parse_payment_request(payload) -> PaymentRequest:
    """
    Validate the inbound payload and build a ``PaymentRequest``.

    The currency is only checked for presence here; whether it is supported
    is decided by the normalizer.

    Raises:
        PaymentDateInvalidError: Missing or malformed payment date.
        PayloadInvalidError: Missing currency, bad amount, bad component or
            method. ``details['field']`` names the offending field.
    """
    payment_date = parse_payment_date(payload.get('payment_date'))

    currency = _clean_text(payload, 'currency').upper()
    if not currency:
        raise PayloadInvalidError("currency is required.", field='currency')

    amount_original = parse_amount(payload.get('amount_original'), field='amount_original')

    return PaymentRequest(
        payment_date=payment_date,
        currency=currency,
        amount_original=amount_original,
        exchange_rate_to_egp=parse_rate(payload.get('exchange_rate_to_egp')),
        cost_component=_parse_choice(payload, 'cost_component', CostComponent),
        payment_method=_parse_choice(payload, 'payment_method', PaymentMethod),
        cash_receiver_name=_clean_text(payload, 'cash_receiver_name', max_length=255),
        reference_number=_clean_text(payload, 'reference_number', max_length=100),
        note=_clean_text(payload, 'note'),
    )


# =============================================================================
# GUARD
# =============================================================================

class PaymentGuard:
    """
    Validates, normalizes and commits payments without ever letting the
    cumulative EGP paid on a shipment exceed its known total cost.

    Args:
        default_rate: RMB->EGP rate used by cost recovery when none is stored.
        epsilon: Tolerance added to the remaining allowance before rejecting.
        lock_timeout: Seconds to wait for the shipment write lock.
    """

    def __init__(
        self,
        default_rate=DEFAULT_RMB_TO_EGP_RATE,
        epsilon=DEFAULT_OVERPAY_EPSILON,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ):
        self.epsilon = Decimal(epsilon)
        self.lock_timeout = float(lock_timeout)
        self.snapshot_builder = SnapshotBuilder(default_rate=default_rate)

    def submit_payment(self, *, shipment_id, payload, user=None) -> ShipmentPayment:
        """
        Record a payment against a shipment.

        Args:
            shipment_id: Primary key of the shipment.
            payload: Mapping with ``payment_date``, ``currency``,
                ``amount_original``, optional ``exchange_rate_to_egp``,
                ``cost_component``, ``payment_method`` and optional
                ``cash_receiver_name``, ``reference_number``, ``note``.
            user: Authenticated user recording the payment, if any.

        Returns:
            The persisted ShipmentPayment.

        Raises:
            ShipmentNotFoundError: Unknown shipment.
            ShipmentLockedError: Shipment is archived.
            PaymentDateInvalidError, PayloadInvalidError: Bad payload.
            RateMissingError: RMB payment and no usable rate.
            CurrencyUnsupportedError: Currency other than EGP/RMB.
            PaymentOverpayError: Payment exceeds the remaining allowance.
            ConflictRetryError: Shipment busy; nothing was written.
            UnknownPaymentError: Any other failure; nothing was written.
        """
        pk = self._coerce_shipment_id(shipment_id)
        self._transition(pk, PaymentState.RECEIVED)

        try:
            with shipment_write_lock(pk, timeout=self.lock_timeout):
                with transaction.atomic():
                    set_database_lock_timeout(self.lock_timeout)
                    payment = self._submit_locked(pk, payload, user)
        except ConflictRetryError:
            self._transition(pk, PaymentState.REJECTED, level=logging.WARNING, reason='CONFLICT_RETRY')
            raise
        except PaymentError as exc:
            self._transition(pk, PaymentState.REJECTED, level=logging.WARNING, reason=exc.code)
            raise
        except OperationalError as exc:
            logger.warning("Database lock conflict on shipment %s: %s", pk, exc)
            self._transition(pk, PaymentState.REJECTED, level=logging.WARNING, reason='CONFLICT_RETRY')
            raise ConflictRetryError(details={'shipment_id': str(pk)}) from exc
        except Exception as exc:
            logger.exception("Unexpected failure while recording payment on shipment %s", pk)
            self._transition(pk, PaymentState.REJECTED, level=logging.WARNING, reason='UNKNOWN_ERROR')
            raise UnknownPaymentError() from exc

        logger.info(
            "Payment %s approved on shipment %s: %s %s -> %s EGP",
            payment.pk, pk, payment.amount_original, payment.currency, payment.amount_egp,
        )
        return payment

    # -------------------------------------------------------------------------

    def _submit_locked(self, shipment_id, payload, user) -> ShipmentPayment:
        shipment = self._get_shipment(shipment_id)

        request = parse_payment_request(payload)
        self._transition(shipment_id, PaymentState.VALIDATED)

        rate = self._resolve_rate(request)
        normalized = normalize_payment_amount(request.currency, request.amount_original, rate)
        self._transition(shipment_id, PaymentState.NORMALIZED)

        snapshot = self.snapshot_builder.build(
            cost_facts=ShipmentCostFacts.from_shipment(shipment),
            payments=shipment.payments.all(),
            recovery=lambda: load_recovery_data(shipment),
        )
        self._check_allowance(shipment, snapshot, normalized)
        self._transition(shipment_id, PaymentState.CHECKED)

        payment = self._commit(shipment, request, normalized, snapshot, user)
        self._transition(shipment_id, PaymentState.APPROVED)
        return payment

    @staticmethod
    def _coerce_shipment_id(shipment_id) -> uuid.UUID:
        if isinstance(shipment_id, uuid.UUID):
            return shipment_id
        try:
            return uuid.UUID(str(shipment_id))
        except ValueError:
            raise ShipmentNotFoundError(details={'shipment_id': str(shipment_id)})

    @staticmethod
    def _get_shipment(shipment_id) -> Shipment:
        try:
            shipment = Shipment.objects.select_for_update().get(pk=shipment_id)
        except Shipment.DoesNotExist:
            raise ShipmentNotFoundError(details={'shipment_id': str(shipment_id)})

        if shipment.is_locked:
            raise ShipmentLockedError(
                details={'shipment_id': str(shipment_id), 'status': shipment.status}
            )
        return shipment

    @staticmethod
    def _resolve_rate(request: PaymentRequest) -> Optional[Decimal]:
        """Request rate first, then the latest stored RMB->EGP rate."""
        if request.currency != FOREIGN_CURRENCY:
            return None
        if request.exchange_rate_to_egp is not None:
            return request.exchange_rate_to_egp

        latest = ExchangeRate.objects.latest_rate(FOREIGN_CURRENCY, BASE_CURRENCY)
        rate = parse_rate(latest.rate_value) if latest else None
        if rate is None:
            raise RateMissingError(details={'currency': request.currency})
        return rate

    def _check_allowance(self, shipment, snapshot: PaymentSnapshot, normalized: NormalizedAmount):
        remaining = snapshot.remaining_allowed
        if normalized.amount_egp > remaining + self.epsilon:
            raise PaymentOverpayError(
                f"The payment exceeds the remaining balance of the shipment "
                f"(allowed: {remaining:.2f} EGP).",
                details={
                    'shipment_id': str(shipment.pk),
                    'known_total_cost': str(snapshot.known_total_cost),
                    'already_paid': str(snapshot.total_paid_egp),
                    'remaining_allowed': str(remaining),
                    'attempted': str(normalized.amount_egp),
                },
            )

    def _commit(self, shipment, request, normalized, snapshot, user) -> ShipmentPayment:
        recorded_by = user if getattr(user, 'is_authenticated', False) else None

        payment = ShipmentPayment.objects.create(
            shipment=shipment,
            payment_date=request.payment_date,
            currency=request.currency,
            amount_original=round_money(request.amount_original),
            exchange_rate_to_egp=normalized.exchange_rate_to_egp,
            amount_egp=normalized.amount_egp,
            cost_component=request.cost_component,
            payment_method=request.payment_method,
            cash_receiver_name=request.cash_receiver_name,
            reference_number=request.reference_number,
            note=request.note,
            created_by=recorded_by,
        )

        totals = shipment.payments.aggregate(
            total_paid=Sum('amount_egp'),
            last_payment_date=Max('payment_date'),
        )
        known_total = snapshot.known_total_cost
        total_paid = round_money(totals['total_paid'] or ZERO)

        shipment.total_paid_egp = total_paid
        shipment.balance_egp = round_money(max(ZERO, known_total - total_paid))
        shipment.last_payment_date = totals['last_payment_date']
        update_fields = ['total_paid_egp', 'balance_egp', 'last_payment_date']

        recovered = snapshot.recovered_totals
        if recovered is not None:
            shipment.purchase_cost_rmb = recovered.purchase_cost_rmb
            shipment.purchase_cost_egp = recovered.purchase_cost_egp
            shipment.customs_cost_egp = recovered.customs_cost_egp
            shipment.clearance_cost_egp = recovered.clearance_cost_egp
            update_fields += [
                'purchase_cost_rmb',
                'purchase_cost_egp',
                'customs_cost_egp',
                'clearance_cost_egp',
            ]
            logger.info(
                "Recovered costs of shipment %s from items: %s EGP",
                shipment.pk, recovered.final_total_cost_egp,
            )

        current_final = parse_amount_or_zero(shipment.final_total_cost_egp)
        if known_total > 0 and known_total > current_final:
            shipment.final_total_cost_egp = known_total
            update_fields.append('final_total_cost_egp')

        update_fields.append('updated_at')
        shipment.save(update_fields=update_fields)

        dispatch_after_commit(
            user=recorded_by,
            entity_type=EntityType.PAYMENT,
            entity_id=payment.pk,
            action_type=ActionType.CREATE,
            details={
                'shipment_id': str(shipment.pk),
                'amount': str(payment.amount_egp),
                'currency': payment.currency,
                'method': payment.payment_method,
            },
        )
        return payment

    @staticmethod
    def _transition(shipment_id, state: PaymentState, level=logging.DEBUG, reason=None):
        if reason:
            logger.log(level, "Payment on shipment %s -> %s (%s)", shipment_id, state.name, reason)
        else:
            logger.log(level, "Payment on shipment %s -> %s", shipment_id, state.name)


def get_payment_guard() -> PaymentGuard:
    """Guard configured from ``settings.LEDGER``."""
    ledger = getattr(settings, 'LEDGER', {})
    return PaymentGuard(
        default_rate=ledger.get('DEFAULT_RMB_TO_EGP_RATE', DEFAULT_RMB_TO_EGP_RATE),
        epsilon=ledger.get('OVERPAY_EPSILON', DEFAULT_OVERPAY_EPSILON),
        lock_timeout=ledger.get('PAYMENT_LOCK_TIMEOUT_SECONDS', DEFAULT_LOCK_TIMEOUT),
    )
