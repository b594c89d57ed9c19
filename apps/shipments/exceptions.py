"""
Domain exceptions for the payment ledger.

Every error raised by the reconciliation core is an ``APIException`` with a
stable code, an HTTP status and an optional ``details`` dict of
machine-readable context. ``config.exceptions.ledger_exception_handler``
renders them as ``{"ok": false, "error": {"code", "message", "details"}}``.

Exception Hierarchy:
    PaymentError (base)
    ├── ShipmentNotFoundError        404  SHIPMENT_NOT_FOUND
    ├── ShipmentLockedError          409  SHIPMENT_LOCKED
    ├── PaymentDateInvalidError      400  PAYMENT_DATE_INVALID
    ├── PayloadInvalidError          400  PAYMENT_PAYLOAD_INVALID
    ├── RateMissingError             400  PAYMENT_RATE_MISSING
    ├── CurrencyUnsupportedError     400  PAYMENT_CURRENCY_UNSUPPORTED
    ├── PaymentOverpayError          409  PAYMENT_OVERPAY
    ├── ConflictRetryError           409  CONFLICT_RETRY
    └── UnknownPaymentError          500  UNKNOWN_ERROR
"""
from rest_framework.exceptions import APIException


class PaymentError(APIException):
    """Base exception for all payment ledger errors."""
    status_code = 400
    default_detail = 'The payment could not be processed.'
    default_code = 'unknown_error'

    def __init__(self, detail=None, details=None):
        super().__init__(detail=detail)
        self.details = details

    @property
    def code(self):
        """Stable, client-facing error code."""
        return self.default_code.upper()


class ShipmentNotFoundError(PaymentError):
    """Shipment does not exist."""
    status_code = 404
    default_detail = 'Shipment not found. Make sure a valid shipment is selected.'
    default_code = 'shipment_not_found'


class ShipmentLockedError(PaymentError):
    """Shipment is archived and accepts no further payments."""
    status_code = 409
    default_detail = 'Payments cannot be added to a closed or archived shipment.'
    default_code = 'shipment_locked'


class PaymentDateInvalidError(PaymentError):
    """Payment date is missing or not a calendar date."""
    status_code = 400
    default_detail = 'Invalid payment date. Use the YYYY-MM-DD format.'
    default_code = 'payment_date_invalid'


class PayloadInvalidError(PaymentError):
    """Payment payload is incomplete, non-numeric or negative."""
    status_code = 400
    default_detail = 'Payment data is incomplete or invalid. Check the required fields.'
    default_code = 'payment_payload_invalid'

    def __init__(self, detail=None, field=None, details=None):
        merged = dict(details or {})
        if field is not None:
            merged.setdefault('field', field)
        super().__init__(detail=detail, details=merged or None)
        self.field = field

    @classmethod
    def from_serializer_errors(cls, errors):
        """Build from ``serializer.errors``; the first failing field is reported."""
        return cls(field=next(iter(errors), None), details={'fields': errors})


class RateMissingError(PaymentError):
    """RMB payment without a usable exchange rate."""
    status_code = 400
    default_detail = 'A valid RMB to EGP exchange rate is required for RMB payments.'
    default_code = 'payment_rate_missing'


class CurrencyUnsupportedError(PaymentError):
    """Payment currency is neither EGP nor RMB."""
    status_code = 400
    default_detail = 'Unsupported payment currency. Use EGP or RMB only.'
    default_code = 'payment_currency_unsupported'


class PaymentOverpayError(PaymentError):
    """Payment exceeds the amount still payable on the shipment."""
    status_code = 409
    default_detail = 'The payment exceeds the remaining balance of the shipment.'
    default_code = 'payment_overpay'


class ConflictRetryError(PaymentError):
    """Another submission holds the shipment; nothing was written."""
    status_code = 409
    default_detail = 'Another operation on the same shipment is in progress. Retry in a moment.'
    default_code = 'conflict_retry'


class UnknownPaymentError(PaymentError):
    """Unexpected failure, surfaced generically."""
    status_code = 500
    default_detail = 'An unexpected error occurred while saving the payment.'
    default_code = 'unknown_error'
