"""Maps Stripe payment objects onto ``FailedPaymentRecord``.

Each optional field is resolved from an ordered tuple of key paths; the
first path holding a truthy value wins. The order decides what a person
reads in the alert, so change it only together with the tests:

* payment id: ``id``
* customer email: ``customer_email``, then ``receipt_email``
* failure reason: ``failure_message``, then ``outcome.seller_message``

Amounts arrive in minor units (cents), are floored and divided by 100.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from payment_monitor.models.payment import (
    DEFAULT_CURRENCY,
    MISSING_PAYMENT_ID,
    UNKNOWN_REASON,
    FailedPaymentRecord,
)
from payment_monitor.utils.time import isoformat, utc_now

KeyPath = tuple[str, ...]

PAYMENT_ID_PATHS: tuple[KeyPath, ...] = (("id",),)
EMAIL_PATHS: tuple[KeyPath, ...] = (("customer_email",), ("receipt_email",))
REASON_PATHS: tuple[KeyPath, ...] = (("failure_message",), ("outcome", "seller_message"))

MINOR_UNITS_PER_MAJOR = Decimal(100)
CENTS = Decimal("0.01")
ZERO_AMOUNT = Decimal("0.00")


def resolve_path(obj: Mapping, path: KeyPath):
    current = obj
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def first_present(obj: Mapping, paths: tuple[KeyPath, ...]):
    """Value of the first path that resolves to something truthy, else ``None``."""
    for path in paths:
        value = resolve_path(obj, path)
        if value:
            return value
    return None


def to_major_units(minor_units) -> Decimal:
    """Minor units to major units, floored to whole minor units first.

    Anything that is not a finite number representable in cents (booleans,
    ``None``, junk strings, NaN, infinities, absurdly large values) is 0.00.
    """
    if isinstance(minor_units, bool) or not isinstance(minor_units, (int, float, str)):
        return ZERO_AMOUNT
    try:
        minor = Decimal(minor_units)
        if not minor.is_finite():
            return ZERO_AMOUNT
        whole = minor.to_integral_value(rounding=ROUND_FLOOR)
        return (whole / MINOR_UNITS_PER_MAJOR).quantize(CENTS)
    except InvalidOperation:
        return ZERO_AMOUNT


def normalize_payment(
    obj: Mapping,
    clock: Callable[[], datetime] | None = None,
) -> FailedPaymentRecord:
    now = (clock or utc_now)()
    currency = obj.get("currency") or DEFAULT_CURRENCY

    return FailedPaymentRecord(
        payment_id=str(first_present(obj, PAYMENT_ID_PATHS) or MISSING_PAYMENT_ID),
        customer_email=first_present(obj, EMAIL_PATHS),
        amount=to_major_units(obj.get("amount")),
        currency=str(currency).lower(),
        failure_reason=str(first_present(obj, REASON_PATHS) or UNKNOWN_REASON),
        timestamp=isoformat(now),
    )
