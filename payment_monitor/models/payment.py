from dataclasses import dataclass
from decimal import Decimal

UNKNOWN_CUSTOMER = "Unknown Customer"
EMAIL_NOT_AVAILABLE = "Not available"
UNKNOWN_EMAIL = "Unknown"
UNKNOWN_REASON = "Unknown reason"
MISSING_PAYMENT_ID = "unknown_payment"
DEFAULT_CURRENCY = "usd"


@dataclass(frozen=True)
class FailedPaymentRecord:
    payment_id: str
    customer_email: str | None
    amount: Decimal  # major currency unit
    currency: str  # lower-case ISO code, e.g. "usd"
    failure_reason: str
    timestamp: str  # ISO 8601, capture time

    @property
    def display_currency(self) -> str:
        return self.currency.upper()

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "customer_email": self.customer_email,
            "amount": str(self.amount),
            "currency": self.display_currency,
            "failure_reason": self.failure_reason,
            "timestamp": self.timestamp,
        }
