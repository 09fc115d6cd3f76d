from .classifier import FAILED_PAYMENT_EVENTS, extract_failed_payment, is_failed_payment_event
from .dedup import ProcessedEvents
from .normalizer import normalize_payment
from .processor import FailedPaymentProcessor, ProcessingOutcome

__all__ = [
    "FAILED_PAYMENT_EVENTS",
    "FailedPaymentProcessor",
    "ProcessedEvents",
    "ProcessingOutcome",
    "extract_failed_payment",
    "is_failed_payment_event",
    "normalize_payment",
]
