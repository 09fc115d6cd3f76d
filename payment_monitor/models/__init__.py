from .activity import LogEntry
from .payment import FailedPaymentRecord
from .webhook import WebhookEvent

__all__ = [
    "LogEntry",
    "FailedPaymentRecord",
    "WebhookEvent",
]
