from .server import PaymentMonitorServer
from .verifier import WebhookVerificationError, WebhookVerifier

__all__ = [
    "PaymentMonitorServer",
    "WebhookVerificationError",
    "WebhookVerifier",
]
