import json

import stripe

from payment_monitor.models.webhook import WebhookEvent

SIGNATURE_HEADER = "Stripe-Signature"


class WebhookVerificationError(Exception):
    """The webhook body is not authentic or not a well-formed event."""


class WebhookVerifier:
    """Authenticates Stripe webhook bodies and parses the event envelope.

    Without a signing secret every body is rejected.
    """

    def __init__(self, secret: str | None, tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE):
        self.secret = secret or ""
        self.tolerance = tolerance

    @property
    def is_configured(self) -> bool:
        return bool(self.secret)

    def verify(self, body: bytes, signature: str | None) -> WebhookEvent:
        if not self.secret:
            raise WebhookVerificationError("webhook signing secret is not configured")
        if not signature:
            raise WebhookVerificationError(f"missing {SIGNATURE_HEADER} header")

        try:
            payload = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise WebhookVerificationError(f"invalid payload: {e}") from e

        try:
            stripe.WebhookSignature.verify_header(payload, signature, self.secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(str(e)) from e

        try:
            return WebhookEvent.from_payload(json.loads(payload))
        except ValueError as e:
            raise WebhookVerificationError(f"invalid payload: {e}") from e
