import time
import uuid

from payment_monitor.pipeline.classifier import FAILED_PAYMENT_EVENTS


class PaymentObjectFactory:
    """Factory for Stripe payment objects (the ``data.object`` of an event)."""

    @staticmethod
    def charge(**overrides) -> dict:
        defaults = {
            "id": f"ch_{uuid.uuid4().hex[:16]}",
            "object": "charge",
            "amount": 2500,
            "currency": "usd",
            "receipt_email": "customer@example.com",
            "failure_code": "card_declined",
            "failure_message": "Your card was declined.",
            "outcome": {
                "type": "issuer_declined",
                "seller_message": "The bank did not return any further details with this decline.",
            },
            "status": "failed",
        }
        defaults.update(overrides)
        return defaults

    @staticmethod
    def payment_intent(**overrides) -> dict:
        defaults = {
            "id": f"pi_{uuid.uuid4().hex[:16]}",
            "object": "payment_intent",
            "amount": 4999,
            "currency": "eur",
            "receipt_email": "buyer@example.com",
            "status": "requires_payment_method",
        }
        defaults.update(overrides)
        return defaults

    @staticmethod
    def invoice(**overrides) -> dict:
        defaults = {
            "id": f"in_{uuid.uuid4().hex[:16]}",
            "object": "invoice",
            "amount_due": 1200,
            "currency": "usd",
            "customer_email": "subscriber@example.com",
            "status": "open",
        }
        defaults.update(overrides)
        return defaults


class StripeEventFactory:
    """Factory for Stripe webhook event envelopes with sensible defaults."""

    @staticmethod
    def create_event(event_type: str = "charge.failed", data_object: dict | None = None, **overrides) -> dict:
        if data_object is None:
            data_object = _default_object(event_type)

        event = {
            "id": f"evt_{uuid.uuid4().hex[:16]}",
            "object": "event",
            "api_version": "2024-06-20",
            "created": int(time.time()),
            "livemode": False,
            "type": event_type,
            "data": {"object": data_object},
        }
        event.update(overrides)
        return event

    @staticmethod
    def failed_event_types() -> list[str]:
        return sorted(FAILED_PAYMENT_EVENTS)


def _default_object(event_type: str) -> dict:
    if event_type.startswith("payment_intent."):
        return PaymentObjectFactory.payment_intent()
    if event_type.startswith("invoice."):
        return PaymentObjectFactory.invoice()
    return PaymentObjectFactory.charge()
