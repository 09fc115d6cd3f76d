from payment_monitor.models.webhook import WebhookEvent

FAILED_PAYMENT_EVENTS = frozenset({
    "payment_intent.payment_failed",
    "charge.failed",
    "invoice.payment_failed",
})


def is_failed_payment_event(event_type: str) -> bool:
    return event_type in FAILED_PAYMENT_EVENTS


def extract_failed_payment(event: WebhookEvent) -> dict | None:
    """Return the embedded payment object for failure events, ``None`` for anything else."""
    if not is_failed_payment_event(event.event_type):
        return None
    return event.data_object
