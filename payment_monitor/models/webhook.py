from dataclasses import dataclass, field


@dataclass
class WebhookEvent:
    event_id: str
    event_type: str  # "charge.failed", "invoice.payment_failed", etc.
    data_object: dict = field(default_factory=dict)
    created: int | None = None
    livemode: bool = False

    @classmethod
    def from_payload(cls, payload: dict) -> "WebhookEvent":
        """Build an event envelope from a decoded webhook body.

        Raises ValueError when the body is not a Stripe event envelope.
        """
        if not isinstance(payload, dict):
            raise ValueError("event payload must be a JSON object")

        event_type = payload.get("type")
        if not event_type or not isinstance(event_type, str):
            raise ValueError("event payload has no type")

        data = payload.get("data")
        data_object = data.get("object") if isinstance(data, dict) else None
        if not isinstance(data_object, dict):
            raise ValueError("event payload has no data.object")

        return cls(
            event_id=str(payload.get("id") or ""),
            event_type=event_type,
            data_object=data_object,
            created=payload.get("created"),
            livemode=bool(payload.get("livemode", False)),
        )
