from dataclasses import dataclass, field

from payment_monitor.models.payment import MISSING_PAYMENT_ID, FailedPaymentRecord
from payment_monitor.models.webhook import WebhookEvent
from payment_monitor.observability.activity import ActivityLog
from payment_monitor.observability.metrics import SinkMetrics
from payment_monitor.pipeline.classifier import extract_failed_payment
from payment_monitor.pipeline.dedup import ProcessedEvents
from payment_monitor.pipeline.normalizer import normalize_payment
from payment_monitor.sinks.base import Sink, SinkResult


@dataclass
class ProcessingOutcome:
    record: FailedPaymentRecord
    results: list[SinkResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    def failed_sinks(self) -> list[str]:
        return [r.sink for r in self.results if not r.ok]


class FailedPaymentProcessor:
    """Normalizes failed payments and hands them to the alert and record sinks.

    Sinks run one after the other in the order given. A failing sink never
    stops the next one and never raises out of ``process_payment``; its
    failure ends up as an error entry in the activity log.
    """

    def __init__(
        self,
        sinks: list[Sink],
        activity: ActivityLog,
        metrics: SinkMetrics | None = None,
        processed_events: ProcessedEvents | None = None,
        normalizer=normalize_payment,
    ):
        self.sinks = list(sinks)
        self.activity = activity
        self.metrics = metrics
        self.processed_events = processed_events
        self.normalizer = normalizer

    def handle_event(self, event: WebhookEvent) -> ProcessingOutcome | None:
        """Run the pipeline for a verified event. Returns None when nothing was done."""
        payment = extract_failed_payment(event)
        if payment is None:
            return None

        if self.processed_events is not None and not self.processed_events.claim(event.event_id):
            self.activity.info("Duplicate webhook %s ignored", event.event_id)
            return None

        return self.process_payment(payment)

    def process_payment(self, payment: dict) -> ProcessingOutcome:
        record = self.normalizer(payment)
        if record.payment_id == MISSING_PAYMENT_ID:
            self.activity.error("Failed payment has no id, continuing as %s", MISSING_PAYMENT_ID)

        self.activity.info("Processing failed payment: %s", record.payment_id)

        outcome = ProcessingOutcome(record=record)
        for sink in self.sinks:
            result = self._deliver(sink, record)
            outcome.results.append(result)
            self._report(result, record)
        return outcome

    def _deliver(self, sink: Sink, record: FailedPaymentRecord) -> SinkResult:
        try:
            return sink.deliver(record)
        except Exception as e:  # nothing a sink does may escape the pipeline
            return SinkResult.failed(sink.name, f"{type(e).__name__}: {e}")

    def _report(self, result: SinkResult, record: FailedPaymentRecord) -> None:
        if result.ok:
            self.activity.info("Delivered %s for payment %s", result.sink, record.payment_id)
            if self.metrics is not None:
                self.metrics.record_success(result.sink)
        else:
            self.activity.error(
                "Failed to deliver %s for payment %s: %s",
                result.sink, record.payment_id, result.error,
            )
            if self.metrics is not None:
                self.metrics.record_failure(result.sink)
