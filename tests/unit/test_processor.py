from decimal import Decimal

import pytest

from payment_monitor.models.webhook import WebhookEvent
from payment_monitor.pipeline.processor import FailedPaymentProcessor


def _event(event_type: str = "charge.failed", event_id: str = "evt_1", **obj) -> WebhookEvent:
    data_object = {"id": "ch_1", "amount": 2500, "currency": "usd", **obj}
    return WebhookEvent(event_id=event_id, event_type=event_type, data_object=data_object)


class TestProcessPayment:
    """Tests for FailedPaymentProcessor.process_payment()."""

    @pytest.mark.unit
    def test_both_sinks_receive_the_same_record(self, processor, alert_sink, record_sink):
        outcome = processor.process_payment({"id": "ch_1", "amount": 2500})

        assert alert_sink.call_count == 1
        assert record_sink.call_count == 1
        assert alert_sink.records[0] is record_sink.records[0] is outcome.record
        assert outcome.record.amount == Decimal("25.00")
        assert outcome.ok is True

    @pytest.mark.unit
    def test_sinks_called_in_order(self, activity, make_sink):
        calls = []

        class OrderedSink:
            is_configured = True

            def __init__(self, name):
                self.name = name
                self._inner = make_sink(name)

            def deliver(self, record):
                calls.append(self.name)
                return self._inner.deliver(record)

        processor = FailedPaymentProcessor([OrderedSink("email"), OrderedSink("store")], activity)
        processor.process_payment({"id": "ch_1"})
        assert calls == ["email", "store"]

    @pytest.mark.unit
    def test_success_logs_processing_and_deliveries(self, processor, activity):
        processor.process_payment({"id": "ch_1"})
        messages = [e.message for e in activity.entries()]
        assert messages == [
            "Processing failed payment: ch_1",
            "Delivered email for payment ch_1",
            "Delivered store for payment ch_1",
        ]
        assert activity.errors() == []

    @pytest.mark.unit
    def test_record_failure_still_sends_alert_one_error_logged(self, activity, make_sink):
        alert = make_sink("email")
        store = make_sink("store", fail_with="HTTP 422: INVALID_VALUE_FOR_COLUMN")
        processor = FailedPaymentProcessor([alert, store], activity)

        outcome = processor.process_payment({"id": "ch_1"})

        assert alert.call_count == 1
        assert store.call_count == 1
        assert outcome.ok is False
        assert outcome.failed_sinks() == ["store"]
        errors = activity.errors()
        assert len(errors) == 1
        assert errors[0].message == "Failed to deliver store for payment ch_1: HTTP 422: INVALID_VALUE_FOR_COLUMN"

    @pytest.mark.unit
    def test_alert_failure_still_writes_record_one_error_logged(self, activity, make_sink):
        alert = make_sink("email", fail_with="timeout")
        store = make_sink("store")
        processor = FailedPaymentProcessor([alert, store], activity)

        outcome = processor.process_payment({"id": "ch_1"})

        assert store.call_count == 1
        assert outcome.failed_sinks() == ["email"]
        assert len(activity.errors()) == 1

    @pytest.mark.unit
    def test_both_sinks_failing_does_not_raise(self, activity, make_sink):
        processor = FailedPaymentProcessor(
            [make_sink("email", fail_with="x"), make_sink("store", fail_with="y")], activity,
        )
        outcome = processor.process_payment({"id": "ch_1"})
        assert outcome.failed_sinks() == ["email", "store"]
        assert len(activity.errors()) == 2

    @pytest.mark.unit
    def test_raising_sink_converted_to_failed_result(self, activity, make_sink):
        store = make_sink("store")
        processor = FailedPaymentProcessor(
            [make_sink("email", raise_with=RuntimeError("bad state")), store], activity,
        )

        outcome = processor.process_payment({"id": "ch_1"})

        assert store.call_count == 1
        assert outcome.results[0].ok is False
        assert outcome.results[0].error == "RuntimeError: bad state"
        assert len(activity.errors()) == 1

    @pytest.mark.unit
    def test_missing_payment_id_logged_as_defect_and_still_delivered(self, processor, alert_sink, activity):
        processor.process_payment({"amount": 100})
        assert alert_sink.records[0].payment_id == "unknown_payment"
        assert any("has no id" in e.message for e in activity.errors())

    @pytest.mark.unit
    def test_metrics_record_outcomes(self, activity, metrics, make_sink):
        processor = FailedPaymentProcessor(
            [make_sink("email"), make_sink("store", fail_with="down")], activity, metrics=metrics,
        )
        processor.process_payment({"id": "ch_1"})
        assert metrics.snapshot() == {
            "email": {"succeeded": 1, "failed": 0, "failure_rate": 0.0},
            "store": {"succeeded": 0, "failed": 1, "failure_rate": 1.0},
        }


class TestHandleEvent:
    """Tests for FailedPaymentProcessor.handle_event()."""

    @pytest.mark.unit
    @pytest.mark.parametrize("event_type", [
        "payment_intent.payment_failed",
        "charge.failed",
        "invoice.payment_failed",
    ])
    def test_failure_events_processed(self, processor, alert_sink, record_sink, event_type):
        outcome = processor.handle_event(_event(event_type))
        assert outcome is not None
        assert alert_sink.call_count == 1
        assert record_sink.call_count == 1

    @pytest.mark.unit
    def test_other_events_ignored(self, processor, alert_sink, record_sink, activity):
        assert processor.handle_event(_event("payment_intent.succeeded")) is None
        assert alert_sink.call_count == 0
        assert record_sink.call_count == 0
        assert activity.entries() == []

    @pytest.mark.unit
    def test_duplicate_event_id_processed_once(self, processor, alert_sink, activity):
        processor.handle_event(_event(event_id="evt_dup"))
        assert processor.handle_event(_event(event_id="evt_dup")) is None

        assert alert_sink.call_count == 1
        assert activity.entries()[-1].message == "Duplicate webhook evt_dup ignored"

    @pytest.mark.unit
    def test_same_payment_different_events_both_processed(self, processor, alert_sink):
        processor.handle_event(_event(event_id="evt_a"))
        processor.handle_event(_event(event_id="evt_b"))
        assert alert_sink.call_count == 2

    @pytest.mark.unit
    def test_without_dedup_duplicates_processed(self, activity, alert_sink, record_sink):
        processor = FailedPaymentProcessor([alert_sink, record_sink], activity)
        processor.handle_event(_event(event_id="evt_dup"))
        processor.handle_event(_event(event_id="evt_dup"))
        assert alert_sink.call_count == 2
