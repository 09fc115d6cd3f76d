"""E2E tests for redelivered webhook handling."""

import pytest

from payment_monitor.app import build_server
from payment_monitor.config import Settings


pytestmark = pytest.mark.e2e


class TestIdempotency:
    """Stripe may deliver the same event more than once."""

    def test_duplicate_webhook_processed_once(self, monitor_server, event_factory, signed_post, alert_sink):
        event = event_factory.create_event("charge.failed")

        first = signed_post(monitor_server.webhook_url, event)
        second = signed_post(monitor_server.webhook_url, event)

        assert first.json() == {"received": True}
        assert second.json() == {"received": True}
        assert alert_sink.call_count == 1

    def test_triple_delivery_single_processing(self, monitor_server, event_factory, signed_post, record_sink):
        event = event_factory.create_event("invoice.payment_failed")

        for _ in range(3):
            assert signed_post(monitor_server.webhook_url, event).status_code == 200

        assert record_sink.call_count == 1
        assert monitor_server.activity.entries()[-1].message == f"Duplicate webhook {event['id']} ignored"

    def test_different_events_same_payment_both_processed(
        self, monitor_server, event_factory, payment_factory, signed_post, alert_sink,
    ):
        charge = payment_factory.charge(id="ch_shared_payment_001")

        signed_post(monitor_server.webhook_url, event_factory.create_event("charge.failed", data_object=charge))
        signed_post(monitor_server.webhook_url, event_factory.create_event("charge.failed", data_object=charge))

        assert alert_sink.call_count == 2

    def test_dedup_can_be_disabled(self, webhook_secret, event_factory, signed_post, make_sink):
        sink = make_sink("email")
        settings = Settings(webhook_secret=webhook_secret, deduplicate_events=False, host="127.0.0.1", port=0)
        server = build_server(settings, sinks=[sink])
        server.start()
        try:
            event = event_factory.create_event("charge.failed")
            signed_post(server.webhook_url, event)
            signed_post(server.webhook_url, event)
        finally:
            server.stop()

        assert sink.call_count == 2
