import json
import logging
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from payment_monitor.observability.activity import ActivityLog
from payment_monitor.observability.metrics import SinkMetrics
from payment_monitor.pipeline.processor import FailedPaymentProcessor
from payment_monitor.receiver.verifier import SIGNATURE_HEADER, WebhookVerificationError, WebhookVerifier
from payment_monitor.utils.time import utc_now_iso

log = logging.getLogger("payment_monitor.http")

SERVICE_NAME = "Stripe Payment Monitor Agent"
LOG_PAGE_SIZE = 50

ENDPOINTS = {
    "GET /": "This status page",
    "GET /health": "Health check",
    "GET /logs": "View recent logs",
    "POST /webhook": "Stripe webhook endpoint",
    "POST /test": "Manual test run",
}


def build_test_payment() -> dict:
    """Fixed sample of a failed payment used by ``POST /test``."""
    return {
        "id": f"test_payment_{int(time.time() * 1000)}",
        "customer_email": "test@example.com",
        "amount": 2500,
        "currency": "usd",
        "failure_message": "Test failed payment for monitoring system",
    }


class _MonitorHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the payment monitor."""

    def do_GET(self):
        path = urlsplit(self.path).path
        if path == "/":
            self._send_json(200, {
                "message": SERVICE_NAME,
                "status": "running",
                "endpoints": ENDPOINTS,
            })
        elif path == "/health":
            self._send_json(200, self.server.monitor.health())  # type: ignore[attr-defined]
        elif path == "/logs":
            activity = self.server.monitor.activity  # type: ignore[attr-defined]
            self._send_json(200, {"logs": [e.to_dict() for e in activity.entries(LOG_PAGE_SIZE)]})
        else:
            self._send_json(404, {"error": "not found"})

    def do_POST(self):
        try:
            content_length = int(self.headers.get("Content-Length", 0) or 0)
        except ValueError:
            content_length = -1
        if content_length < 0:
            self._send_text(400, "Webhook Error: invalid Content-Length")
            return
        body = self.rfile.read(content_length)

        path = urlsplit(self.path).path
        if path == "/webhook":
            self._handle_webhook(body)
        elif path == "/test":
            self._handle_test()
        else:
            self._send_json(404, {"error": "not found"})

    def _handle_webhook(self, body: bytes) -> None:
        monitor = self.server.monitor  # type: ignore[attr-defined]
        try:
            event = monitor.verifier.verify(body, self.headers.get(SIGNATURE_HEADER))
        except WebhookVerificationError as e:
            monitor.activity.error("Webhook error: %s", e)
            self._send_text(400, f"Webhook Error: {e}")
            return

        monitor.activity.info("Received Stripe webhook: %s", event.event_type)
        try:
            monitor.processor.handle_event(event)
        except Exception as e:
            # Verified events are always acknowledged.
            monitor.activity.error("Failed to process webhook %s: %s", event.event_id, e)
        self._send_json(200, {"received": True})

    def _handle_test(self) -> None:
        monitor = self.server.monitor  # type: ignore[attr-defined]
        try:
            monitor.activity.info("Running manual test...")
            test_payment = build_test_payment()
            outcome = monitor.processor.process_payment(test_payment)
            monitor.activity.info("Manual test completed successfully")
        except Exception as e:
            monitor.activity.error("Manual test failed: %s", e)
            self._send_json(500, {"success": False, "error": str(e)})
            return

        self._send_json(200, {
            "success": True,
            "message": "Test alert sent and Airtable updated",
            "testPayment": test_payment,
            "record": outcome.record.to_dict(),
            "deliveries": [r.to_dict() for r in outcome.results],
        })

    def _send_json(self, code: int, body: dict) -> None:
        data = json.dumps(body).encode()
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_text(self, code: int, text: str) -> None:
        data = text.encode()
        self.send_response(code)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


class PaymentMonitorServer:
    """HTTP front of the failed-payment pipeline."""

    def __init__(
        self,
        verifier: WebhookVerifier,
        processor: FailedPaymentProcessor,
        activity: ActivityLog,
        metrics: SinkMetrics | None = None,
        services: dict[str, bool] | None = None,
        host: str = "127.0.0.1",
        port: int = 0,
    ):
        self.verifier = verifier
        self.processor = processor
        self.activity = activity
        self.metrics = metrics
        self.services = dict(services or {})
        self._host = host
        self._port = port
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def health(self) -> dict:
        body = {
            "status": "healthy",
            "timestamp": utc_now_iso(),
            "services": dict(self.services),
        }
        if self.metrics is not None:
            body["deliveries"] = self.metrics.snapshot()
        return body

    def _bind(self) -> ThreadingHTTPServer:
        server = ThreadingHTTPServer((self._host, self._port), _MonitorHandler)
        server.monitor = self  # type: ignore[attr-defined]
        # Get the actual port (useful when port=0)
        self._port = server.server_address[1]
        return server

    def start(self) -> None:
        """Serve from a background thread."""
        self._server = self._bind()
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def serve_forever(self) -> None:
        """Serve from the calling thread until ``stop()`` or KeyboardInterrupt."""
        self._server = self._bind()
        try:
            self._server.serve_forever()
        finally:
            self._server.server_close()
            self._server = None

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            if self._thread:
                self._server.server_close()
                self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def url(self) -> str:
        return f"http://{self._host}:{self._port}"

    @property
    def webhook_url(self) -> str:
        return f"{self.url}/webhook"

    @property
    def port(self) -> int:
        return self._port
