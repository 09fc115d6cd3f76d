import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs

import pytest
import requests

from payment_monitor.app import build_server
from payment_monitor.config import Settings
from payment_monitor.models.payment import FailedPaymentRecord
from payment_monitor.observability.activity import ActivityLog
from payment_monitor.observability.metrics import SinkMetrics
from payment_monitor.pipeline.dedup import ProcessedEvents
from payment_monitor.pipeline.processor import FailedPaymentProcessor
from payment_monitor.sinks.base import SinkResult
from payment_monitor.utils.crypto import encode_payload, generate_signature_header
from payment_monitor.utils.factories import PaymentObjectFactory, StripeEventFactory


WEBHOOK_SECRET = "whsec_test_secret_for_hmac"


class RecordingSink:
    """In-memory sink that records every record handed to it."""

    def __init__(self, name: str, fail_with: str | None = None, raise_with: Exception | None = None):
        self.name = name
        self.fail_with = fail_with
        self.raise_with = raise_with
        self.records: list[FailedPaymentRecord] = []

    @property
    def is_configured(self) -> bool:
        return True

    @property
    def call_count(self) -> int:
        return len(self.records)

    def deliver(self, record: FailedPaymentRecord) -> SinkResult:
        self.records.append(record)
        if self.raise_with is not None:
            raise self.raise_with
        if self.fail_with is not None:
            return SinkResult.failed(self.name, self.fail_with)
        return SinkResult.succeeded(self.name)


class _FakeApiHandler(BaseHTTPRequestHandler):
    """Answers like the Google token endpoint, the Gmail API and the Airtable API."""

    def do_POST(self):
        content_length = int(self.headers.get("Content-Length", 0))
        raw = self.rfile.read(content_length).decode("utf-8")
        if self.headers.get("Content-Type", "").startswith("application/json"):
            body = json.loads(raw) if raw else None
        else:
            body = {k: v[0] for k, v in parse_qs(raw).items()}

        config = self.server.config  # type: ignore[attr-defined]
        with config["lock"]:
            config["requests"].append({
                "path": self.path,
                "headers": dict(self.headers),
                "body": body,
            })
            code, payload = config["responses"].get(self.path, (200, {"id": "ok"}))

        data = json.dumps(payload).encode()
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        """Suppress default request logging."""
        pass


class FakeApiServer:
    """Loopback stand-in for the Google OAuth, Gmail and Airtable endpoints."""

    TOKEN_PATH = "/token"

    def __init__(self):
        self._config = {
            "requests": [],
            "responses": {
                self.TOKEN_PATH: (200, {"access_token": "ya29.test-token", "expires_in": 3600}),
            },
            "lock": threading.Lock(),
        }
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def respond(self, path: str, code: int, payload: dict | None = None) -> "FakeApiServer":
        with self._config["lock"]:
            self._config["responses"][path] = (code, payload or {})
        return self

    def start(self) -> None:
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), _FakeApiHandler)
        self._server.config = self._config  # type: ignore[attr-defined]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self._server.server_address[1]}"

    @property
    def token_uri(self) -> str:
        return f"{self.url}{self.TOKEN_PATH}"

    def get_requests(self, path: str | None = None) -> list[dict]:
        with self._config["lock"]:
            return [r for r in self._config["requests"] if path is None or r["path"] == path]


def post_signed(url: str, event: dict, secret: str = WEBHOOK_SECRET, signature: str | None = None):
    """POST a webhook event the way Stripe does, signed unless ``signature`` is given."""
    body = encode_payload(event)
    if signature is None:
        signature = generate_signature_header(body, secret)
    return requests.post(
        url,
        data=body,
        headers={"Content-Type": "application/json", "Stripe-Signature": signature},
        timeout=5,
    )


@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


@pytest.fixture
def activity():
    return ActivityLog()


@pytest.fixture
def metrics():
    return SinkMetrics(window_seconds=300)


@pytest.fixture
def alert_sink():
    return RecordingSink("email")


@pytest.fixture
def record_sink():
    return RecordingSink("store")


@pytest.fixture
def processor(alert_sink, record_sink, activity, metrics):
    return FailedPaymentProcessor(
        sinks=[alert_sink, record_sink],
        activity=activity,
        metrics=metrics,
        processed_events=ProcessedEvents(),
    )


@pytest.fixture
def settings(webhook_secret):
    return Settings(
        stripe_api_key="sk_test_123",
        webhook_secret=webhook_secret,
        host="127.0.0.1",
        port=0,
    )


@pytest.fixture
def monitor_server(settings, alert_sink, record_sink):
    server = build_server(settings, sinks=[alert_sink, record_sink])
    server.start()
    yield server
    server.stop()


@pytest.fixture
def fake_api():
    server = FakeApiServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def event_factory():
    return StripeEventFactory


@pytest.fixture
def payment_factory():
    return PaymentObjectFactory


@pytest.fixture
def signed_post():
    return post_signed


@pytest.fixture
def make_sink():
    return RecordingSink
