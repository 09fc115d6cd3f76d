"""Alert e-mails through the Gmail REST API.

The OAuth client is built once from a credentials bundle (client id,
client secret, refresh token). Access tokens are exchanged lazily at the
token endpoint and reused until they expire.
"""

import base64
import json
import threading
import time
from dataclasses import dataclass
from email.message import EmailMessage

import requests

from payment_monitor.models.payment import (
    EMAIL_NOT_AVAILABLE,
    UNKNOWN_CUSTOMER,
    FailedPaymentRecord,
)
from payment_monitor.sinks.base import SinkError, SinkResult, describe_http_error

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GMAIL_API_URL = "https://gmail.googleapis.com"

# Refresh this many seconds before Google says the token expires.
TOKEN_EXPIRY_MARGIN = 60

ALERT_BODY_TEMPLATE = """Payment Failure Alert

Payment Details:
- Payment ID: {payment_id}
- Customer Email: {customer_email}
- Amount: {amount} {currency}
- Failure Reason: {failure_reason}
- Timestamp: {timestamp}

Please review this failed payment and take appropriate action."""


def format_alert_subject(record: FailedPaymentRecord) -> str:
    return f"Payment Failed Alert - {record.customer_email or UNKNOWN_CUSTOMER}"


def format_alert_body(record: FailedPaymentRecord) -> str:
    return ALERT_BODY_TEMPLATE.format(
        payment_id=record.payment_id,
        customer_email=record.customer_email or EMAIL_NOT_AVAILABLE,
        amount=record.amount,
        currency=record.display_currency,
        failure_reason=record.failure_reason,
        timestamp=record.timestamp,
    )


def build_raw_message(record: FailedPaymentRecord, recipient: str | None = None) -> str:
    """RFC 2822 alert message, base64url encoded without padding as Gmail expects."""
    message = EmailMessage()
    message["Subject"] = format_alert_subject(record)
    if recipient:
        message["To"] = recipient
    message.set_content(format_alert_body(record), charset="utf-8")
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class GmailCredentials:
    client_id: str
    client_secret: str
    refresh_token: str
    token_uri: str = GOOGLE_TOKEN_URI

    REQUIRED_KEYS = ("client_id", "client_secret", "refresh_token")

    @classmethod
    def from_json(cls, raw: str) -> "GmailCredentials":
        """Parse the ``GMAIL_CREDENTIALS`` bundle. Raises ValueError if unusable."""
        if not raw:
            raise ValueError("GMAIL_CREDENTIALS is not set")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"GMAIL_CREDENTIALS is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("GMAIL_CREDENTIALS must be a JSON object")
        # Google console downloads nest the client under "installed" or "web".
        for wrapper in ("installed", "web"):
            if isinstance(data.get(wrapper), dict):
                data = {**data[wrapper], **{k: v for k, v in data.items() if k != wrapper}}
        missing = [k for k in cls.REQUIRED_KEYS if not data.get(k)]
        if missing:
            raise ValueError(f"GMAIL_CREDENTIALS missing keys: {missing}")
        return cls(
            client_id=data["client_id"],
            client_secret=data["client_secret"],
            refresh_token=data["refresh_token"],
            token_uri=data.get("token_uri") or GOOGLE_TOKEN_URI,
        )


class GoogleOAuthSession:
    """Holds a refresh-token grant and hands out cached access tokens."""

    def __init__(
        self,
        credentials: GmailCredentials,
        session: requests.Session | None = None,
        timeout_seconds: float = 30,
    ):
        self.credentials = credentials
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds
        self._access_token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def access_token(self) -> str:
        with self._lock:
            if self._access_token and time.monotonic() < self._expires_at:
                return self._access_token
            self._refresh()
            return self._access_token

    def _refresh(self) -> None:
        try:
            resp = self.session.post(
                self.credentials.token_uri,
                data={
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                    "refresh_token": self.credentials.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.exceptions.RequestException as e:
            raise SinkError(f"token refresh failed: {describe_http_error(e)}") from e
        except ValueError as e:
            raise SinkError("token refresh returned invalid JSON") from e

        token = payload.get("access_token")
        if not token:
            raise SinkError("token refresh returned no access_token")
        expires_in = float(payload.get("expires_in", 3600))
        self._access_token = token
        self._expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)


class GmailAlertSender:
    """Sends failed-payment alert e-mails as the authorized Gmail user."""

    name = "email"

    def __init__(
        self,
        oauth: GoogleOAuthSession | None,
        recipient: str | None = None,
        api_url: str = GMAIL_API_URL,
        session: requests.Session | None = None,
        timeout_seconds: float = 30,
    ):
        self.oauth = oauth
        self.recipient = recipient
        self.api_url = api_url.rstrip("/")
        self.session = session or (oauth.session if oauth else requests.Session())
        self.timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return self.oauth is not None

    @property
    def send_url(self) -> str:
        return f"{self.api_url}/gmail/v1/users/me/messages/send"

    def deliver(self, record: FailedPaymentRecord) -> SinkResult:
        if self.oauth is None:
            return SinkResult.failed(self.name, "Gmail client is not initialized")

        try:
            token = self.oauth.access_token()
            resp = self.session.post(
                self.send_url,
                json={"raw": build_raw_message(record, self.recipient)},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
        except SinkError as e:
            return SinkResult.failed(self.name, str(e))
        except requests.exceptions.RequestException as e:
            return SinkResult.failed(self.name, describe_http_error(e))

        return SinkResult.succeeded(self.name)
