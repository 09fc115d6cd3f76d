"""Process configuration, read from the environment.

``Settings.from_env()`` loads a ``.env`` file first (python-dotenv) and
then reads ``os.environ``; real environment variables take precedence.

Recognized variables::

    STRIPE_API_KEY            Stripe secret key (sk_...)
    STRIPE_WEBHOOK_SECRET     endpoint signing secret (whsec_...); webhooks
                              are rejected while it is unset
    STRIPE_WEBHOOK_TOLERANCE  max signature age in seconds (300)
    GMAIL_CREDENTIALS         JSON: client_id, client_secret, refresh_token
    ALERT_RECIPIENT           To: address of alert e-mails
    AIRTABLE_API_KEY          Airtable personal access token
    AIRTABLE_BASE_ID          Airtable base (app...)
    AIRTABLE_TABLE            table name ("Failed Payments")
    HOST, PORT                listen address (0.0.0.0:3000)
    LOG_LEVEL                 root log level (INFO)
    LOG_CAPACITY              entries kept for GET /logs (100)
    DEDUPLICATE_EVENTS        skip redelivered event ids (true)
    HTTP_TIMEOUT_SECONDS      timeout of outbound API calls (30)
    GMAIL_API_URL, AIRTABLE_API_URL
                              API roots, for sandboxes and tests
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from payment_monitor.sinks.airtable import AIRTABLE_API_URL, DEFAULT_TABLE
from payment_monitor.sinks.gmail import GMAIL_API_URL

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """An environment variable holds a value of the wrong type."""


@dataclass
class Settings:
    stripe_api_key: str = ""
    webhook_secret: str = ""
    webhook_tolerance: int = 300
    gmail_credentials: str = ""
    alert_recipient: str | None = None
    gmail_api_url: str = GMAIL_API_URL
    airtable_api_key: str = ""
    airtable_base_id: str = ""
    airtable_table: str = DEFAULT_TABLE
    airtable_api_url: str = AIRTABLE_API_URL
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_capacity: int = 100
    deduplicate_events: bool = True
    http_timeout: float = 30

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, dotenv: bool = True) -> "Settings":
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        def get(name: str, default: str = "") -> str:
            return environ.get(name, default).strip()

        return cls(
            stripe_api_key=get("STRIPE_API_KEY"),
            webhook_secret=get("STRIPE_WEBHOOK_SECRET"),
            webhook_tolerance=_int(environ, "STRIPE_WEBHOOK_TOLERANCE", 300),
            gmail_credentials=get("GMAIL_CREDENTIALS"),
            alert_recipient=get("ALERT_RECIPIENT") or None,
            gmail_api_url=get("GMAIL_API_URL", GMAIL_API_URL),
            airtable_api_key=get("AIRTABLE_API_KEY"),
            airtable_base_id=get("AIRTABLE_BASE_ID"),
            airtable_table=get("AIRTABLE_TABLE", DEFAULT_TABLE) or DEFAULT_TABLE,
            airtable_api_url=get("AIRTABLE_API_URL", AIRTABLE_API_URL),
            host=get("HOST", "0.0.0.0"),
            port=_int(environ, "PORT", 3000),
            log_level=get("LOG_LEVEL", "INFO").upper() or "INFO",
            log_capacity=_int(environ, "LOG_CAPACITY", 100),
            deduplicate_events=_bool(environ, "DEDUPLICATE_EVENTS", True),
            http_timeout=_float(environ, "HTTP_TIMEOUT_SECONDS", 30),
        )


def _int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name, "")
    value = raw.strip().lower()
    if not value:
        return default
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")
