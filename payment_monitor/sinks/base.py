from dataclasses import dataclass
from typing import Protocol

import requests

from payment_monitor.models.payment import FailedPaymentRecord


class SinkError(Exception):
    """A sink could not deliver a record."""


@dataclass(frozen=True)
class SinkResult:
    sink: str
    ok: bool
    error: str | None = None

    @classmethod
    def succeeded(cls, sink: str) -> "SinkResult":
        return cls(sink=sink, ok=True)

    @classmethod
    def failed(cls, sink: str, error: str) -> "SinkResult":
        return cls(sink=sink, ok=False, error=error)

    def to_dict(self) -> dict:
        return {"sink": self.sink, "ok": self.ok, "error": self.error}


class Sink(Protocol):
    name: str

    def deliver(self, record: FailedPaymentRecord) -> SinkResult: ...

    @property
    def is_configured(self) -> bool: ...


def describe_http_error(exc: requests.exceptions.RequestException) -> str:
    """Short, log-friendly description of a failed API call."""
    if isinstance(exc, requests.exceptions.Timeout):
        return "timeout"
    if isinstance(exc, requests.exceptions.ConnectionError):
        return "connection_error"
    response = getattr(exc, "response", None)
    if response is not None:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    return str(exc)
