from urllib.parse import quote

import requests

from payment_monitor.models.payment import UNKNOWN_EMAIL, FailedPaymentRecord
from payment_monitor.sinks.base import SinkResult, describe_http_error

AIRTABLE_API_URL = "https://api.airtable.com"
DEFAULT_TABLE = "Failed Payments"
FAILED_STATUS = "Failed"


def build_record_fields(record: FailedPaymentRecord) -> dict:
    """Column values for one row of the failed-payments table."""
    return {
        "Payment ID": record.payment_id,
        "Customer Email": record.customer_email or UNKNOWN_EMAIL,
        "Amount": float(record.amount),
        "Currency": record.display_currency,
        "Failure Reason": record.failure_reason,
        "Timestamp": record.timestamp,
        "Status": FAILED_STATUS,
    }


class AirtableRecordWriter:
    """Appends failed payments as rows of an Airtable table."""

    name = "store"

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table: str = DEFAULT_TABLE,
        api_url: str = AIRTABLE_API_URL,
        session: requests.Session | None = None,
        timeout_seconds: float = 30,
    ):
        self.api_key = api_key
        self.base_id = base_id
        self.table = table
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.base_id)

    @property
    def table_url(self) -> str:
        return f"{self.api_url}/v0/{quote(self.base_id, safe='')}/{quote(self.table, safe='')}"

    def deliver(self, record: FailedPaymentRecord) -> SinkResult:
        if not self.is_configured:
            return SinkResult.failed(self.name, "Airtable API key or base id is not configured")

        try:
            resp = self.session.post(
                self.table_url,
                json={"records": [{"fields": build_record_fields(record)}]},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            return SinkResult.failed(self.name, describe_http_error(e))

        return SinkResult.succeeded(self.name)
