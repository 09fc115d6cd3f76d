from .airtable import AirtableRecordWriter
from .base import Sink, SinkError, SinkResult
from .gmail import GmailAlertSender, GmailCredentials, GoogleOAuthSession

__all__ = [
    "AirtableRecordWriter",
    "GmailAlertSender",
    "GmailCredentials",
    "GoogleOAuthSession",
    "Sink",
    "SinkError",
    "SinkResult",
]
