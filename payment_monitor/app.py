import logging

import stripe

from payment_monitor.config import Settings
from payment_monitor.observability.activity import ActivityLog, setup_logging
from payment_monitor.observability.metrics import SinkMetrics
from payment_monitor.pipeline.dedup import ProcessedEvents
from payment_monitor.pipeline.processor import FailedPaymentProcessor
from payment_monitor.receiver.server import SERVICE_NAME, PaymentMonitorServer
from payment_monitor.receiver.verifier import WebhookVerifier
from payment_monitor.sinks.airtable import AirtableRecordWriter
from payment_monitor.sinks.gmail import GmailAlertSender, GmailCredentials, GoogleOAuthSession

log = logging.getLogger("payment_monitor")


def build_alert_sender(settings: Settings, activity: ActivityLog) -> GmailAlertSender:
    """Initialize the Gmail OAuth client once; a bad bundle leaves the sender unconfigured."""
    try:
        credentials = GmailCredentials.from_json(settings.gmail_credentials)
    except ValueError as e:
        activity.error("Failed to initialize Gmail: %s", e)
        oauth = None
    else:
        oauth = GoogleOAuthSession(credentials, timeout_seconds=settings.http_timeout)
        activity.info("Gmail OAuth initialized successfully")

    return GmailAlertSender(
        oauth,
        recipient=settings.alert_recipient,
        api_url=settings.gmail_api_url,
        timeout_seconds=settings.http_timeout,
    )


def build_record_writer(settings: Settings) -> AirtableRecordWriter:
    return AirtableRecordWriter(
        api_key=settings.airtable_api_key,
        base_id=settings.airtable_base_id,
        table=settings.airtable_table,
        api_url=settings.airtable_api_url,
        timeout_seconds=settings.http_timeout,
    )


def build_server(
    settings: Settings,
    activity: ActivityLog | None = None,
    sinks: list | None = None,
) -> PaymentMonitorServer:
    """Wire receiver, pipeline and sinks according to ``settings``.

    ``sinks`` replaces the Gmail/Airtable pair, e.g. with fakes in tests.
    """
    if activity is None:
        activity = ActivityLog(capacity=settings.log_capacity)
    activity.info("Starting %s...", SERVICE_NAME)

    if settings.stripe_api_key:
        stripe.api_key = settings.stripe_api_key

    verifier = WebhookVerifier(settings.webhook_secret, tolerance=settings.webhook_tolerance)
    if not verifier.is_configured:
        activity.error("STRIPE_WEBHOOK_SECRET is not set; all webhooks will be rejected")

    if sinks is None:
        sinks = [build_alert_sender(settings, activity), build_record_writer(settings)]

    metrics = SinkMetrics()
    processor = FailedPaymentProcessor(
        sinks=sinks,
        activity=activity,
        metrics=metrics,
        processed_events=ProcessedEvents() if settings.deduplicate_events else None,
    )

    services = {"payment": bool(settings.stripe_api_key)}
    for sink in sinks:
        services[sink.name] = sink.is_configured

    activity.info("Agent initialization complete")
    return PaymentMonitorServer(
        verifier=verifier,
        processor=processor,
        activity=activity,
        metrics=metrics,
        services=services,
        host=settings.host,
        port=settings.port,
    )


def run(settings: Settings | None = None) -> None:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    server = build_server(settings)
    server.activity.info("%s running on port %s", SERVICE_NAME, settings.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        log.info("Shutting down")
