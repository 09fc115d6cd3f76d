"""Relays failed Stripe payments to an alert e-mail and an Airtable table."""

__version__ = "1.0.0"
