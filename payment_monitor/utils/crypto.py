import hashlib
import hmac
import json
import time


def _as_text(payload: bytes | str | dict) -> str:
    if isinstance(payload, dict):
        return json.dumps(payload, separators=(",", ":"), default=str)
    if isinstance(payload, bytes):
        return payload.decode("utf-8")
    return payload


def compute_signature(payload: bytes | str | dict, secret: str, timestamp: int) -> str:
    """HMAC-SHA256 of ``"{timestamp}.{payload}"``, as Stripe computes ``v1`` signatures."""
    signed_payload = f"{timestamp}.{_as_text(payload)}"
    return hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def generate_signature_header(
    payload: bytes | str | dict,
    secret: str,
    timestamp: int | None = None,
) -> str:
    """Build a ``Stripe-Signature`` header value for a webhook body.

    The body must be sent byte-for-byte as signed; pass the exact bytes
    (or the dict, which is serialized compactly) that go on the wire.
    """
    if timestamp is None:
        timestamp = int(time.time())
    signature = compute_signature(payload, secret, timestamp)
    return f"t={timestamp},v1={signature}"


def encode_payload(payload: dict) -> bytes:
    """Serialize a webhook body the same way ``generate_signature_header`` signs dicts."""
    return _as_text(payload).encode("utf-8")
