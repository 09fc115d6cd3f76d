from .crypto import compute_signature, encode_payload, generate_signature_header
from .time import isoformat, utc_now, utc_now_iso

__all__ = [
    "compute_signature", "encode_payload", "generate_signature_header",
    "isoformat", "utc_now", "utc_now_iso",
]
