"""HMAC-SHA256 signature verification for gateway callbacks."""

import hashlib
import hmac


def compute_signature(payload: bytes, secret: str) -> str:
    """Compute the hex HMAC-SHA256 digest of a payload."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def client_callback_payload(order_id: str, payment_id: str) -> bytes:
    """Build the byte sequence the gateway signs for checkout callbacks."""
    return f"{order_id}|{payment_id}".encode("utf-8")


def verify_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """Check a signature against the payload using a constant-time compare.

    Args:
        payload: Exact bytes the gateway signed.
        signature: Hex digest supplied by the caller.
        secret: Shared secret for this channel.

    Returns:
        bool: True only if the signature matches.
    """
    if not signature or not secret:
        return False
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8"))
