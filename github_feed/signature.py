"""
Webhook Signature Module

Verifies that a webhook delivery was signed by GitHub with the shared secret.
GitHub sends the signature in the X-Hub-Signature-256 header as
``sha256=<hexdigest>`` computed over the raw request body.
"""
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def _hexdigest(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def compute_signature(payload: bytes, secret: str) -> str:
    """Return the ``sha256=`` signature GitHub would send for this payload."""
    return f"{SIGNATURE_PREFIX}{_hexdigest(payload, secret)}"


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """
    Verify a GitHub webhook signature.

    Args:
        payload: Raw request body, exactly as received
        signature: X-Hub-Signature-256 header value
        secret: Shared webhook secret

    Returns:
        True if the signature is valid
    """
    if not signature or not secret:
        return False

    if not signature.startswith(SIGNATURE_PREFIX):
        logger.warning("Webhook signature has an unsupported algorithm prefix")
        return False

    received = signature[len(SIGNATURE_PREFIX):]
    expected = _hexdigest(payload, secret)

    # compare_digest is constant time for equal lengths and rejects others
    return hmac.compare_digest(expected.encode("ascii"), received.encode("utf-8"))
