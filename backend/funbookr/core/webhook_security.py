"""
Signature verification for payment gateway webhooks.

The gateway signs the raw request body with HMAC-SHA256 using the shared
webhook secret and sends the lowercase hex digest in X-Razorpay-Signature.
"""

import hashlib
import hmac
from typing import Optional

from funbookr.core.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload as lowercase hex."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature_header: Optional[str], secret: Optional[str]) -> bool:
    """
    Verify a webhook body against its signature header.

    Returns False when the secret is not configured, the header is
    missing, or the digests differ. Comparison is constant-time.
    """
    if not secret:
        logger.warning("webhook_secret_not_configured")
        return False
    if not signature_header:
        logger.warning("webhook_signature_missing")
        return False

    expected = compute_hmac_sha256(secret, raw_body)
    return hmac.compare_digest(expected, signature_header.strip().lower())
