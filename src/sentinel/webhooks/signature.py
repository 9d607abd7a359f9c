"""
Webhook signature verification (``X-Hub-Signature-256``).
"""

import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Check a webhook body against its HMAC-SHA256 signature header.

    Args:
        raw_body: Exact request bytes
        signature: Header value, ``sha256=<hex>``
        secret: Shared webhook secret

    Returns:
        True only for a well-formed header matching the body. An unset
        secret rejects everything.
    """
    if not secret:
        logger.error("Webhook secret not configured, rejecting delivery")
        return False

    if not signature or not signature.startswith(SIGNATURE_PREFIX):
        return False

    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8"))
