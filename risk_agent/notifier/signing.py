"""
HMAC-SHA256 signing of risk hook payloads.

The signature is the hex digest over the exact body bytes sent, so a
RiskScore is signed in its canonical JSON form.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "x-internal-signature"


def sign_payload(secret: str, body: str | bytes) -> str:
    """Hex HMAC-SHA256 of body keyed with secret."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: str | bytes, signature: str) -> bool:
    """Constant-time comparison against the expected signature."""
    expected = sign_payload(secret, body)
    return hmac.compare_digest(expected, signature or "")
