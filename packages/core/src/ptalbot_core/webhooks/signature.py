"""HMAC-SHA-256 verification of GitHub webhook deliveries.

The digest is computed over the raw request bytes. Never pass re-serialized
JSON here: a different byte layout produces a different digest.
"""

from __future__ import annotations

import hashlib
import hmac

from ptalbot_core.errors import AuthenticationError

_PREFIX = "sha256="


def sign_body(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value GitHub would send for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return _PREFIX + digest


def verify_signature(body: bytes, signature: str | None, secret: str | None) -> None:
    """Raise AuthenticationError unless ``signature`` matches ``body`` under ``secret``."""
    if not secret:
        raise AuthenticationError("No webhook secret configured")
    if not signature:
        raise AuthenticationError("No signature provided")
    if not signature.startswith(_PREFIX):
        raise AuthenticationError("Unsupported signature format")
    expected = sign_body(body, secret).encode("ascii")
    if not hmac.compare_digest(expected, signature.strip().encode("utf-8")):
        raise AuthenticationError("Invalid signature")
