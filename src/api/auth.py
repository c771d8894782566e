"""HMAC-signed bearer tokens for the interactive ingestion endpoint.

Ingestion costs embedding calls, so only known operators may trigger it.
Tokens are stateless: no token table, just a shared secret.

Token format:  ``{subject}:{unix_timestamp}:{hmac_hex_digest}``

  - subject:   who the token was minted for (no colons)
  - timestamp: issue time, UTC epoch seconds
  - hmac:      HMAC-SHA256(secret, "{subject}:{timestamp}")

Validation checks the format, the signature (constant-time comparison)
and that the token is younger than the TTL.  With no secret configured
every token is rejected.
"""

from __future__ import annotations

import hashlib
import hmac
import time

from src.utils.errors import ConfigurationError


def _sign(secret: str, payload: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def create_access_token(secret: str, subject: str, issued_at: int | None = None) -> str:
    """Mint a bearer token for *subject*.

    Raises
    ------
    ConfigurationError
        If *secret* is empty or *subject* is empty or contains ``:``.
    """
    if not secret:
        raise ConfigurationError(message="INGEST_API_SECRET is not configured")
    if not subject or ":" in subject:
        raise ConfigurationError(message=f"Invalid token subject: {subject!r}")

    timestamp = str(int(time.time()) if issued_at is None else issued_at)
    payload = f"{subject}:{timestamp}"
    return f"{payload}:{_sign(secret, payload)}"


def validate_access_token(token: str, secret: str, ttl_hours: int = 24) -> str | None:
    """Return the token's subject if it is valid and unexpired, else ``None``."""
    if not secret or not token:
        return None

    parts = token.split(":")
    if len(parts) != 3:
        return None
    subject, timestamp_str, provided = parts
    if not subject:
        return None

    try:
        timestamp = int(timestamp_str)
    except ValueError:
        return None

    age = time.time() - timestamp
    if age < 0 or age > ttl_hours * 3600:
        return None

    expected = _sign(secret, f"{subject}:{timestamp_str}")
    if not hmac.compare_digest(provided, expected):
        return None
    return subject


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header, or ``""``."""
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def verify_shared_secret(provided: str | None, expected: str) -> bool:
    """Constant-time comparison for webhook shared secrets.  Empty *expected* never matches."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
