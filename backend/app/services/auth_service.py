import hashlib
from datetime import datetime, timezone

import jwt


def token_key(token: str) -> str:
    """Stable, non-reversible key for a bearer token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def peek_claims(token: str) -> dict:
    """Read a JWT's claims without verifying its signature.

    The upstream API holds the signing key, so claims read here are only
    trusted for housekeeping (expiry, log context), never for authorization.
    Returns an empty dict for tokens that are not JWTs.
    """
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError:
        return {}


def token_expires_at(token: str) -> datetime | None:
    exp = peek_claims(token).get("exp")
    if isinstance(exp, (int, float)):
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    return None


def is_token_expired(token: str, now: datetime | None = None) -> bool:
    expires_at = token_expires_at(token)
    if expires_at is None:
        return False
    return expires_at <= (now or datetime.now(timezone.utc))


def token_subject(token: str) -> str | None:
    """User id the token claims to belong to (``sub`` or ``id``)."""
    claims = peek_claims(token)
    for key in ("sub", "id", "userId"):
        value = claims.get(key)
        if value:
            return str(value)
    return None
