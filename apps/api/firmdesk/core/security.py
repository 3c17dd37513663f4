"""Opaque token helpers for invitations and identity flows."""

import hashlib
import hmac
import secrets

# 32 bytes = 256 bits of entropy before base64url encoding.
TOKEN_BYTES = 32


def generate_token() -> str:
    """Return a URL-safe random token usable as a path segment."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token; only digests are persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str, digest: str) -> bool:
    """Constant-time comparison of a presented token against a stored digest."""
    return hmac.compare_digest(hash_token(token), digest)
