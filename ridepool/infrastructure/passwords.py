"""
Password hashing for account login.

PBKDF2-HMAC-SHA256 with a random per-password salt.  Stored as
``pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>`` so the iteration
count can be raised later without invalidating existing hashes.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from ridepool.config import settings

_ALGORITHM = "pbkdf2_sha256"


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode(), salt, iterations)


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iterations = settings.password_hash_iterations
    digest = _derive(password, salt, iterations)
    return f"{_ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str | None) -> bool:
    """Constant-time check of *password* against a stored hash."""
    if not stored:
        return False
    try:
        algorithm, iterations, salt, digest = stored.split("$")
        if algorithm != _ALGORITHM:
            return False
        candidate = _derive(password, bytes.fromhex(salt), int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(candidate.hex(), digest)
