"""
Crypto utilities — bcrypt password hashing and reset-token digests.

Reset tokens are random URL-safe strings; only their SHA-256 digest is
stored, so a leaked users table does not leak usable reset links.
"""

import hashlib
import secrets

import bcrypt

MIN_PASSWORD_LENGTH = 8


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt (12 rounds)."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash or not plain_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Malformed stored hash
        return False


def generate_reset_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token (for DB storage)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
