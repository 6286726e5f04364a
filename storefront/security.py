"""Security helpers (password hashing and token signing)."""

from __future__ import annotations

import hashlib
import hmac

from argon2 import PasswordHasher, exceptions as argon_exc

_ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Salted Argon2 hash; the salt and parameters travel inside the encoded string."""
    return _ph.hash(password)


def verify_password(password: str, stored_hash: str | None) -> bool:
    stored = stored_hash or ""
    try:
        return _ph.verify(stored, password)
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def needs_rehash(stored_hash: str) -> bool:
    try:
        return _ph.check_needs_rehash(stored_hash)
    except argon_exc.InvalidHashError:
        return True


def _mac(value: str, secret: str) -> str:
    return hmac.new(secret.encode(), value.encode(), hashlib.sha256).hexdigest()


def sign(value: str, secret: str) -> str:
    return f"{value}.{_mac(value, secret)}"


def unsign(token: str | None, secret: str) -> str | None:
    """Return the signed value, or None when the token is malformed or tampered with."""
    if not token or "." not in token:
        return None
    value, _, mac = token.rpartition(".")
    if not value or not hmac.compare_digest(mac, _mac(value, secret)):
        return None
    return value
