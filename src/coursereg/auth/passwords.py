"""Salted PBKDF2-SHA256 password hashes via passlib."""

from __future__ import annotations

from passlib.context import CryptContext
from passlib.hash import pbkdf2_sha256

DEFAULT_ITERATIONS = 260_000

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Hash a password with a fresh random salt."""
    return pbkdf2_sha256.using(rounds=iterations).hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against an encoded hash. Malformed hashes never match."""
    if not encoded or not pwd_context.identify(encoded):
        return False
    try:
        return pwd_context.verify(password, encoded)
    except ValueError:
        return False
