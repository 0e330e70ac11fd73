"""bcrypt helpers for account passwords and confirmation codes."""

from __future__ import annotations

import bcrypt

PASSWORD_ROUNDS = 12


def hash_secret(secret: str, rounds: int = PASSWORD_ROUNDS) -> str:
    """Hash a secret with a fresh per-call salt."""
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_secret(secret: str, hashed: str) -> bool:
    """Constant-time check of ``secret`` against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def hash_password(password: str) -> str:
    return hash_secret(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return verify_secret(plain_password, hashed_password)


__all__ = ["hash_secret", "verify_secret", "hash_password", "verify_password"]
