"""Confirmation codes and request references.

Both are drawn from :mod:`secrets` so that several service instances can
generate them without sharing a counter. Uniqueness of references is enforced
by storage; codes are never stored in plaintext.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from agentcash.core.crypto import hash_secret, verify_secret

# No 0/O, 1/I/L: codes are read aloud and typed by hand.
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
REFERENCE_LENGTH = 8


@dataclass(slots=True, frozen=True)
class IssuedCode:
    plaintext: str
    code_hash: str


def normalize_code(code: str) -> str:
    return "".join(code.split()).upper()


class ConfirmationVerifier:
    """Issues one-time confirmation codes and checks supplied ones."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def issue(self) -> IssuedCode:
        plaintext = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
        return IssuedCode(plaintext=plaintext, code_hash=hash_secret(plaintext, self.rounds))

    def verify(self, code_hash: str | None, supplied: str | None) -> bool:
        if not code_hash or not supplied:
            return False
        candidate = normalize_code(supplied)
        if len(candidate) != CODE_LENGTH:
            return False
        return verify_secret(candidate, code_hash)


class ReferenceGenerator:
    """Builds human-shareable references such as ``WD-7KQ2M9XA``."""

    def __init__(self, length: int = REFERENCE_LENGTH, alphabet: str = CODE_ALPHABET) -> None:
        self.length = length
        self.alphabet = alphabet

    def generate(self, prefix: str) -> str:
        body = "".join(secrets.choice(self.alphabet) for _ in range(self.length))
        return f"{prefix}-{body}"


__all__ = [
    "CODE_ALPHABET",
    "CODE_LENGTH",
    "ConfirmationVerifier",
    "IssuedCode",
    "ReferenceGenerator",
    "normalize_code",
]
