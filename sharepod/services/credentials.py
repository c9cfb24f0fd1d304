"""Share tokens, access codes and password hashing."""

from __future__ import annotations

import hmac
import logging
import re
import secrets
from typing import cast

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

SHARE_ID_BYTES = 12  # 16 URL-safe characters
# Uppercase alphanumerics without 0/O and 1/I so codes survive being read aloud.
ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_RE = re.compile(r"^[A-Z0-9]{4,12}$")
DEFAULT_PASSWORD_ROUNDS = 600_000


def generate_share_id() -> str:
    return secrets.token_urlsafe(SHARE_ID_BYTES)


def generate_access_code(length: int = 6) -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


def normalize_access_code(value: str | None) -> str | None:
    """Uppercase and trim a caller-supplied code; blank means absent."""
    if value is None:
        return None
    cleaned = value.strip().upper()
    return cleaned or None


def is_valid_access_code(value: str) -> bool:
    return bool(ACCESS_CODE_RE.match(value))


def access_code_matches(expected: str, supplied: str) -> bool:
    normalized = normalize_access_code(supplied) or ""
    return hmac.compare_digest(expected.upper().encode("utf-8"), normalized.encode("utf-8"))


class CredentialVerifier:
    """Salted one-way password hashing for protected shares.

    Uses pbkdf2_sha256 with an explicit iteration count so the cost factor
    is a deployment setting rather than a library default.
    """

    def __init__(self, rounds: int = DEFAULT_PASSWORD_ROUNDS) -> None:
        self.rounds = rounds
        self.context = CryptContext(
            schemes=["pbkdf2_sha256"],
            default="pbkdf2_sha256",
            pbkdf2_sha256__rounds=rounds,
            deprecated="auto",
        )

    def hash_password(self, password: str) -> str:
        return cast(str, self.context.hash(password))

    def verify_password(self, password: str, password_hash: str | None) -> bool:
        if not password_hash:
            return False
        try:
            return cast(bool, self.context.verify(password, password_hash))
        except (ValueError, TypeError):
            logger.warning("share_password_hash_unreadable")
            return False
