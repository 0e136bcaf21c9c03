"""Database passphrase generation."""

from __future__ import annotations

import secrets
import string

from todovault.models.config_models import MIN_PASSPHRASE_LENGTH

# 94 printable ASCII characters: letters, digits and punctuation.
ALPHABET = string.ascii_letters + string.digits + string.punctuation

DEFAULT_PASSPHRASE_LENGTH = 4096

# Fixed character-to-byte mapping; ASCII-only input gives one byte per character.
PASSPHRASE_ENCODING = "utf-8"


def generate_passphrase(length: int = DEFAULT_PASSPHRASE_LENGTH) -> str:
    """Generate a uniformly random passphrase from ``ALPHABET``."""
    if length < MIN_PASSPHRASE_LENGTH:
        raise ValueError(
            f"Passphrase length must be at least {MIN_PASSPHRASE_LENGTH}, got {length}"
        )
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def passphrase_to_bytes(passphrase: str) -> bytes:
    """Convert a passphrase to the raw key material fed to the database."""
    return passphrase.encode(PASSPHRASE_ENCODING)
