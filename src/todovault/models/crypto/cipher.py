"""AES-256-GCM encryption and decryption utilities.

This module provides authenticated encryption using AES-256-GCM.
All operations use cryptographically secure random number generation.
"""

from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import DecryptionError

if TYPE_CHECKING:
    from .keys import SymmetricKey

# Constants
IV_SIZE = 12  # 96 bits (recommended for GCM)
TAG_SIZE = 16  # 128 bits (authentication tag)


@dataclass
class EncryptedData:
    """Represents encrypted data with all necessary components."""

    ciphertext: str
    iv: str
    auth_tag: str
    version: str = "1"

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ciphertext": self.ciphertext,
            "iv": self.iv,
            "authTag": self.auth_tag,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> EncryptedData:
        """Create from dictionary (from JSON)."""
        return cls(
            ciphertext=data["ciphertext"],
            iv=data["iv"],
            auth_tag=data.get("authTag", data.get("auth_tag", "")),
            version=data.get("version", "1"),
        )

    def to_json(self) -> str:
        """Serialize for storage in a text column."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> EncryptedData:
        """Parse a value produced by ``to_json``."""
        try:
            return cls.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            raise DecryptionError(f"Malformed encrypted payload: {e}") from e


def encrypt(
    plaintext: str, key: SymmetricKey, associated_data: bytes | None = None
) -> EncryptedData:
    """Encrypt plaintext using AES-256-GCM."""

    # Generate random IV
    iv = os.urandom(IV_SIZE)

    aesgcm = AESGCM(key.key_bytes)
    ciphertext_with_tag = aesgcm.encrypt(
        iv, plaintext.encode("utf-8"), associated_data
    )

    # Split ciphertext and auth tag
    ciphertext = ciphertext_with_tag[:-TAG_SIZE]
    auth_tag = ciphertext_with_tag[-TAG_SIZE:]

    return EncryptedData(
        ciphertext=base64.b64encode(ciphertext).decode("ascii"),
        iv=base64.b64encode(iv).decode("ascii"),
        auth_tag=base64.b64encode(auth_tag).decode("ascii"),
        version="1",
    )


def decrypt(
    encrypted: EncryptedData, key: SymmetricKey, associated_data: bytes | None = None
) -> str:
    """Decrypt data using AES-256-GCM."""

    try:
        ciphertext = base64.b64decode(encrypted.ciphertext, validate=True)
        iv = base64.b64decode(encrypted.iv, validate=True)
        auth_tag = base64.b64decode(encrypted.auth_tag, validate=True)
    except ValueError as e:
        raise DecryptionError(f"Decryption failed: invalid encoding ({e})") from e

    if len(iv) != IV_SIZE:
        raise DecryptionError(f"Invalid IV size: expected {IV_SIZE}, got {len(iv)}")
    if len(auth_tag) != TAG_SIZE:
        raise DecryptionError(
            f"Invalid auth tag size: expected {TAG_SIZE}, got {len(auth_tag)}"
        )

    aesgcm = AESGCM(key.key_bytes)
    try:
        plaintext_bytes = aesgcm.decrypt(iv, ciphertext + auth_tag, associated_data)
    except InvalidTag as e:
        raise DecryptionError("Decryption failed: authentication tag mismatch") from e

    return plaintext_bytes.decode("utf-8")
