"""Key generation and derivation."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import os
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .exceptions import KeyDerivationError

# AES-256 requires 256-bit (32-byte) keys
KEY_SIZE = 32  # 256 bits

# PBKDF2 parameters
PBKDF2_ITERATIONS = 100_000
SALT_SIZE = 16  # 128 bits


@dataclass(eq=False)
class SymmetricKey:
    """A 256-bit symmetric key."""

    key_bytes: bytes

    def __post_init__(self) -> None:
        """Validate key size."""
        if len(self.key_bytes) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(self.key_bytes)}")

    @classmethod
    def generate(cls):
        """Generate a new random key."""
        return cls(key_bytes=os.urandom(KEY_SIZE))

    @classmethod
    def from_base64(cls, key_b64: str):
        """Create key from base64-encoded string."""
        try:
            key_bytes = base64.b64decode(key_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Key is not valid base64: {e}") from e
        return cls(key_bytes=key_bytes)

    def to_base64(self) -> str:
        """Encode key as base64 string for storage."""
        return base64.b64encode(self.key_bytes).decode("ascii")

    def __repr__(self) -> str:
        """String representation (hides key material)."""
        digest = hashlib.sha256(self.key_bytes).hexdigest()[:16]
        return f"{type(self).__name__}(key_hash={digest}...)"

    def __eq__(self, other: object) -> bool:
        """Compare keys in constant time."""
        if not isinstance(other, SymmetricKey):
            return NotImplemented
        return hmac.compare_digest(self.key_bytes, other.key_bytes)

    def __hash__(self) -> int:
        return hash(hashlib.sha256(self.key_bytes).digest())


class WrappingKey(SymmetricKey):
    """Key held by the platform key store; only ever encrypts other secrets."""

    def derive(self, info: bytes, length: int = KEY_SIZE) -> bytes:
        """Derive an independent sub-key for one purpose using HKDF-SHA256."""
        hkdf = HKDF(algorithm=hashes.SHA256(), length=length, salt=None, info=info)
        return hkdf.derive(self.key_bytes)


class DatabaseKey(SymmetricKey):
    """Key that encrypts task rows, derived from the database passphrase."""

    @classmethod
    def from_passphrase(
        cls, passphrase: bytes, salt: bytes, iterations: int = PBKDF2_ITERATIONS
    ) -> DatabaseKey:
        """Derive the database key from passphrase bytes using PBKDF2."""
        if len(salt) < SALT_SIZE:
            raise KeyDerivationError(f"Salt must be at least {SALT_SIZE} bytes")
        if not passphrase:
            raise KeyDerivationError("Passphrase cannot be empty")

        key_bytes = hashlib.pbkdf2_hmac(
            "sha256",
            passphrase,
            salt,
            iterations,
            dklen=KEY_SIZE,
        )
        return cls(key_bytes=key_bytes)


def generate_salt() -> bytes:
    """Generate a random salt for PBKDF2."""
    return os.urandom(SALT_SIZE)
