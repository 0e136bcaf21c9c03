"""Custom exceptions for TodoVault crypto primitives."""

from todovault.models.exceptions import TodoVaultError


class TodoVaultCryptoError(TodoVaultError):
    """Base exception for all TodoVault crypto errors."""


class DecryptionError(TodoVaultCryptoError):
    """Raised when decryption fails (wrong key, corrupted data, or tampered data)."""


class KeyDerivationError(TodoVaultCryptoError):
    """Raised when key derivation fails."""
