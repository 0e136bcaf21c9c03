"""Crypto primitives for the TodoVault key store and encrypted database."""

from .cipher import EncryptedData, decrypt, encrypt
from .exceptions import DecryptionError, KeyDerivationError, TodoVaultCryptoError
from .keys import DatabaseKey, SymmetricKey, WrappingKey, generate_salt
from .passphrase import ALPHABET, generate_passphrase, passphrase_to_bytes
from .preferences import EncryptedPreferences, PreferencesFormatError

__all__ = [
    "ALPHABET",
    "DatabaseKey",
    "EncryptedData",
    "EncryptedPreferences",
    "PreferencesFormatError",
    "SymmetricKey",
    "WrappingKey",
    "decrypt",
    "encrypt",
    "generate_passphrase",
    "generate_salt",
    "passphrase_to_bytes",
    "TodoVaultCryptoError",
    "DecryptionError",
    "KeyDerivationError",
]
