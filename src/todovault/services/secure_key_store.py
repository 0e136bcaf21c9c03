"""Database passphrase persistence.

The passphrase is generated once per installation and kept only in the
encrypted preferences file, wrapped by the platform-held key. It must never
change afterwards: the database is encrypted with a key derived from it.
"""

from __future__ import annotations

from pathlib import Path

from filelock import FileLock

from todovault.models.crypto.keys import WrappingKey
from todovault.models.crypto.passphrase import (
    DEFAULT_PASSPHRASE_LENGTH,
    generate_passphrase,
    passphrase_to_bytes,
)
from todovault.models.crypto.preferences import (
    EncryptedPreferences,
    PreferencesFormatError,
)
from todovault.models.exceptions import KeyStoreCorruptedError
from todovault.utils.logger import get_logger

PASSPHRASE_PREF_NAME = "db_passphrase"


class SecureKeyStore:
    """Get-or-create store for the database passphrase."""

    def __init__(
        self, prefs_path: Path, passphrase_length: int = DEFAULT_PASSPHRASE_LENGTH
    ):
        """
        Initialize the key store.

        Args:
            prefs_path: Location of the encrypted preferences file
            passphrase_length: Length of newly generated passphrases
        """
        self.prefs_path = Path(prefs_path)
        self.lock_path = self.prefs_path.with_name(self.prefs_path.name + ".lock")
        self.passphrase_length = passphrase_length

    def get_passphrase(self, wrapping_key: WrappingKey) -> bytes:
        """
        Return the database passphrase, generating and storing it on first use.

        Args:
            wrapping_key: Key protecting the preferences file

        Returns:
            Passphrase bytes, identical on every call for an installation

        Raises:
            KeyStoreCorruptedError: If the preferences file fails authentication
                (tampered, or written with a different wrapping key)
        """
        self.prefs_path.parent.mkdir(parents=True, exist_ok=True)
        # Read and first write happen under one lock so concurrent processes
        # agree on a single passphrase
        with FileLock(self.lock_path):
            return passphrase_to_bytes(self._get_or_create(wrapping_key))

    def _get_or_create(self, wrapping_key: WrappingKey) -> str:
        logger = get_logger(__name__)
        try:
            prefs = EncryptedPreferences(self.prefs_path, wrapping_key)
            passphrase = prefs.get_string(PASSPHRASE_PREF_NAME)
        except PreferencesFormatError as e:
            logger.error("key store at %s is unreadable: %s", self.prefs_path, e)
            raise KeyStoreCorruptedError(
                f"Encrypted key store {self.prefs_path} failed authentication"
            ) from e

        if passphrase == "":
            raise KeyStoreCorruptedError("Stored database passphrase is empty")

        if passphrase is None:
            passphrase = generate_passphrase(self.passphrase_length)
            prefs.put_string(PASSPHRASE_PREF_NAME, passphrase)
            logger.info("generated database passphrase in %s", self.prefs_path)

        return passphrase
