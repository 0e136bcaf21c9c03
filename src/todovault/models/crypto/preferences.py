"""Encrypted key-value namespace stored in a single file.

Entry names are encrypted deterministically with AES-SIV so they can be
looked up without decrypting every entry; values are encrypted with
AES-256-GCM and bound to their entry name as associated data. Both
sub-keys are derived from the wrapping key.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
import tempfile
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESSIV

from .cipher import EncryptedData, decrypt, encrypt
from .exceptions import DecryptionError
from .keys import SymmetricKey, WrappingKey

PREFS_FORMAT_VERSION = 1

_NAME_KEY_INFO = b"todovault/prefs/name/aes256-siv"
_VALUE_KEY_INFO = b"todovault/prefs/value/aes256-gcm"
_SIV_KEY_SIZE = 64  # AES-256-SIV uses two 256-bit keys


class PreferencesFormatError(DecryptionError):
    """Raised when the preferences file cannot be parsed or authenticated."""


class EncryptedPreferences:
    """File-backed, authenticated-encrypted key-value store."""

    def __init__(self, path: Path, wrapping_key: WrappingKey):
        """
        Open (or prepare to create) a preferences file.

        Args:
            path: Location of the preferences file
            wrapping_key: Key protecting both entry names and values

        Raises:
            PreferencesFormatError: If an existing file is malformed or was
                written with a different wrapping key
        """
        self.path = Path(path)
        self._namespace = self.path.name.encode("utf-8")
        self._name_cipher = AESSIV(wrapping_key.derive(_NAME_KEY_INFO, _SIV_KEY_SIZE))
        self._value_key = SymmetricKey(wrapping_key.derive(_VALUE_KEY_INFO))
        self._entries = self._load()

    def _load(self) -> dict[str, dict[str, str]]:
        if not self.path.exists():
            return {}

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise PreferencesFormatError(f"Preferences file is not valid JSON: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("entries"), dict):
            raise PreferencesFormatError("Preferences file has no entries table")
        if document.get("version") != PREFS_FORMAT_VERSION:
            raise PreferencesFormatError(
                f"Unsupported preferences version: {document.get('version')!r}"
            )

        entries = document["entries"]
        # Every name must authenticate, otherwise lookups would silently miss.
        for encrypted_name in entries:
            self._decrypt_name(encrypted_name)
        return entries

    def _encrypt_name(self, name: str) -> str:
        token = self._name_cipher.encrypt(name.encode("utf-8"), [self._namespace])
        return base64.b64encode(token).decode("ascii")

    def _decrypt_name(self, encrypted_name: str) -> str:
        try:
            token = base64.b64decode(encrypted_name, validate=True)
            return self._name_cipher.decrypt(token, [self._namespace]).decode("utf-8")
        except (binascii.Error, ValueError, InvalidTag) as e:
            raise PreferencesFormatError("Preference name failed authentication") from e

    def _associated_data(self, name: str) -> bytes:
        return self._namespace + b"\x00" + name.encode("utf-8")

    def contains(self, name: str) -> bool:
        """Check whether an entry exists."""
        return self._encrypt_name(name) in self._entries

    def get_string(self, name: str) -> str | None:
        """
        Read and decrypt an entry.

        Returns:
            The stored value, or None if the entry does not exist

        Raises:
            PreferencesFormatError: If the stored value fails authentication
        """
        raw = self._entries.get(self._encrypt_name(name))
        if raw is None:
            return None

        try:
            return decrypt(
                EncryptedData.from_dict(raw),
                self._value_key,
                associated_data=self._associated_data(name),
            )
        except (DecryptionError, KeyError, TypeError, AttributeError) as e:
            raise PreferencesFormatError(f"Preference {name!r} failed authentication") from e

    def put_string(self, name: str, value: str) -> None:
        """Encrypt and persist an entry, replacing any previous value."""
        encrypted = encrypt(
            value, self._value_key, associated_data=self._associated_data(name)
        )
        entries = dict(self._entries)
        entries[self._encrypt_name(name)] = encrypted.to_dict()
        self._save(entries)
        self._entries = entries

    def _save(self, entries: dict[str, dict[str, str]]) -> None:
        """Write the file atomically with owner-only permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {"version": PREFS_FORMAT_VERSION, "entries": entries}

        # mkstemp creates the file 0600 with a name no other writer shares
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f"{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
