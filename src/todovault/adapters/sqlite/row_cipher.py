"""Field-level encryption of task rows.

Titles and descriptions go to disk only as AES-256-GCM ciphertext under the
database key. The column name is bound as associated data so ciphertext
cannot be swapped between columns.
"""

from __future__ import annotations

from todovault.models.crypto.cipher import EncryptedData, decrypt, encrypt
from todovault.models.crypto.exceptions import DecryptionError
from todovault.models.crypto.keys import DatabaseKey

KEYCHECK_PLAINTEXT = "todovault-keycheck-v1"


class RowCipher:
    """Encrypts and decrypts task columns with the database key."""

    def __init__(self, key: DatabaseKey):
        self.key = key

    def encrypt_field(self, column: str, plaintext: str) -> str:
        """Encrypt one column value to its JSON storage form."""
        return encrypt(plaintext, self.key, column.encode("ascii")).to_json()

    def decrypt_field(self, column: str, encrypted_json: str) -> str:
        """Decrypt one column value.

        Raises:
            DecryptionError: If the value fails authentication
        """
        encrypted = EncryptedData.from_json(encrypted_json)
        return decrypt(encrypted, self.key, column.encode("ascii"))

    def prepare_task_for_storage(self, title: str, description: str) -> tuple[str, str]:
        """Return (title_encrypted, description_encrypted)."""
        return (
            self.encrypt_field("title", title),
            self.encrypt_field("description", description),
        )

    def extract_task_content(
        self, title_encrypted: str, description_encrypted: str
    ) -> tuple[str, str]:
        """Return plaintext (title, description) from stored columns."""
        return (
            self.decrypt_field("title", title_encrypted),
            self.decrypt_field("description", description_encrypted),
        )

    def make_keycheck(self) -> str:
        """Token written once at creation, proving which key the file uses."""
        return self.encrypt_field("keycheck", KEYCHECK_PLAINTEXT)

    def verify_keycheck(self, token: str) -> bool:
        """Check a stored keycheck token against this key."""
        try:
            return self.decrypt_field("keycheck", token) == KEYCHECK_PLAINTEXT
        except DecryptionError:
            return False
