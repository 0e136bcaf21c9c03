"""Wrapping key provisioning backed by the platform key store.

The wrapping key lives only in the OS keychain (macOS Keychain, Windows
Credential Locker, Secret Service/KWallet) through ``keyring``. When no
secure backend is available the provider fails loudly instead of falling
back to a weaker store.
"""

from __future__ import annotations

import keyring
from keyring.backend import KeyringBackend
from keyring.backends import chainer, fail, null
from keyring.errors import KeyringError

from todovault.models.crypto.keys import WrappingKey
from todovault.models.exceptions import KeyProvisioningError
from todovault.utils.logger import get_logger

WRAPPING_KEY_USERNAME = "wrapping_key"

# Backends that keep secrets in plaintext or obfuscated files.
_WEAK_BACKEND_MODULE_PREFIXES = ("keyrings.alt",)


def is_secure_backend(backend: KeyringBackend) -> bool:
    """Tell whether a keyring backend is backed by a platform secure store."""
    if isinstance(backend, (fail.Keyring, null.Keyring)):
        return False
    if isinstance(backend, chainer.ChainerBackend):
        members = list(backend.backends)
        return bool(members) and all(is_secure_backend(b) for b in members)
    return not type(backend).__module__.startswith(_WEAK_BACKEND_MODULE_PREFIXES)


class KeyMaterialProvider:
    """Get or create the wrapping key held by the platform key store."""

    def __init__(
        self, service_name: str = "todovault", backend: KeyringBackend | None = None
    ):
        """
        Initialize the provider.

        Args:
            service_name: Keyring service under which the key is stored
            backend: Keyring backend to use. If None, uses the active backend.
        """
        self.service_name = service_name
        self._backend = backend

    @property
    def backend(self) -> KeyringBackend:
        """The keyring backend in use."""
        if self._backend is None:
            self._backend = keyring.get_keyring()
        return self._backend

    def get_or_create_wrapping_key(self) -> WrappingKey:
        """
        Return the installation's wrapping key, creating it on first use.

        Returns:
            The same WrappingKey on every call for a given installation

        Raises:
            KeyProvisioningError: If no secure key store is available or the
                stored key cannot be read
        """
        logger = get_logger(__name__)
        backend = self.backend
        if not is_secure_backend(backend):
            raise KeyProvisioningError(
                f"No secure key store available (keyring backend: {backend!r}). "
                "Install or unlock a system keychain."
            )

        try:
            stored = backend.get_password(self.service_name, WRAPPING_KEY_USERNAME)
        except KeyringError as e:
            raise KeyProvisioningError(f"Failed to read wrapping key: {e}") from e

        if stored is not None:
            try:
                return WrappingKey.from_base64(stored)
            except ValueError as e:
                raise KeyProvisioningError(
                    "Stored wrapping key is malformed; refusing to replace it"
                ) from e

        key = WrappingKey.generate()
        try:
            backend.set_password(
                self.service_name, WRAPPING_KEY_USERNAME, key.to_base64()
            )
        except KeyringError as e:
            raise KeyProvisioningError(f"Failed to store wrapping key: {e}") from e

        logger.info("created wrapping key in %s", type(backend).__name__)
        return key
