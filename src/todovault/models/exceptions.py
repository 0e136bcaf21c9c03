"""Error taxonomy for TodoVault.

Every failure of the key and store layers is surfaced as one of these typed
conditions. Only a missing id on delete is treated as benign.
"""


class TodoVaultError(Exception):
    """Base exception for all TodoVault errors."""


class KeyProvisioningError(TodoVaultError):
    """Raised when no secure platform key store is available for the wrapping key."""


class KeyStoreCorruptedError(TodoVaultError):
    """Raised when the encrypted preferences cannot be authenticated or parsed."""


class StoreOpenError(TodoVaultError):
    """Raised when the task database cannot be opened (wrong passphrase, corrupt file)."""


class NotFoundError(TodoVaultError):
    """Raised when an update targets a task id that does not exist."""


class StoreClosedError(TodoVaultError):
    """Raised when an operation is attempted on a task store that has been closed."""
