"""
SecurePass error taxonomy.

Write-path failures (``IntegrityFailure`` while encrypting, ``PersistenceFailure``)
always reach the caller. ``ReadCorruption`` is the read-path counterpart: the
stores raise it internally and degrade to an empty collection.
"""


class VaultError(Exception):
    """Base class for every error raised by SecurePass."""

    def __init__(self, message: str = None, *args) -> None:
        self.message = message or self.__doc__
        super().__init__(self.message, *args)

    def __str__(self) -> str:
        return self.message


class IntegrityFailure(VaultError):
    """Envelope failed authentication or is malformed."""


class ReadCorruption(VaultError):
    """Stored data is present but cannot be decrypted or parsed."""

    def __init__(self, message: str = None, *args, storage_key: str = None) -> None:
        self.storage_key = storage_key
        super().__init__(message, *args)


class PersistenceFailure(VaultError):
    """The byte store did not complete a write."""

    def __init__(self, message: str = None, *args, storage_key: str = None) -> None:
        self.storage_key = storage_key
        super().__init__(message, *args)


class AuthenticationFailure(VaultError):
    """Authentication failed."""


class ClipboardFailure(VaultError):
    """Failed to copy to clipboard."""


class VaultLocked(VaultError):
    """The vault key is not available until an account is unlocked."""
