"""SecurePass.

Local vault for passwords, two-factor backup codes and AI API keys.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    IntegrityFailure,
    ReadCorruption,
    PersistenceFailure,
    AuthenticationFailure,
    ClipboardFailure,
    VaultLocked,
)
from .storage import ByteStore, MemoryStore, FileStore, RedisStore
from .vault import (
    VaultConfig,
    KeyManager,
    CredentialHasher,
    Cipher,
    AuditLog,
    VaultStore,
    PasswordVault,
    BackupCodeVault,
    AICredentialVault,
)
from .auth import AuthManager
from .guard import SessionGuard
from .clipboard import ClipboardChannel
from .generator import generate_password
from .vault.service import VaultService

__all__ = (
    "__version__",
    "VaultError",
    "IntegrityFailure",
    "ReadCorruption",
    "PersistenceFailure",
    "AuthenticationFailure",
    "ClipboardFailure",
    "VaultLocked",
    "ByteStore",
    "MemoryStore",
    "FileStore",
    "RedisStore",
    "VaultConfig",
    "KeyManager",
    "CredentialHasher",
    "Cipher",
    "AuditLog",
    "VaultStore",
    "PasswordVault",
    "BackupCodeVault",
    "AICredentialVault",
    "AuthManager",
    "SessionGuard",
    "ClipboardChannel",
    "generate_password",
    "VaultService",
)
