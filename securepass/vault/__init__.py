"""SecurePass Vault — Encrypted collections of credentials at rest.

Security Note (Threat Model):
    Collections are decrypted in process memory while the vault is open.
    A memory dump of the application process exposes the vault key and
    the decrypted records. This is an accepted limitation; mitigation
    requires HSM/secure enclave integration which is out of scope.
    With the default ``static`` key source the vault key is derived from
    configured constants, so the ciphertext is only as secret as they are.
"""

from .config import VaultConfig
from .crypto import KeyManager, CredentialHasher, Cipher
from .records import (
    PasswordRecord,
    BackupCodeRecord,
    AICredentialRecord,
    AuditEntry,
    AccountCredential,
    UserIdentity,
)
from .audit import AuditLog
from .store import VaultStore, PasswordVault, BackupCodeVault, AICredentialVault

__all__ = [
    "VaultConfig",
    "KeyManager",
    "CredentialHasher",
    "Cipher",
    "PasswordRecord",
    "BackupCodeRecord",
    "AICredentialRecord",
    "AuditEntry",
    "AccountCredential",
    "UserIdentity",
    "AuditLog",
    "VaultStore",
    "PasswordVault",
    "BackupCodeVault",
    "AICredentialVault",
]
