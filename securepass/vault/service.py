"""
VaultService — One object wiring the vault components together.

Every component receives its collaborators explicitly: a single ``KeyManager``
is shared by reference with the ``Cipher``, the cipher with the three
vaults, and the ``AuditLog`` with everything that mutates.
"""
import logging
from typing import Any, Callable, Optional

from ..auth import AuthManager
from ..conf import account_collection_key
from ..clipboard import ClipboardBackend, ClipboardChannel
from ..guard import SessionGuard
from ..storage import ByteStore
from .audit import AuditLog
from .config import VaultConfig
from .crypto import Cipher, CredentialHasher, KeyManager
from .records import UserIdentity
from .store import AICredentialVault, BackupCodeVault, PasswordVault

logger = logging.getLogger("securepass.vault")


class VaultService:
    """Composition root for a SecurePass vault on one byte store."""

    def __init__(
        self,
        store: ByteStore,
        config: Optional[VaultConfig] = None,
        clipboard_backend: Optional[ClipboardBackend] = None,
    ):
        self.config = config or VaultConfig()
        self.store = store
        self.keys = KeyManager(self.config)
        self.cipher = Cipher(self.keys, backend=self.config.cipher_backend)
        self.audit = AuditLog(store, max_entries=self.config.max_audit_entries)
        self.auth = AuthManager(
            store,
            self.audit,
            CredentialHasher(self.config.kdf_iterations),
            key_manager=self.keys,
            config=self.config,
        )
        self.passwords = PasswordVault(
            store, self.cipher, self.audit, remap_ids=self.config.remap_import_ids,
        )
        self.backup_codes = BackupCodeVault(store, self.cipher, self.audit)
        self.ai_credentials = AICredentialVault(store, self.cipher, self.audit)
        self.clipboard = ClipboardChannel(
            clipboard_backend,
            audit=self.audit,
            clear_after=self.config.clipboard_clear_after,
        )

    @property
    def vaults(self) -> tuple:
        return (self.passwords, self.backup_codes, self.ai_credentials)

    @classmethod
    async def open(
        cls,
        store: ByteStore,
        config: Optional[VaultConfig] = None,
        clipboard_backend: Optional[ClipboardBackend] = None,
    ) -> "VaultService":
        """Build the service, load the audit log and, when possible, the vaults.

        With the ``account`` key source the vaults stay unloaded until
        ``login()`` or ``register()`` unlocks the key.

        Returns:
            Ready VaultService instance.
        """
        service = cls(store, config=config, clipboard_backend=clipboard_backend)
        await service.audit.load()
        await service.auth.restore()
        if service.config.static_key:
            await service.load_vaults()
        logger.info(
            "Vault service opened (key_source=%s, user=%s)",
            service.config.key_source,
            service.auth.user.email if service.auth.user else None,
        )
        return service

    async def load_vaults(self) -> None:
        for vault in self.vaults:
            await vault.load()

    def unload_vaults(self) -> None:
        for vault in self.vaults:
            vault.unload()

    def _bind_vaults(self, email: str) -> None:
        # each account's collections live under their own keys
        if self.config.static_key:
            return
        for vault in self.vaults:
            vault.bind(account_collection_key(vault.base_key, email))

    async def register(self, email: str, password: str) -> UserIdentity:
        user = await self.auth.register(email, password)
        self._bind_vaults(user.email)
        await self.load_vaults()
        return user

    async def login(self, email: str, password: str) -> UserIdentity:
        user = await self.auth.login(email, password)
        self._bind_vaults(user.email)
        await self.load_vaults()
        return user

    async def logout(self) -> None:
        """Log out, cancel clipboard timers and, when keyed per account, drop plaintext."""
        await self.clipboard.close()
        try:
            await self.auth.logout()
        finally:
            if not self.config.static_key:
                self.unload_vaults()

    def session_guard(
        self,
        on_timeout: Optional[Callable[[], Any]] = None,
        **kwargs,
    ) -> SessionGuard:
        """SessionGuard using the configured timeout; logs out by default."""
        return SessionGuard(
            self.config.session_timeout,
            on_timeout or self.logout,
            **kwargs,
        )
