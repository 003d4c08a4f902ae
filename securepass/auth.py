"""
Account authentication against the byte store.

Account credentials live under ``securepass_creds_<email>`` as plaintext JSON
protected only by the one-way hash. The authenticated identity is cached
under ``securepass_user`` so a restart can restore the session; presence of
that key alone counts as logged in.
"""
import logging
from typing import Optional

from pydantic import ValidationError

from .conf import USER_KEY, credentials_key
from .exceptions import AuthenticationFailure, PersistenceFailure
from .storage import ByteStore
from .vault.audit import AuditLog
from .vault.config import VaultConfig
from .vault.crypto import (
    CredentialHasher,
    KeyManager,
    serialize_value,
    deserialize_value,
    encode_bytes,
    decode_bytes,
    generate_salt,
)
from .vault.records import AccountCredential, UserIdentity

logger = logging.getLogger("securepass.auth")

INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_EXISTS = "An account with this email already exists"
ACCOUNT_NOT_FOUND = "No account found with this email address"


class AuthManager:
    """Registration, login and logout for local accounts.

    Login failures never reveal whether the email or the password was wrong.
    """

    def __init__(
        self,
        store: ByteStore,
        audit: AuditLog,
        hasher: CredentialHasher,
        key_manager: Optional[KeyManager] = None,
        config: Optional[VaultConfig] = None,
    ):
        self._store = store
        self._audit = audit
        self._hasher = hasher
        self._keys = key_manager
        self._config = config or VaultConfig()
        self._user: Optional[UserIdentity] = None

    @property
    def user(self) -> Optional[UserIdentity]:
        return self._user

    @property
    def authenticated(self) -> bool:
        return self._user is not None

    async def _write(self, key: str, value: bytes) -> None:
        try:
            await self._store.set(key, value)
        except Exception as err:
            raise PersistenceFailure(
                f"Failed to save {key}: {err}", storage_key=key,
            ) from err

    async def _credential(self, email: str) -> Optional[AccountCredential]:
        raw = await self._store.get(credentials_key(email))
        if raw is None:
            return None
        try:
            return AccountCredential.model_validate(deserialize_value(raw))
        except (ValueError, ValidationError) as err:
            logger.error("Unreadable credential record for %s: %s", email, err)
            return None

    async def _start_session(self, email: str) -> UserIdentity:
        user = UserIdentity(email=email)
        await self._write(USER_KEY, serialize_value(user.to_json()))
        self._user = user
        return user

    async def _unlock_vault(
        self, email: str, password: str, credential: AccountCredential,
    ) -> None:
        if self._keys is None or self._config.static_key:
            return
        if not credential.vault_salt:
            credential = credential.model_copy(
                update={"vault_salt": encode_bytes(generate_salt())}
            )
            await self._write(
                credentials_key(email), serialize_value(credential.to_json()),
            )
        await self._keys.unlock(password, decode_bytes(credential.vault_salt))

    async def restore(self) -> Optional[UserIdentity]:
        """Restore the cached identity, if any.

        An unparseable cache entry is removed and treated as logged out.

        Raises:
            PersistenceFailure: If the unreadable entry could not be removed.
        """
        raw = await self._store.get(USER_KEY)
        if raw is None:
            self._user = None
            return None
        try:
            self._user = UserIdentity.model_validate(deserialize_value(raw))
        except (ValueError, ValidationError):
            logger.warning("Discarding unreadable cached identity")
            self._user = None
            try:
                await self._store.delete(USER_KEY)
            except Exception as err:
                raise PersistenceFailure(
                    f"Failed to remove {USER_KEY}: {err}", storage_key=USER_KEY,
                ) from err
        return self._user

    async def register(self, email: str, password: str) -> UserIdentity:
        """Create an account and log it in.

        Raises:
            AuthenticationFailure: If the email is already registered.
        """
        if await self._store.get(credentials_key(email)) is not None:
            raise AuthenticationFailure(ACCOUNT_EXISTS)
        hashed = await self._hasher.hash(password)
        credential = AccountCredential(
            hashed_password=encode_bytes(hashed.digest),
            salt=encode_bytes(hashed.salt),
            vault_salt=None if self._config.static_key else encode_bytes(generate_salt()),
        )
        await self._write(
            credentials_key(email), serialize_value(credential.to_json()),
        )
        await self._unlock_vault(email, password, credential)
        user = await self._start_session(email)
        logger.info("User registered: %s", email)
        await self._audit.add_log("User registered")
        return user

    async def login(self, email: str, password: str) -> UserIdentity:
        """Verify credentials and start a session.

        Raises:
            AuthenticationFailure: With the same message for an unknown
                email and a wrong password.
        """
        credential = await self._credential(email)
        if credential is None:
            raise AuthenticationFailure(INVALID_CREDENTIALS)
        try:
            digest = decode_bytes(credential.hashed_password)
            salt = decode_bytes(credential.salt)
        except ValueError:
            logger.error("Malformed credential record for %s", email)
            raise AuthenticationFailure(INVALID_CREDENTIALS) from None
        if not await self._hasher.verify(password, digest, salt):
            raise AuthenticationFailure(INVALID_CREDENTIALS)
        await self._unlock_vault(email, password, credential)
        user = await self._start_session(email)
        logger.info("User logged in: %s", email)
        await self._audit.add_log("User logged in")
        return user

    async def logout(self) -> None:
        """End the session and forget any account-derived vault key."""
        self._user = None
        try:
            await self._store.delete(USER_KEY)
        except Exception as err:
            raise PersistenceFailure(
                f"Failed to remove {USER_KEY}: {err}", storage_key=USER_KEY,
            ) from err
        finally:
            if self._keys is not None:
                self._keys.lock()
        logger.info("User logged out")
        await self._audit.add_log("User logged out")

    async def recover_password(self, email: str) -> None:
        """Record a password recovery request.

        Delivering the recovery message is left to the caller.

        Raises:
            AuthenticationFailure: If no account exists for ``email``.
        """
        if await self._store.get(credentials_key(email)) is None:
            raise AuthenticationFailure(ACCOUNT_NOT_FOUND)
        await self._audit.add_log(f"Password recovery requested for {email}")
