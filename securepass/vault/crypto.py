"""
Vault Crypto Core — Key derivation, envelope encryption and serialization.

- Vault key: PBKDF2-HMAC-SHA256(passphrase, salt) → one 256-bit key per process
  (or per unlocked account, see ``VaultConfig.key_source``)
- Credential hashing: PBKDF2-HMAC-SHA256(password, random 128-bit salt),
  never reused as an encryption key
- Envelope: base64([nonce 12B][encrypted_payload + tag 16B])

Security Note:
    Never log plaintext, ciphertext, salts or derived keys.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import hmac
import asyncio
import base64
import binascii
import logging
from typing import Any, NamedTuple, Optional, Union

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import IntegrityFailure, VaultLocked
from .config import VaultConfig

logger = logging.getLogger("securepass.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit tag
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 16  # 128-bit credential salt

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(secret: bytes, salt: bytes, iterations: int) -> bytes:
    """Derive a 32-byte key using PBKDF2-HMAC-SHA256.

    Args:
        secret: Passphrase or password bytes.
        salt: KDF salt.
        iterations: PBKDF2 iteration count.

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret)


def generate_salt(size: int = SALT_SIZE) -> bytes:
    """Return ``size`` random bytes for use as a KDF salt."""
    return os.urandom(size)


class KeyManager:
    """Owns the single symmetric vault key.

    The key is derived on the first ``get_key()`` call and cached; concurrent
    first callers share one derivation (single-flight). Instances are meant to
    be constructed once and handed to every ``Cipher`` that needs them.

    With ``key_source="account"`` no key exists until ``unlock()`` is called
    with the login password and the account's vault salt; ``lock()`` drops it.
    """

    def __init__(self, config: VaultConfig):
        self._config = config
        self._key: Optional[bytes] = None
        self._lock = asyncio.Lock()
        self.derivations = 0

    @property
    def unlocked(self) -> bool:
        return self._key is not None

    async def _derive(self, secret: bytes, salt: bytes) -> bytes:
        key = await asyncio.to_thread(
            derive_key, secret, salt, self._config.kdf_iterations,
        )
        self.derivations += 1
        return key

    async def get_key(self) -> bytes:
        """Return the vault key, deriving it on first use.

        Raises:
            VaultLocked: If the key source is ``account`` and no account
                has been unlocked.
        """
        if self._key is not None:
            return self._key
        if not self._config.static_key:
            raise VaultLocked()
        async with self._lock:
            if self._key is None:
                self._key = await self._derive(
                    self._config.passphrase.encode("utf-8"),
                    self._config.salt.encode("utf-8"),
                )
                logger.info(
                    "Vault key derived (static source, %d iterations)",
                    self._config.kdf_iterations,
                )
        return self._key

    async def unlock(self, password: str, salt: bytes) -> None:
        """Derive the vault key from an account password.

        Only meaningful for the ``account`` key source; for the static
        source the call is ignored.
        """
        if self._config.static_key:
            return
        async with self._lock:
            self._key = await self._derive(password.encode("utf-8"), salt)
        logger.info("Vault key derived (account source)")

    def lock(self) -> None:
        """Forget an account-derived key. The static key is kept."""
        if not self._config.static_key:
            self._key = None


# ---------------------------------------------------------------------------
# Credential hashing
# ---------------------------------------------------------------------------

class PasswordHash(NamedTuple):
    digest: bytes
    salt: bytes


class CredentialHasher:
    """One-way hashing of account passwords for authentication only."""

    def __init__(self, iterations: int):
        self.iterations = iterations

    async def hash(self, password: str) -> PasswordHash:
        """Hash ``password`` under a fresh random 128-bit salt."""
        salt = generate_salt()
        digest = await asyncio.to_thread(
            derive_key, password.encode("utf-8"), salt, self.iterations,
        )
        return PasswordHash(digest, salt)

    async def verify(self, password: str, digest: bytes, salt: bytes) -> bool:
        """Re-derive with the stored salt and compare in constant time."""
        candidate = await asyncio.to_thread(
            derive_key, password.encode("utf-8"), salt, self.iterations,
        )
        return hmac.compare_digest(candidate, digest)


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

class Cipher:
    """AEAD envelope encryption under the KeyManager's key."""

    def __init__(self, keys: KeyManager, backend: str = "aesgcm"):
        self._keys = keys
        try:
            self._cipher_cls = _CIPHERS[backend]
        except KeyError:
            raise ValueError(f"Unsupported cipher backend: {backend}") from None

    async def ready(self) -> None:
        """Make sure the vault key is available.

        Raises:
            VaultLocked: If the key cannot be obtained yet.
        """
        await self._keys.get_key()

    async def encrypt(self, plaintext: bytes) -> str:
        """Encrypt plaintext into a text envelope.

        A fresh random nonce is generated on every call.

        Args:
            plaintext: Data to encrypt.

        Returns:
            base64 text of ``nonce || ciphertext || tag``.
        """
        key = await self._keys.get_key()
        nonce = os.urandom(NONCE_SIZE)
        ct = self._cipher_cls(key).encrypt(nonce, plaintext, None)
        return base64.b64encode(nonce + ct).decode("ascii")

    async def decrypt(self, envelope: Union[str, bytes]) -> bytes:
        """Decrypt a text envelope.

        Args:
            envelope: Envelope produced by ``encrypt``.

        Returns:
            Decrypted plaintext bytes.

        Raises:
            IntegrityFailure: If the envelope is malformed or the tag
                does not verify.
        """
        if isinstance(envelope, bytes):
            try:
                envelope = envelope.decode("ascii")
            except UnicodeDecodeError as err:
                raise IntegrityFailure("Envelope is not valid text") from err
        try:
            raw = base64.b64decode(envelope, validate=True)
        except (binascii.Error, ValueError) as err:
            raise IntegrityFailure("Envelope is not valid base64") from err
        # reject encodings that differ in the unused padding bits
        if base64.b64encode(raw).decode("ascii") != envelope:
            raise IntegrityFailure("Envelope encoding is not canonical")
        _min = NONCE_SIZE + TAG_SIZE
        if len(raw) < _min:
            raise IntegrityFailure(
                f"Envelope too short: {len(raw)} bytes (minimum {_min})"
            )
        key = await self._keys.get_key()
        nonce = raw[:NONCE_SIZE]
        ct = raw[NONCE_SIZE:]
        try:
            return self._cipher_cls(key).decrypt(nonce, ct, None)
        except InvalidTag as err:
            raise IntegrityFailure("Envelope authentication failed") from err


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Serialize a JSON-compatible value (dicts, lists, datetimes, ...).

    Args:
        value: Python value to serialize.

    Returns:
        orjson-encoded bytes.
    """
    return orjson.dumps(value)


def deserialize_value(data: Union[bytes, str]) -> Any:
    """Deserialize bytes produced by ``serialize_value``."""
    return orjson.loads(data)


def encode_bytes(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def decode_bytes(value: str) -> bytes:
    return base64.b64decode(value, validate=True)
