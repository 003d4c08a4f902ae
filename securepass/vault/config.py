"""
Vault Configuration — Key material source and validated settings.

Reads settings from environment variables:
    SECUREPASS_KEY_SOURCE = static | account
    SECUREPASS_PASSPHRASE / SECUREPASS_SALT = static key material
    SECUREPASS_KDF_ITERATIONS = <integer>
    SECUREPASS_CIPHER_BACKEND = aesgcm | chacha20

Security Note:
    With ``key_source="static"`` every vault is encrypted under a key derived
    from the configured passphrase and salt, so anyone holding those two
    values can decrypt any vault. ``key_source="account"`` derives the vault
    key from the login password and a per-account salt instead.
    Never log key material. Only log the key source and iteration count.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..conf import (
    DEFAULT_PASSPHRASE,
    DEFAULT_SALT,
    DEFAULT_KDF_ITERATIONS,
    MAX_AUDIT_ENTRIES,
    SESSION_TIMEOUT,
    CLIPBOARD_CLEAR_AFTER,
)

logger = logging.getLogger("securepass.vault")

_ENV_PREFIX = "SECUREPASS_"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _env(name: str) -> Optional[str]:
    return os.environ.get(f"{_ENV_PREFIX}{name}")


def _env_bool(name: str) -> Optional[bool]:
    """Parse a boolean environment flag.

    Raises:
        ValueError: If the value is not a recognised boolean literal.
    """
    raw = _env(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{_ENV_PREFIX}{name} must be a boolean, got {raw!r}")


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    key_source: str = Field(default="static")
    passphrase: str = Field(default=DEFAULT_PASSPHRASE, repr=False)
    salt: str = Field(default=DEFAULT_SALT, repr=False)
    kdf_iterations: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=1)
    cipher_backend: str = Field(default="aesgcm")
    max_audit_entries: int = Field(default=MAX_AUDIT_ENTRIES, ge=1, le=100_000)
    session_timeout: float = Field(default=SESSION_TIMEOUT, gt=0)
    clipboard_clear_after: float = Field(default=CLIPBOARD_CLEAR_AFTER, gt=0)
    remap_import_ids: bool = True
    data_dir: Optional[str] = None

    @field_validator("key_source")
    @classmethod
    def validate_key_source(cls, v: str) -> str:
        """Validate the vault key source is supported."""
        v = v.lower()
        if v not in ("static", "account"):
            raise ValueError(f"Unsupported key source: {v}")
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @model_validator(mode="after")
    def validate_static_material(self) -> "VaultConfig":
        """Static key derivation needs both a passphrase and a salt."""
        if self.key_source == "static" and not (self.passphrase and self.salt):
            raise ValueError(
                "key_source 'static' requires a non-empty passphrase and salt"
            )
        return self

    @property
    def static_key(self) -> bool:
        return self.key_source == "static"

    @classmethod
    def from_env(cls, **overrides) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Keyword arguments take precedence over the environment.

        Returns:
            Populated VaultConfig instance.
        """
        values = {
            "key_source": _env("KEY_SOURCE"),
            "passphrase": _env("PASSPHRASE"),
            "salt": _env("SALT"),
            "kdf_iterations": _env("KDF_ITERATIONS"),
            "cipher_backend": _env("CIPHER_BACKEND"),
            "max_audit_entries": _env("MAX_AUDIT_ENTRIES"),
            "session_timeout": _env("SESSION_TIMEOUT"),
            "clipboard_clear_after": _env("CLIPBOARD_CLEAR_AFTER"),
            "remap_import_ids": _env_bool("REMAP_IMPORT_IDS"),
            "data_dir": _env("DATA_DIR"),
        }
        values = {k: v for k, v in values.items() if v is not None}
        values.update(overrides)
        config = cls(**values)
        logger.debug(
            "Vault config loaded: key_source=%s cipher=%s iterations=%d",
            config.key_source, config.cipher_backend, config.kdf_iterations,
        )
        return config
