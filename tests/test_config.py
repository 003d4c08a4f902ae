"""
Tests for VaultConfig validation and environment loading.
"""
import pytest
from pydantic import ValidationError

from securepass.conf import DEFAULT_KDF_ITERATIONS, MAX_AUDIT_ENTRIES
from securepass.vault.config import VaultConfig


class TestDefaults:

    def test_defaults(self):
        """Defaults match the documented settings."""
        config = VaultConfig()
        assert config.key_source == "static"
        assert config.static_key
        assert config.kdf_iterations == DEFAULT_KDF_ITERATIONS == 100_000
        assert config.cipher_backend == "aesgcm"
        assert config.max_audit_entries == MAX_AUDIT_ENTRIES == 1000
        assert config.session_timeout == 1800
        assert config.clipboard_clear_after == 30
        assert config.remap_import_ids is True

    def test_secrets_not_in_repr(self):
        """The static passphrase and salt are kept out of repr()."""
        config = VaultConfig()
        assert config.passphrase not in repr(config)


class TestValidation:

    @pytest.mark.parametrize("values", [
        {"key_source": "hsm"},
        {"cipher_backend": "des"},
        {"kdf_iterations": 0},
        {"max_audit_entries": 0},
        {"session_timeout": 0},
        {"clipboard_clear_after": -1},
        {"passphrase": ""},
    ])
    def test_invalid(self, values):
        """Unsupported or out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            VaultConfig(**values)

    def test_account_mode_needs_no_static_material(self):
        """The account key source ignores the static passphrase."""
        config = VaultConfig(key_source="ACCOUNT", passphrase="", salt="")
        assert config.key_source == "account"
        assert not config.static_key


class TestFromEnv:

    def test_reads_environment(self, monkeypatch):
        """SECUREPASS_* variables populate the config."""
        monkeypatch.setenv("SECUREPASS_KEY_SOURCE", "account")
        monkeypatch.setenv("SECUREPASS_KDF_ITERATIONS", "2000")
        monkeypatch.setenv("SECUREPASS_CIPHER_BACKEND", "chacha20")
        monkeypatch.setenv("SECUREPASS_SESSION_TIMEOUT", "60")
        monkeypatch.setenv("SECUREPASS_REMAP_IMPORT_IDS", "no")
        config = VaultConfig.from_env()
        assert config.key_source == "account"
        assert config.kdf_iterations == 2000
        assert config.cipher_backend == "chacha20"
        assert config.session_timeout == 60
        assert config.remap_import_ids is False

    def test_overrides_win(self, monkeypatch):
        """Keyword overrides take precedence over the environment."""
        monkeypatch.setenv("SECUREPASS_KDF_ITERATIONS", "2000")
        assert VaultConfig.from_env(kdf_iterations=5).kdf_iterations == 5

    def test_bad_boolean(self, monkeypatch):
        """Unrecognised booleans are an error."""
        monkeypatch.setenv("SECUREPASS_REMAP_IMPORT_IDS", "maybe")
        with pytest.raises(ValueError):
            VaultConfig.from_env()
