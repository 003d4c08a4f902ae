"""
Storage keys and default settings shared by the vault components.

Every blob the application persists lives under one of these byte-store keys.
"""

PASSWORDS_KEY = "securepass_passwords"
BACKUP_CODES_KEY = "securepass_backup_codes"
AI_CREDENTIALS_KEY = "securepass_ai_credentials"
AUDIT_LOG_KEY = "securepass_audit_log"
USER_KEY = "securepass_user"
CREDENTIALS_PREFIX = "securepass_creds_"

# Static key material for the ``static`` key source.
DEFAULT_PASSPHRASE = "demo-master-key-32-characters!"
DEFAULT_SALT = "securepass-salt"
DEFAULT_KDF_ITERATIONS = 100_000

MAX_AUDIT_ENTRIES = 1000
SESSION_TIMEOUT = 30 * 60.0  # seconds
CLIPBOARD_CLEAR_AFTER = 30.0  # seconds

DEFAULT_DATA_DIR = "~/.securepass"


def credentials_key(email: str) -> str:
    """Byte-store key holding the credential record of one account."""
    return f"{CREDENTIALS_PREFIX}{email}"


def account_collection_key(base: str, email: str) -> str:
    """Collection key of one account when the vault key is per account."""
    return f"{base}_{email}"
