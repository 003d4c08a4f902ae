"""
Vault record models.

Every persisted shape is a pydantic model whose wire names are camelCase
(``createdAt``, ``apiKey``, ``hashedPassword``), so collections written by the
browser client load unchanged.
"""
import uuid
from datetime import datetime, timezone
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Model(BaseModel):
    """Base model: camelCase aliases, populate by either name."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json(self) -> dict:
        """Plain JSON-compatible dict using wire (alias) names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def field_name(cls, key: str) -> Optional[str]:
        """Map a field name or alias to the attribute name."""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return None


class VaultRecord(Model):
    """Common shape of every record kept in a ``VaultStore``."""

    # attribute used to name the record in audit messages
    label_field: ClassVar[str] = "id"
    # fields an update may never change
    immutable_fields: ClassVar[frozenset] = frozenset({"id", "created_at"})

    id: str
    created_at: datetime
    updated_at: datetime

    @property
    def label(self) -> str:
        return getattr(self, self.label_field, None) or "Unknown"


class PasswordRecord(VaultRecord):
    """Login credential for a website or application."""

    label_field: ClassVar[str] = "title"
    required_fields: ClassVar[tuple] = ("title", "username", "password")

    title: str
    username: str
    password: str = Field(repr=False)
    website: str = ""
    notes: str = ""


class BackupCodeRecord(VaultRecord):
    """Ordered one-time two-factor recovery codes for a service."""

    label_field: ClassVar[str] = "service"

    service: str
    codes: list[str] = Field(default_factory=list, repr=False)
    description: str = ""


class AICredentialRecord(VaultRecord):
    """API key for an AI service."""

    label_field: ClassVar[str] = "service"

    service: str
    api_key: str = Field(repr=False)
    endpoint: Optional[str] = None
    description: str = ""


class AuditEntry(Model):
    """Immutable audit ledger entry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    action: str
    details: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class AccountCredential(Model):
    """Authentication record of one account (``securepass_creds_<email>``).

    ``hashed_password`` and ``salt`` are base64 text. ``vault_salt`` is only
    present when the vault key is derived from the account password.
    """

    hashed_password: str = Field(repr=False)
    salt: str = Field(repr=False)
    created_at: datetime = Field(default_factory=utcnow)
    vault_salt: Optional[str] = Field(default=None, repr=False)


class UserIdentity(Model):
    """Cached identity of the authenticated user (``securepass_user``)."""

    id: str = Field(default_factory=new_id)
    email: str
    created_at: datetime = Field(default_factory=utcnow)
