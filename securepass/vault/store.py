"""
VaultStore — Encrypted record collections bound to a byte-store key.

Provides the public API shared by every collection:
- ``load()`` — decrypt and parse the stored collection (fail-soft)
- ``save(records)`` — serialize, encrypt and write the collection (fail-hard)
- ``add(data)`` / ``update(id, data)`` / ``remove(id)`` — audited mutations
- ``export_all()`` — plaintext snapshot for export, audited

Each collection is one envelope: the whole record list is encrypted together
and rewritten on every mutation.

Security Note:
    Never log plaintext or ciphertext values. Only log storage keys, record
    ids, labels and counts.
"""
import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar, Generic, Optional, TypeVar, Union

from pydantic import ValidationError

from ..conf import PASSWORDS_KEY, BACKUP_CODES_KEY, AI_CREDENTIALS_KEY
from ..exceptions import (
    IntegrityFailure,
    PersistenceFailure,
    ReadCorruption,
)
from ..storage import ByteStore
from .audit import AuditLog
from .crypto import Cipher, serialize_value, deserialize_value
from .records import (
    VaultRecord,
    PasswordRecord,
    BackupCodeRecord,
    AICredentialRecord,
    new_id,
    utcnow,
)

logger = logging.getLogger("securepass.vault")

T = TypeVar("T", bound=VaultRecord)

RecordData = Union[Mapping[str, Any], VaultRecord]


class VaultStore(Generic[T]):
    """Encrypted collection of ``T`` records.

    The in-memory list always equals the last persisted state: mutations run
    load → modify → save under a per-instance lock and only replace the list
    once the write succeeded.

    Subclasses set ``record_type``, ``storage_key`` and the audit message
    templates; ``{label}`` is replaced with the record's label.
    """

    record_type: ClassVar[type[VaultRecord]] = VaultRecord
    storage_key: ClassVar[str] = ""
    added_message: ClassVar[str] = "Added record: {label}"
    updated_message: ClassVar[str] = "Updated record: {label}"
    deleted_message: ClassVar[str] = "Deleted record: {label}"
    exported_message: ClassVar[str] = "Exported records"

    def __init__(
        self,
        store: ByteStore,
        cipher: Cipher,
        audit: AuditLog,
        storage_key: Optional[str] = None,
    ):
        self._store = store
        self._cipher = cipher
        self._audit = audit
        if storage_key is not None:
            self.storage_key = storage_key
        if not self.storage_key:
            raise ValueError(f"{type(self).__name__} requires a storage key")
        self.base_key = self.storage_key
        self._records: list[T] = []
        self._loaded = False
        self._lock = asyncio.Lock()
        self.corruption: Optional[ReadCorruption] = None

    def __repr__(self) -> str:
        state = f"{len(self._records)} record(s)" if self._loaded else "unloaded"
        return f"<{type(self).__name__} key={self.storage_key} {state}>"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def records(self) -> tuple[T, ...]:
        """Read-only snapshot of the in-memory collection."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> Optional[T]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def unload(self) -> None:
        """Drop decrypted records from memory; the next call reloads."""
        self._records = []
        self._loaded = False

    def bind(self, storage_key: str) -> None:
        """Point the collection at another storage key and unload it."""
        if not storage_key:
            raise ValueError(f"{type(self).__name__} requires a storage key")
        self.storage_key = storage_key
        self.corruption = None
        self.unload()

    # ------------------------------------------------------------------
    # Read path (fail-soft)
    # ------------------------------------------------------------------

    async def _read(self) -> list[T]:
        """Read and decrypt the stored collection.

        Raises:
            ReadCorruption: If stored bytes cannot be decrypted or parsed.
            VaultLocked: If the vault key is not available.
        """
        await self._cipher.ready()
        raw = await self._store.get(self.storage_key)
        if raw is None:
            return []
        try:
            plaintext = await self._cipher.decrypt(raw)
            data = deserialize_value(plaintext)
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
            return [self.record_type.model_validate(item) for item in data]
        except (IntegrityFailure, ValueError, TypeError, ValidationError) as err:
            raise ReadCorruption(
                f"Unreadable collection {self.storage_key}: {err}",
                storage_key=self.storage_key,
            ) from err

    async def _load(self) -> None:
        try:
            self._records = await self._read()
            self.corruption = None
        except ReadCorruption as err:
            logger.error("Failed to load %s: %s", self.storage_key, err)
            self.corruption = err
            self._records = []
        self._loaded = True
        logger.info(
            "Vault %s loaded: %d record(s)", self.storage_key, len(self._records),
        )

    async def load(self) -> list[T]:
        """Load the collection from the byte store.

        A missing key is an empty vault. Corrupt or undecryptable data is
        logged, kept in ``corruption`` and loads as an empty list.

        Returns:
            The loaded records.

        Raises:
            VaultLocked: If the vault key is derived per account and no
                account is logged in.
        """
        async with self._lock:
            await self._load()
            return list(self._records)

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self._load()

    # ------------------------------------------------------------------
    # Write path (fail-hard)
    # ------------------------------------------------------------------

    async def _save(self, records: list[T]) -> None:
        payload = serialize_value([record.to_json() for record in records])
        envelope = await self._cipher.encrypt(payload)
        try:
            await self._store.set(self.storage_key, envelope.encode("ascii"))
        except Exception as err:
            raise PersistenceFailure(
                f"Failed to save {self.storage_key}: {err}",
                storage_key=self.storage_key,
            ) from err
        self._records = list(records)
        self._loaded = True
        logger.debug("Vault %s saved: %d record(s)", self.storage_key, len(records))

    async def save(self, records: Iterable[T]) -> None:
        """Persist ``records`` as the whole collection.

        This is the only path that writes the storage key.

        Raises:
            PersistenceFailure: If the byte store did not complete the write.
        """
        async with self._lock:
            await self._save(list(records))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _fields(self, data: RecordData) -> dict[str, Any]:
        """Normalise input (model, attribute names or wire names) to field names."""
        if isinstance(data, VaultRecord):
            return dict(data)
        fields = {}
        for key, value in data.items():
            name = self.record_type.field_name(key)
            if name is not None:
                fields[name] = value
        return fields

    def _label(self, fields: Mapping[str, Any]) -> Optional[str]:
        return fields.get(self.record_type.label_field) or None

    async def add(self, data: RecordData) -> T:
        """Create a record with a fresh id and timestamps.

        Args:
            data: Domain fields; ``id``/``createdAt``/``updatedAt`` are assigned.

        Returns:
            The created record.

        Raises:
            pydantic.ValidationError: If ``data`` lacks required fields.
            PersistenceFailure: If the collection could not be written.
        """
        fields = self._fields(data)
        now = utcnow()
        fields.update(id=new_id(), created_at=now, updated_at=now)
        record = self.record_type.model_validate(fields)
        async with self._lock:
            await self._ensure_loaded()
            await self._save([*self._records, record])
        logger.debug("Vault %s add: id=%s", self.storage_key, record.id)
        await self._audit.add_log(self.added_message.format(label=record.label))
        return record

    async def update(self, record_id: str, data: RecordData) -> Optional[T]:
        """Merge ``data`` into the record with ``record_id``.

        An unknown id leaves the collection unchanged; it is still saved and
        audited.

        Returns:
            The updated record, or None if no record matched.
        """
        changes = self._fields(data)
        for name in self.record_type.immutable_fields:
            changes.pop(name, None)
        changes.pop("updated_at", None)
        updated: Optional[T] = None
        async with self._lock:
            await self._ensure_loaded()
            records = []
            for record in self._records:
                if record.id == record_id:
                    merged = {**dict(record), **changes, "updated_at": utcnow()}
                    record = self.record_type.model_validate(merged)
                    updated = record
                records.append(record)
            await self._save(records)
        if updated is None:
            logger.debug("Vault %s update: no record id=%s", self.storage_key, record_id)
        label = self._label(changes) or (updated.label if updated else "Unknown")
        await self._audit.add_log(self.updated_message.format(label=label))
        return updated

    async def remove(self, record_id: str) -> Optional[T]:
        """Delete the record with ``record_id``.

        Returns:
            The removed record, or None if it was already absent.
        """
        async with self._lock:
            await self._ensure_loaded()
            removed = self.get(record_id)
            await self._save([r for r in self._records if r.id != record_id])
        label = removed.label if removed is not None else "Unknown"
        await self._audit.add_log(self.deleted_message.format(label=label))
        return removed

    async def export_all(self) -> list[T]:
        """Return the decrypted collection for export.

        The returned records are plaintext; protecting them is up to the
        caller from here on.
        """
        async with self._lock:
            await self._ensure_loaded()
            records = list(self._records)
        await self._audit.add_log(self.exported_message)
        return records


class PasswordVault(VaultStore[PasswordRecord]):
    """Website and application logins."""

    record_type = PasswordRecord
    storage_key = PASSWORDS_KEY
    added_message = "Added password entry: {label}"
    updated_message = "Updated password entry: {label}"
    deleted_message = "Deleted password entry: {label}"
    exported_message = "Exported password entries"
    imported_message = "Imported {count} password entries"

    def __init__(self, *args, remap_ids: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.remap_ids = remap_ids

    def _accept(self, candidate: RecordData, now) -> Optional[PasswordRecord]:
        fields = self._fields(candidate)
        if not all(fields.get(name) for name in PasswordRecord.required_fields):
            return None
        fields["id"] = fields.get("id") or new_id()
        fields["created_at"] = fields.get("created_at") or now
        fields["updated_at"] = now
        try:
            return PasswordRecord.model_validate(fields)
        except ValidationError as err:
            logger.warning(
                "Skipping invalid import candidate: %d error(s)", err.error_count(),
            )
            return None

    async def import_many(self, candidates: Iterable[RecordData]) -> int:
        """Append valid candidates to the collection in a single save.

        Candidates need non-empty ``title``, ``username`` and ``password``.
        Supplied ids and ``createdAt`` are kept; ``updatedAt`` is always now.
        With ``remap_ids`` an id already used in the collection (or earlier
        in the batch) is replaced by a fresh one.

        Returns:
            Number of imported records.
        """
        now = utcnow()
        accepted = [
            record for record in (self._accept(c, now) for c in candidates)
            if record is not None
        ]
        async with self._lock:
            await self._ensure_loaded()
            if self.remap_ids:
                seen = {record.id for record in self._records}
                remapped = []
                for record in accepted:
                    if record.id in seen:
                        logger.warning(
                            "Import id collision on %s, assigning a new id", record.id,
                        )
                        record = record.model_copy(update={"id": new_id()})
                    seen.add(record.id)
                    remapped.append(record)
                accepted = remapped
            await self._save([*self._records, *accepted])
        await self._audit.add_log(self.imported_message.format(count=len(accepted)))
        return len(accepted)


class BackupCodeVault(VaultStore[BackupCodeRecord]):
    """Two-factor backup codes."""

    record_type = BackupCodeRecord
    storage_key = BACKUP_CODES_KEY
    added_message = "Added backup codes for: {label}"
    updated_message = "Updated backup codes for: {label}"
    deleted_message = "Deleted backup codes for: {label}"
    exported_message = "Exported backup codes"


class AICredentialVault(VaultStore[AICredentialRecord]):
    """AI service API keys."""

    record_type = AICredentialRecord
    storage_key = AI_CREDENTIALS_KEY
    added_message = "Added AI credential for: {label}"
    updated_message = "Updated AI credential for: {label}"
    deleted_message = "Deleted AI credential for: {label}"
    exported_message = "Exported AI credentials"
