"""
AuditLog — Append-only, size-bounded ledger of vault operations.

The ledger is stored in plaintext under ``securepass_audit_log``: entries hold
action descriptions and record labels, never secrets.
"""
import asyncio
import logging
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from ..conf import AUDIT_LOG_KEY, MAX_AUDIT_ENTRIES
from ..exceptions import PersistenceFailure, ReadCorruption
from ..storage import ByteStore
from .crypto import deserialize_value
from .records import AuditEntry

logger = logging.getLogger("securepass.audit")

_LEDGER = TypeAdapter(list[AuditEntry])


class AuditLog:
    """Audit ledger persisted in a byte store.

    Reads fail soft (an unreadable ledger loads as empty); writes fail hard
    with ``PersistenceFailure``.
    """

    def __init__(
        self,
        store: ByteStore,
        max_entries: int = MAX_AUDIT_ENTRIES,
        storage_key: str = AUDIT_LOG_KEY,
    ):
        self._store = store
        self._key = storage_key
        self.max_entries = max_entries
        self._entries: list[AuditEntry] = []
        self._loaded = False
        self._lock = asyncio.Lock()
        self.corruption: Optional[ReadCorruption] = None

    @property
    def entries(self) -> tuple[AuditEntry, ...]:
        return tuple(self._entries)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._entries)

    async def _read(self) -> list[AuditEntry]:
        raw = await self._store.get(self._key)
        if raw is None:
            return []
        try:
            data = deserialize_value(raw)
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
            return _LEDGER.validate_python(data)
        except (ValueError, TypeError, ValidationError) as err:
            raise ReadCorruption(
                f"Unreadable audit log: {err}", storage_key=self._key,
            ) from err

    async def _load(self) -> None:
        try:
            self._entries = await self._read()
            self.corruption = None
        except ReadCorruption as err:
            logger.error("Failed to load audit logs: %s", err)
            self.corruption = err
            self._entries = []
        self._loaded = True

    async def load(self) -> list[AuditEntry]:
        """Read the ledger, defaulting to empty on any read/parse failure."""
        async with self._lock:
            await self._load()
            return list(self._entries)

    async def _save(self, entries: list[AuditEntry]) -> None:
        # Keep only the most recent entries
        trimmed = entries[-self.max_entries:]
        payload = _LEDGER.dump_json(trimmed, by_alias=True, exclude_none=True)
        try:
            await self._store.set(self._key, payload)
        except Exception as err:
            raise PersistenceFailure(
                f"Failed to save audit logs: {err}", storage_key=self._key,
            ) from err
        self._entries = trimmed

    async def add_log(self, action: str, details: Optional[str] = None) -> AuditEntry:
        """Append an entry and persist the (trimmed) ledger.

        Raises:
            PersistenceFailure: If the ledger could not be written.
        """
        entry = AuditEntry(action=action, details=details)
        async with self._lock:
            if not self._loaded:
                await self._load()
            await self._save([*self._entries, entry])
        logger.debug("Audit: %s", action)
        return entry

    async def clear(self) -> None:
        """Remove the ledger entirely."""
        async with self._lock:
            try:
                await self._store.delete(self._key)
            except Exception as err:
                raise PersistenceFailure(
                    f"Failed to clear audit logs: {err}", storage_key=self._key,
                ) from err
            self._entries = []
            self._loaded = True
        logger.info("Audit log cleared")
