"""
Byte stores — the persistent key → blob map underneath the vault.

The vault only needs ``get``/``set``/``delete`` on string keys. Three
implementations are provided:

- ``MemoryStore``: process memory, for tests and throw-away sessions.
- ``FileStore``: one file per key in a directory; writes are atomic
  (temp file + ``os.replace``).
- ``RedisStore``: adapter over an asyncio Redis client.
"""
import os
import asyncio
import logging
from pathlib import Path
from urllib.parse import quote
from typing import Any, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger("securepass.storage")


@runtime_checkable
class ByteStore(Protocol):
    """Minimal async key-value blob store."""

    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class MemoryStore:
    """Dict-backed store."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._data: dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"MemoryStore values must be bytes, got {type(value).__name__}")
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class FileStore:
    """Directory-backed store, one file per key.

    Key names are percent-encoded into file names, so distinct keys never
    share a file; ``@`` is kept so account keys stay readable. Files are
    created with mode 0600 inside a 0700 directory.
    """

    suffix = ".blob"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()

    @classmethod
    def from_config(cls, config: Any) -> "FileStore":
        from .conf import DEFAULT_DATA_DIR
        return cls(config.data_dir or DEFAULT_DATA_DIR)

    def path_for(self, key: str) -> Path:
        if not key:
            raise ValueError("Storage key cannot be empty")
        name = quote(key, safe="@+")
        return self.directory / f"{name}{self.suffix}"

    def _read(self, path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: bytes) -> None:
        self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        # Write to a temp file first, then rename for atomicity
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except Exception:
            # Clean up temp file on failure
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    async def get(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read, self.path_for(key))

    async def set(self, key: str, value: bytes) -> None:
        await asyncio.to_thread(self._write, self.path_for(key), bytes(value))
        logger.debug("FileStore wrote key=%s", key)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, self.path_for(key))


class RedisStore:
    """Adapter over an asyncio Redis client (``redis.asyncio.Redis`` or compatible).

    Args:
        redis: Client exposing awaitable ``get``, ``set`` and ``delete``.
        prefix: Optional namespace prepended to every key.
    """

    def __init__(self, redis: Any, prefix: str = ""):
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[bytes]:
        value = await self._redis.get(self._key(key))
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def set(self, key: str, value: bytes) -> None:
        await self._redis.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))
