"""
Persistence gateway: opaque async key-value get/set/remove.

Values are JSON-encoded on the way in and decoded on the way out. Every
backend failure is logged and degraded to ``None`` (reads) or ``False``
(writes); the stores never see an exception from here.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Protocol, Union, runtime_checkable

import anyio
from anyio.abc import TaskGroup
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.exceptions import StorageError
from domain.enums import StorageKey
from repositories.kv_repository import KeyValueRepository

logger = logging.getLogger("ordering.storage")

Key = Union[StorageKey, str]


def _key_name(key: Key) -> str:
    return key.value if isinstance(key, StorageKey) else str(key)


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Value is not JSON-serializable: {e}", key=key) from e


def _decode(key: str, raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise StorageError(f"Stored value is not valid JSON: {e}", key=key) from e


@runtime_checkable
class PersistenceGateway(Protocol):
    """Async key-value persistence used by the cart and rewards stores."""

    async def get(self, key: Key) -> Any:
        ...

    async def set(self, key: Key, value: Any) -> bool:
        ...

    async def remove(self, key: Key) -> bool:
        ...


@runtime_checkable
class PersistenceScheduler(Protocol):
    """Runs a persistence coroutine detached from the caller."""

    def schedule(self, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        ...


class TaskGroupScheduler:
    """Detaches persistence writes onto an anyio task group.

    Writes never block the caller. A failing write is logged and dropped so
    it cannot cancel the rest of the session's task group.
    """

    def __init__(self, task_group: TaskGroup):
        self._task_group = task_group

    def schedule(self, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        self._task_group.start_soon(self._guarded, func, args)

    @staticmethod
    async def _guarded(func: Callable[..., Awaitable[Any]], args: tuple) -> None:
        try:
            await func(*args)
        except Exception:
            logger.exception("Detached persistence task failed func=%s", getattr(func, "__name__", func))


class SqlPersistenceGateway:
    """Gateway backed by the kv_entry table through SQLAlchemy.

    Blocking repository calls run in a worker thread via anyio; writes are
    serialized by a lock so detached writes land in the order they were
    scheduled.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._lock: Optional[anyio.Lock] = None

    def _write_lock(self) -> anyio.Lock:
        if self._lock is None:
            self._lock = anyio.Lock()
        return self._lock

    def _session(self) -> Session:
        return self._session_factory()

    # --- blocking helpers (run in a worker thread) ---

    def _read(self, key: str) -> Any:
        try:
            with self._session() as db:
                raw = KeyValueRepository(db).get_value(key)
        except SQLAlchemyError as e:
            raise StorageError(f"Read failed: {e}", key=key) from e
        return _decode(key, raw)

    def _read_many(self, keys: list) -> Dict[str, Any]:
        try:
            with self._session() as db:
                raw_values = KeyValueRepository(db).get_values(keys)
        except SQLAlchemyError as e:
            raise StorageError(f"Read failed: {e}") from e
        return {key: _decode(key, raw) for key, raw in raw_values.items()}

    def _write(self, key: str, encoded: str) -> None:
        try:
            with self._session() as db:
                KeyValueRepository(db).upsert(key, encoded)
        except SQLAlchemyError as e:
            raise StorageError(f"Write failed: {e}", key=key) from e

    def _delete(self, keys: list) -> int:
        try:
            with self._session() as db:
                return KeyValueRepository(db).delete_many(keys)
        except SQLAlchemyError as e:
            raise StorageError(f"Delete failed: {e}") from e

    # --- async gateway API ---

    async def get(self, key: Key) -> Any:
        name = _key_name(key)
        try:
            return await anyio.to_thread.run_sync(self._read, name)
        except StorageError as e:
            logger.error(f"Storage get error: {e}")
            return None

    async def set(self, key: Key, value: Any) -> bool:
        name = _key_name(key)
        try:
            encoded = _encode(name, value)
            async with self._write_lock():
                await anyio.to_thread.run_sync(self._write, name, encoded)
        except StorageError as e:
            logger.error(f"Storage set error: {e}")
            return False
        logger.debug("Stored key=%s bytes=%d", name, len(encoded))
        return True

    async def remove(self, key: Key) -> bool:
        name = _key_name(key)
        try:
            async with self._write_lock():
                await anyio.to_thread.run_sync(self._delete, [name])
        except StorageError as e:
            logger.error(f"Storage remove error: {e}")
            return False
        return True

    async def clear(self) -> bool:
        """Remove every key owned by the ordering engine"""
        try:
            async with self._write_lock():
                removed = await anyio.to_thread.run_sync(
                    self._delete, [k.value for k in StorageKey]
                )
        except StorageError as e:
            logger.error(f"Storage clear error: {e}")
            return False
        logger.info("Storage cleared removed=%d", removed)
        return True

    async def get_multiple(self, keys: Iterable[Key]) -> Dict[str, Any]:
        """Read several keys at once; missing keys are left out of the result"""
        names = [_key_name(k) for k in keys]
        try:
            return await anyio.to_thread.run_sync(self._read_many, names)
        except StorageError as e:
            logger.error(f"Storage get_multiple error: {e}")
            return {}


class InMemoryPersistenceGateway:
    """Dict-backed gateway. Values are kept JSON-encoded, like the SQL backend."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.data[_key_name(key)] = json.dumps(value)

    async def get(self, key: Key) -> Any:
        name = _key_name(key)
        try:
            return _decode(name, self.data.get(name))
        except StorageError as e:
            logger.error(f"Storage get error: {e}")
            return None

    async def set(self, key: Key, value: Any) -> bool:
        name = _key_name(key)
        try:
            self.data[name] = _encode(name, value)
        except StorageError as e:
            logger.error(f"Storage set error: {e}")
            return False
        return True

    async def remove(self, key: Key) -> bool:
        self.data.pop(_key_name(key), None)
        return True

    async def clear(self) -> bool:
        for key in StorageKey:
            self.data.pop(key.value, None)
        return True

    async def get_multiple(self, keys: Iterable[Key]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key in keys:
            value = await self.get(key)
            if value is not None:
                result[_key_name(key)] = value
        return result
