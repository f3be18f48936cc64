"""
Key-value store backends for session and link state.

The gateway facade is the only writer. Values must be JSON serializable.

Backends:
- InMemoryStore: process-local dict
- JsonFileStore: single JSON document on disk, rewritten on every mutation
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from aiofiles import open as aio_open

from ..config import StoreSettings, get_settings
from .exceptions import StoreError

logger = structlog.get_logger(__name__)


class KeyValueStore:
    """Async key-value store interface."""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def put(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        """Delete key, returning True if it existed."""
        raise NotImplementedError

    async def keys(self, prefix: str = "") -> List[str]:
        raise NotImplementedError

    def namespaced(self, namespace: str) -> "KeyValueStore":
        """View of this store with every key prefixed by namespace."""
        return NamespacedStore(self, namespace)


class InMemoryStore(KeyValueStore):
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def put(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]


class JsonFileStore(InMemoryStore):
    """
    JSON document store.

    Loads the document lazily on first access and rewrites it atomically
    (temp file + rename) after every mutation.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._loaded = False

        logger.info("JSON file store initialized", path=str(self.path))

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if self.path.exists():
            try:
                async with aio_open(self.path, 'r') as f:
                    raw = await f.read()
                self._data = json.loads(raw) if raw.strip() else {}
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Error loading store document", path=str(self.path), error=str(e))
                raise StoreError("Error loading store document", details={"path": str(self.path)})
        self._loaded = True

    async def _flush(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aio_open(tmp_path, 'w') as f:
                await f.write(json.dumps(data))
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error("Error writing store document", path=str(self.path), error=str(e))
            raise StoreError("Error writing store document", details={"path": str(self.path)})

    async def _commit(self, data: Dict[str, Any]) -> None:
        """Write data to disk, then make it the in-memory view."""
        await self._flush(data)
        self._data = data

    async def get(self, key: str) -> Optional[Any]:
        await self._ensure_loaded()
        return await super().get(key)

    async def put(self, key: str, value: Any) -> None:
        await self._ensure_loaded()
        data = dict(self._data)
        data[key] = copy.deepcopy(value)
        await self._commit(data)

    async def delete(self, key: str) -> bool:
        await self._ensure_loaded()
        if key not in self._data:
            return False
        data = dict(self._data)
        del data[key]
        await self._commit(data)
        return True

    async def keys(self, prefix: str = "") -> List[str]:
        await self._ensure_loaded()
        return await super().keys(prefix)


class NamespacedStore(KeyValueStore):
    """Prefixes every key so several partitions can share one backend."""

    def __init__(self, inner: KeyValueStore, namespace: str) -> None:
        self.inner = inner
        self.prefix = f"{namespace}:" if namespace else ""

    async def get(self, key: str) -> Optional[Any]:
        return await self.inner.get(self.prefix + key)

    async def put(self, key: str, value: Any) -> None:
        await self.inner.put(self.prefix + key, value)

    async def delete(self, key: str) -> bool:
        return await self.inner.delete(self.prefix + key)

    async def keys(self, prefix: str = "") -> List[str]:
        full = await self.inner.keys(self.prefix + prefix)
        return [key[len(self.prefix):] for key in full]


def create_store(settings: StoreSettings) -> KeyValueStore:
    """Build the configured store backend."""
    if settings.backend == "file":
        return JsonFileStore(settings.path)
    return InMemoryStore()


# Global store instance
_store: Optional[KeyValueStore] = None


def get_store() -> KeyValueStore:
    """Get or create global store instance."""
    global _store

    if _store is None:
        settings = get_settings()
        _store = create_store(settings.store)
        logger.info("Key-value store created", backend=settings.store.backend)

    return _store
