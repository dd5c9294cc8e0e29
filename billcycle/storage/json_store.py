"""JSON document store on the local filesystem.

Documents are addressed by path-like keys (``months/2025-01.json``) relative
to a base directory. Writes and deletes to the same key are applied one at a
time in the order they were issued; different keys proceed in parallel.
File I/O runs in worker threads so the event loop only suspends at I/O.
"""

import asyncio
import json
import os
from pathlib import Path, PurePosixPath
from typing import Any

import structlog

from billcycle.core.exceptions import StorageIOError
from billcycle.storage.locks import KeyedMutex

logger = structlog.get_logger()

_TMP_SUFFIX = ".tmp"


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def _write_json_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + _TMP_SUFFIX)
    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def _delete(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def _list_files(root: Path) -> list[Path]:
    if not root.is_dir():
        return []
    return [p for p in root.rglob("*") if p.is_file() and not p.name.endswith(_TMP_SUFFIX)]


class JsonStore:
    """Async key-value store of JSON documents.

    Guarantees:
        - For one key, write/delete calls run in issue order, one at a time.
        - A read issued after a write has completed observes that write.
        - A failed write or delete does not block later operations on the key.
        - ``read`` returns None for missing or malformed documents.
    """

    def __init__(self, base_path: Path | str) -> None:
        """Initialize the store.

        Args:
            base_path: Directory that holds all documents. Created lazily.
        """
        self.base_path = Path(base_path)
        self._locks = KeyedMutex()

    @property
    def pending_writes(self) -> int:
        """Keys with a write or delete in flight or queued."""
        return self._locks.pending_keys

    def _resolve(self, key: str) -> Path:
        parts = PurePosixPath(key.lstrip("/")).parts
        if not parts or any(part in ("..", ".") for part in parts):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.base_path.joinpath(*parts)

    def _key_for(self, path: Path) -> str:
        return path.relative_to(self.base_path).as_posix()

    async def read(self, key: str) -> Any | None:
        """Read a document.

        Returns:
            Parsed JSON, or None when the key is missing or its content is
            not valid JSON.

        Raises:
            StorageIOError: For other I/O failures (e.g. permissions).
        """
        path = self._resolve(key)
        try:
            return await asyncio.to_thread(_read_json, path)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("document_malformed", key=key, error=str(e))
            return None
        except OSError as e:
            raise StorageIOError(f"Failed to read {key}: {e}", key=key) from e

    async def write(self, key: str, value: Any) -> None:
        """Write a document, replacing any previous content atomically.

        Raises:
            StorageIOError: If the document could not be written.
        """
        path = self._resolve(key)
        content = json.dumps(value, indent=2, ensure_ascii=False)
        async with self._locks.hold(str(path)):
            try:
                await asyncio.to_thread(_write_json_atomic, path, content)
            except OSError as e:
                logger.error("document_write_failed", key=key, error=str(e))
                raise StorageIOError(f"Failed to write {key}: {e}", key=key) from e
        logger.debug("document_written", key=key, size=len(content))

    async def delete(self, key: str) -> bool:
        """Delete a document.

        Returns:
            True if a document was removed, False if it did not exist.

        Raises:
            StorageIOError: If the document exists but could not be removed.
        """
        path = self._resolve(key)
        async with self._locks.hold(str(path)):
            try:
                removed = await asyncio.to_thread(_delete, path)
            except OSError as e:
                logger.error("document_delete_failed", key=key, error=str(e))
                raise StorageIOError(f"Failed to delete {key}: {e}", key=key) from e
        if removed:
            logger.debug("document_deleted", key=key)
        return removed

    async def exists(self, key: str) -> bool:
        path = self._resolve(key)
        return await asyncio.to_thread(path.is_file)

    async def list_keys(self, prefix: str = "") -> list[str]:
        """Keys starting with ``prefix``, sorted.

        Args:
            prefix: Key prefix such as ``"months/"``. Empty lists everything.
        """
        prefix = prefix.lstrip("/")
        directory = prefix.rsplit("/", 1)[0] if "/" in prefix else ""
        root = self._resolve(directory) if directory else self.base_path
        try:
            files = await asyncio.to_thread(_list_files, root)
        except OSError as e:
            raise StorageIOError(f"Failed to list {prefix or '/'}: {e}", key=prefix) from e
        keys = (self._key_for(p) for p in files)
        return sorted(k for k in keys if k.startswith(prefix))
