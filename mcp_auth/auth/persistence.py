"""Best-effort durability for the OAuth stores.

Stores call a :class:`DurabilityHook` after every mutation with a snapshot of
their collection. The in-memory state stays the source of truth: a hook
failure is logged and never changes the result of the store operation.
"""

import json
import logging
import os
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Protocol

from mcp_auth.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

COLLECTIONS = ("clients", "codes", "tokens")


class DurabilityHook(Protocol):
    """Receives the full record map of a collection after each mutation."""

    def persist(self, collection: str, records: dict[str, dict[str, Any]]) -> None:
        ...

    def load(self, collection: str) -> dict[str, dict[str, Any]]:
        ...


class NullDurabilityHook:
    """Hook used when persistence is disabled."""

    def persist(self, collection: str, records: dict[str, dict[str, Any]]) -> None:
        return None

    def load(self, collection: str) -> dict[str, dict[str, Any]]:
        return {}


class FileDurabilityHook:
    """Mirror each collection to ``<storage_dir>/<collection>.json``.

    Writes run on a single background worker, so they never block the
    request path and are applied in mutation order. Each write replaces the
    file atomically.
    """

    def __init__(self, storage_dir: str | Path) -> None:
        self._storage_dir = Path(storage_dir)
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="oauth-persist"
        )
        logger.info("Initialized file persistence at %s", self._storage_dir)

    def _get_file_path(self, collection: str) -> Path:
        if collection not in COLLECTIONS:
            msg = f"Unknown collection: {collection}"
            raise PersistenceError(msg)
        return self._storage_dir / f"{collection}.json"

    def persist(self, collection: str, records: dict[str, dict[str, Any]]) -> None:
        """Schedule a write of ``records``; returns immediately."""
        future = self._executor.submit(self._write, collection, records)
        future.add_done_callback(
            lambda f: self._log_failure(collection, f),
        )

    def load(self, collection: str) -> dict[str, dict[str, Any]]:
        """Read a collection back; missing or unreadable files load as empty."""
        file_path = self._get_file_path(collection)
        if not file_path.exists():
            return {}
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to load %s from %s: %s", collection, file_path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed %s file %s", collection, file_path)
            return {}
        return data

    def flush(self) -> None:
        """Block until every scheduled write has been attempted."""
        self._executor.submit(lambda: None).result()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _write(self, collection: str, records: dict[str, dict[str, Any]]) -> None:
        file_path = self._get_file_path(collection)
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._storage_dir, prefix=f".{collection}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=2)
            os.replace(tmp_name, file_path)
        except OSError as e:
            msg = f"Failed to write {collection} to {file_path}: {e}"
            raise PersistenceError(msg) from e

    @staticmethod
    def _log_failure(collection: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Persistence of %s failed: %s", collection, exc)
