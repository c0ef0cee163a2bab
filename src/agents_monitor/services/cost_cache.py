"""Persistent JSON cache of per-log token/cost summaries."""

import logging
import os
import tempfile
import threading
from pathlib import Path

import orjson

from agents_monitor.types import CostCacheEntry, SessionTokenSummary

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = Path.home() / ".claude" / "agents-monitor" / "token-cost-cache.json"


class CostCache:
    """Caches session summaries keyed by log path, valid while the log's mtime is unchanged.

    All access is serialized, so a clear() can't interleave with a store()
    from the background cost worker. store() only updates memory; call
    persist() to write the document.
    """

    def __init__(self, cache_path: str | Path | None = None):
        self._cache_path = Path(cache_path) if cache_path else DEFAULT_CACHE_PATH
        self._entries: dict[str, CostCacheEntry] = {}
        self._lock = threading.RLock()

    @property
    def cache_path(self) -> Path:
        return self._cache_path

    def load(self):
        """Replace the in-memory map with the on-disk document.

        A missing document means an empty cache. A corrupt document, or
        corrupt entries within it, are discarded with a warning.
        """
        with self._lock:
            self._entries = {}
            try:
                raw = self._cache_path.read_bytes()
            except FileNotFoundError:
                return
            except OSError as e:
                logger.warning("Cannot read cost cache %s: %s", self._cache_path, e)
                return

            try:
                data = orjson.loads(raw)
            except orjson.JSONDecodeError as e:
                logger.warning("Corrupt cost cache %s, starting empty: %s", self._cache_path, e)
                return
            if not isinstance(data, dict):
                logger.warning("Corrupt cost cache %s, starting empty: root is not an object", self._cache_path)
                return

            for path, value in data.items():
                try:
                    self._entries[path] = CostCacheEntry.from_dict(value)
                except ValueError as e:
                    logger.warning("Dropping corrupt cost cache entry for %s: %s", path, e)
            logger.debug("Loaded %d cost cache entries from %s", len(self._entries), self._cache_path)

    def lookup(self, path: str, mtime: int) -> SessionTokenSummary | None:
        """The cached summary for ``path``, only if it was stored for exactly ``mtime``."""
        with self._lock:
            entry = self._entries.get(path)
        if entry is None or entry.mtime != mtime:
            return None
        return entry.summary

    def store(self, path: str, mtime: int, summary: SessionTokenSummary):
        with self._lock:
            self._entries[path] = CostCacheEntry(mtime=mtime, summary=summary)

    def remove(self, path: str):
        with self._lock:
            self._entries.pop(path, None)

    def persist(self) -> bool:
        """Atomically rewrite the on-disk document. Failures are logged, not raised."""
        with self._lock:
            document = {path: entry.to_dict() for path, entry in self._entries.items()}
            try:
                self._cache_path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    prefix=".token-cost-cache-", suffix=".tmp", dir=self._cache_path.parent,
                )
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(orjson.dumps(document, option=orjson.OPT_INDENT_2))
                    os.replace(tmp_path, self._cache_path)
                except BaseException:
                    Path(tmp_path).unlink(missing_ok=True)
                    raise
            except OSError as e:
                logger.warning("Failed to persist cost cache to %s: %s", self._cache_path, e)
                return False
        return True

    def clear(self):
        """Drop every entry and delete the on-disk document."""
        with self._lock:
            self._entries.clear()
            try:
                self._cache_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to delete cost cache %s: %s", self._cache_path, e)

    def paths(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries
