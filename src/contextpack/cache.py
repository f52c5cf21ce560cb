"""Explicitly scoped cache of assembled context results."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .records import ContextResult, FileHandle

__all__ = ["ContextCache", "make_cache_key"]

LOGGER = logging.getLogger(__name__)

Fingerprint = tuple[int, int] | None


def make_cache_key(root: Path, paths: Sequence[str], options: Mapping[str, Any]) -> str:
    """Digest of the workspace root, sorted candidate paths and options."""
    payload = {
        "root": Path(root).as_posix(),
        "paths": sorted(paths),
        "options": options,
    }
    encoded = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _fingerprint(path: Path) -> Fingerprint:
    try:
        stats = path.stat()
    except OSError:
        return None
    return (stats.st_mtime_ns, stats.st_size)


def _copy_result(result: ContextResult) -> ContextResult:
    return replace(
        result,
        files=list(result.files),
        sections=[dict(section) for section in result.sections],
    )


@dataclass(slots=True)
class _CacheEntry:
    result: ContextResult
    fingerprints: dict[str, Fingerprint]
    created_at: float


class ContextCache:
    """TTL and size bounded cache; entries go stale when a file changes.

    Lifetime is explicit: construct, ``get``/``put``, ``clear``.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 300.0,
        max_entries: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> ContextResult | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._is_stale(entry):
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return _copy_result(entry.result)

    def put(self, key: str, result: ContextResult, files: Sequence[FileHandle]) -> None:
        fingerprints = {handle.path.as_posix(): _fingerprint(handle.path) for handle in files}
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self._max_entries:
                oldest = min(self._entries, key=lambda name: self._entries[name].created_at)
                del self._entries[oldest]
                LOGGER.debug("Evicted oldest context cache entry")
            self._entries[key] = _CacheEntry(_copy_result(result), fingerprints, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"hits": self._hits, "misses": self._misses, "size": len(self._entries)}

    def _is_stale(self, entry: _CacheEntry) -> bool:
        if self._clock() - entry.created_at > self._ttl:
            return True
        for path, fingerprint in entry.fingerprints.items():
            if _fingerprint(Path(path)) != fingerprint:
                LOGGER.debug("Cached context invalidated: %s changed", path)
                return True
        return False
