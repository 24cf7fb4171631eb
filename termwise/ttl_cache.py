# --- API DOCUMENTATION for termwise/ttl_cache.py ---
#
# **Purpose:** Time-bounded memoization shared by the suggestion path and the
# command resolution path. Entries are never served once expired; an expired
# entry is dropped and regenerated by the caller.
#
# **Public Classes:**
#
# class CacheEntry:
#     """A cached value plus the monotonic timestamp it was stored at."""
#
# class TTLCache:
#     """Thread-safe TTL cache with optional capacity and oldest-first eviction."""
#
#     def get(self, key): ...
#     def put(self, key, value): ...
#     def get_or_load(self, key, loader): ...
#
# class PathScanCache:
#     """Single-entry cache of the executables found on PATH (30s TTL)."""
#
#     def get_path_commands(self) -> list[str]: ...
#
# class AIResponseCache:
#     """Phrase -> command cache for AI translations (5 minute TTL, 100 entries)."""
#
#     def get(self, phrase: str) -> Optional[str]: ...
#     def put(self, phrase: str, command: str): ...
#
# **Key Global Constants/Variables:**
# - DEFAULT_PATH_TTL_SECONDS, DEFAULT_AI_TTL_SECONDS, DEFAULT_AI_MAX_ENTRIES
#
# --- END API DOCUMENTATION ---

import os
import time
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_PATH_TTL_SECONDS = 30
DEFAULT_AI_TTL_SECONDS = 300
DEFAULT_AI_MAX_ENTRIES = 100

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    created_at: float

    def is_valid(self, now: float, ttl: float) -> bool:
        return now - self.created_at < ttl


class TTLCache:
    """Thread-safe TTL cache.

    Reads and writes go through one lock; `get_or_load` additionally holds a
    per-key lock while the loader runs so that concurrent callers for the same
    key wait for a single load instead of starting their own.
    """

    def __init__(self, ttl_seconds: float, max_entries: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic, name: str = "cache"):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.name = name
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._key_locks: dict = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        """Returns the cached value for key, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_valid(self._clock(), self.ttl_seconds):
                del self._entries[key]
                logger.debug(f"{self.name}: entry for {key!r} expired and was dropped.")
                return None
            return entry.value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            self._entries[key] = CacheEntry(value=value, created_at=self._clock())
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted_key, _ = self._entries.popitem(last=False)
                    logger.debug(f"{self.name}: evicted oldest entry {evicted_key!r}.")

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._lock:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = self._key_locks[key] = threading.Lock()
            return key_lock

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Returns the valid cached value for key, running loader at most once concurrently."""
        value = self.get(key)
        if value is not None:
            return value
        key_lock = self._lock_for(key)
        with key_lock:
            try:
                # Another thread may have loaded it while we waited.
                value = self.get(key)
                if value is not None:
                    return value
                value = loader()
                self.put(key, value)
                return value
            finally:
                self._release_lock_for(key, key_lock)

    def _release_lock_for(self, key: Hashable, key_lock: threading.Lock) -> None:
        # Threads already waiting hold their own reference to key_lock.
        with self._lock:
            if self._key_locks.get(key) is key_lock:
                del self._key_locks[key]


class PathScanCache:
    """Memoizes the PATH executable scan for a limited time.

    The single entry is keyed by the PATH value itself, so a changed
    environment forces a rescan even inside the TTL window.
    """

    def __init__(self, scanner: Callable[[str], List[str]], ttl_seconds: float = DEFAULT_PATH_TTL_SECONDS,
                 path_getter: Optional[Callable[[], str]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._scanner = scanner
        self._path_getter = path_getter or (lambda: os.environ.get("PATH", ""))
        self._cache = TTLCache(ttl_seconds, max_entries=1, clock=clock, name="path-scan-cache")

    def get_path_commands(self) -> List[str]:
        path_value = self._path_getter()
        return self._cache.get_or_load(path_value, lambda: self._scan(path_value))

    def _scan(self, path_value: str) -> List[str]:
        start = time.perf_counter()
        names = list(dict.fromkeys(self._scanner(path_value)))
        logger.info(f"PATH rescan found {len(names)} executables in {(time.perf_counter() - start) * 1000:.1f}ms.")
        return names


def normalize_phrase(phrase: str) -> str:
    """Cache key for a phrase: lowercased, surrounding whitespace removed, inner runs collapsed."""
    return " ".join(phrase.lower().split())


class AIResponseCache:
    def __init__(self, ttl_seconds: float = DEFAULT_AI_TTL_SECONDS,
                 max_entries: int = DEFAULT_AI_MAX_ENTRIES,
                 clock: Callable[[], float] = time.monotonic):
        self._cache = TTLCache(ttl_seconds, max_entries=max_entries, clock=clock, name="ai-response-cache")

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, phrase: str) -> Optional[str]:
        return self._cache.get(normalize_phrase(phrase))

    def put(self, phrase: str, command: str) -> None:
        self._cache.put(normalize_phrase(phrase), command)
