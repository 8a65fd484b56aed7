"""
Response Cache Module

Content-addressed in-memory cache of successful responses with expiry and
hit accounting.
"""

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ai_orchestrator.domain.monitoring import CacheStats
from ai_orchestrator.domain.request import AIRequest, GenerationParameters
from ai_orchestrator.domain.response import AIResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
CACHE_KEY_PREFIX = "claude_"


def fingerprint(request: AIRequest, parameters: Optional[GenerationParameters] = None) -> str:
    """
    Deterministic fingerprint of a request

    Covers request type, prompt, parameters and resource id. Keys are sorted
    before hashing, so construction order does not affect the result.

    Args:
        request: Request to fingerprint
        parameters: Parameters actually sent (defaults resolved); request.parameters when omitted
    """
    parameters = parameters if parameters is not None else request.parameters
    key_data = {
        "type": request.type.value,
        "prompt": request.prompt,
        "parameters": parameters.model_dump(mode="json"),
        "resource_id": request.resource_id,
    }
    canonical = json.dumps(key_data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


@dataclass
class CacheEntry:
    """
    Cache Entry

    Usable only while now < expires_at and is_valid; any other state is
    equivalent to absence.
    """

    key: str
    response: AIResponse
    created_at: float
    expires_at: float
    last_accessed: float
    hit_count: int = 0
    is_valid: bool = True

    def is_usable(self, now: float) -> bool:
        return self.is_valid and now < self.expires_at


class ResponseCache:
    """
    In-memory Response Cache

    Writes replace the whole entry for a key. Lookups evict unusable entries
    lazily and return a fresh copy so the stored response is never mutated.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def lookup(self, key: str) -> Optional[AIResponse]:
        """
        Look up a cached response

        Returns:
            Optional[AIResponse]: Copy of the stored response, or None on miss
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_usable(now):
                if entry is not None:
                    del self._entries[key]
                    logger.debug("Evicted unusable cache entry: key=%s", key)
                self._misses += 1
                return None

            entry.hit_count += 1
            entry.last_accessed = now
            self._hits += 1
            return entry.response.model_copy(deep=True)

    def store(self, key: str, response: AIResponse, ttl_seconds: Optional[int] = None) -> None:
        """Replace any entry under key; hit count restarts at zero"""
        now = self._clock()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        entry = CacheEntry(
            key=key,
            response=response.model_copy(deep=True),
            created_at=now,
            expires_at=now + ttl,
            last_accessed=now,
        )
        with self._lock:
            self._entries[key] = entry

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Raw entry access for observability; does not count as a lookup"""
        with self._lock:
            return self._entries.get(key)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.is_valid = False
            return True

    def purge_expired(self) -> int:
        """
        Remove every unusable entry

        Returns:
            int: Number of removed entries
        """
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if not e.is_usable(now)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / lookups if lookups else 0.0,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
