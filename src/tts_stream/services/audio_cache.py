"""In-memory cache for synthesized audio keyed by text and voice settings."""

from __future__ import annotations

import hashlib
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import AsyncIterator, Callable

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    data: bytes
    expires_at: float


class AudioCache:
    """LRU cache of audio payloads with a time-to-live per entry.

    A ``max_entries`` of zero disables caching entirely.
    """

    def __init__(
        self,
        max_entries: int = 128,
        ttl_seconds: float = 7 * 24 * 3600,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max(0, max_entries)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self.max_entries > 0

    @staticmethod
    def key_for(text: str, voice: str, speed: float, response_format: str) -> str:
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:32]
        return f"tts_{digest}_{voice}_{speed:g}_{response_format}"

    def get(self, key: str) -> bytes | None:
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            self._misses += 1
            return None

        self._hits += 1
        self._entries.move_to_end(key)
        return entry.data

    def put(self, key: str, data: bytes) -> None:
        if not self.enabled or not data:
            return

        self._entries[key] = CacheEntry(
            data=data,
            expires_at=self._clock() + self.ttl_seconds,
        )
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cached audio {evicted}")

    async def capture(self, key: str, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Yield ``chunks`` unchanged and cache them once the stream completes.

        Closing this iterator early closes ``chunks`` as well, so the upstream
        response is released without waiting for garbage collection. Nothing
        is collected while the cache is disabled.
        """
        collected = bytearray()
        try:
            async for chunk in chunks:
                if self.enabled:
                    collected.extend(chunk)
                yield chunk
            self.put(key, bytes(collected))
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Purged {len(expired)} expired audio cache entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["AudioCache", "CacheEntry"]
