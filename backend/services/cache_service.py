"""
cache_service.py — AI response cache
In-memory cache keyed by SHA-256 of (system instruction + prompt + model),
with per-entry TTL and hit-rate statistics.
"""

import hashlib
import time


class ResponseCache:
    """In-memory AI response cache with TTL."""

    def __init__(self, clock=time.monotonic):
        # hash -> {text, stored_at, ttl}
        self._cache: dict[str, dict] = {}
        self._clock = clock
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _hash(system_instruction: str, prompt: str, model: str) -> str:
        raw = f"{system_instruction}||{prompt}||{model}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def get(self, system_instruction: str, prompt: str, model: str) -> str | None:
        """Cached text, or None on miss / expiry."""
        key = self._hash(system_instruction, prompt, model)
        entry = self._cache.get(key)
        if entry is None or self._clock() - entry["stored_at"] > entry["ttl"]:
            self._cache.pop(key, None)
            self._misses += 1
            return None
        self._hits += 1
        return entry["text"]

    def set(self, system_instruction: str, prompt: str, model: str, text: str, ttl_seconds: int):
        """ttl_seconds <= 0 means don't cache."""
        if ttl_seconds <= 0:
            return
        key = self._hash(system_instruction, prompt, model)
        self._cache[key] = {"text": text, "stored_at": self._clock(), "ttl": ttl_seconds}

    def clear(self):
        self._cache.clear()

    def get_stats(self) -> dict:
        lookups = self._hits + self._misses
        return {
            "total_entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
        }
