"""
key_manager.py — Gemini API key rotation
Round-robin over the configured keys, skipping keys that hit their quota.
Exhaustion flags reset when the day rolls over.
"""

import logging
from datetime import date, datetime, timezone

from config import GEMINI_API_KEYS

logger = logging.getLogger(__name__)


class KeyManager:
    """Round-robin API key rotation with exhaustion tracking."""

    def __init__(self, keys: list[str] | None = None):
        raw_keys = GEMINI_API_KEYS if keys is None else keys
        self.keys: list[dict] = [
            {"key": k, "is_exhausted": False, "requests_today": 0, "last_used": None}
            for k in raw_keys
        ]
        self._current_index = 0
        self._last_reset: date = date.today()

    def __len__(self) -> int:
        return len(self.keys)

    # ------------------------------------------------------------------
    def _maybe_reset(self):
        today = date.today()
        if today != self._last_reset:
            self.reset_daily()
            self._last_reset = today

    def get_next_key(self) -> str | None:
        """Next non-exhausted key, or None when every key is exhausted or none exist."""
        self._maybe_reset()
        total = len(self.keys)
        for offset in range(total):
            idx = (self._current_index + offset) % total
            entry = self.keys[idx]
            if not entry["is_exhausted"]:
                entry["requests_today"] += 1
                entry["last_used"] = datetime.now(timezone.utc).isoformat()
                self._current_index = (idx + 1) % total
                return entry["key"]
        return None

    def mark_exhausted(self, key_value: str):
        for index, entry in enumerate(self.keys):
            if entry["key"] == key_value:
                entry["is_exhausted"] = True
                logger.warning(f"Gemini key #{index} exhausted")
                break

    def reset_daily(self):
        for entry in self.keys:
            entry["is_exhausted"] = False
            entry["requests_today"] = 0

    # ------------------------------------------------------------------
    def get_key_stats(self) -> dict:
        return {
            "total_keys": len(self.keys),
            "active_keys": sum(1 for e in self.keys if not e["is_exhausted"]),
            "total_requests_today": sum(e["requests_today"] for e in self.keys),
        }
