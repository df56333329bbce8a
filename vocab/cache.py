"""
In-memory response cache for AI text results and synthesized audio.

Entries expire after a fixed TTL. Freshness is checked on every read, so the
periodic sweep only bounds memory and never affects what callers see.
Nothing here is persisted across process restarts.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from .clock import SystemClock
from .timers import RepeatingTimer

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 10 * 60


@dataclass
class CacheEntry:
    key: str
    data: str
    stored_at: float


def text_key(word: str, action: str) -> str:
    return f"{(word or '').lower()}|{action}"


def audio_key(text: str) -> str:
    return f"tts|{(text or '').lower()}"


class ResponseCache:
    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
                 clock=None):
        self.ttl = ttl_seconds
        self.sweep_interval = sweep_interval_seconds
        self.clock = clock or SystemClock()
        # Two families in separate maps so identical input never collides
        self._text: Dict[str, CacheEntry] = {}
        self._audio: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[RepeatingTimer] = None

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at <= self.ttl

    def _lookup(self, table: Dict[str, CacheEntry], key: str) -> Optional[str]:
        with self._lock:
            entry = table.get(key)
            if entry is None:
                return None
            if self._is_fresh(entry, self.clock.now()):
                return entry.data
            del table[key]
            return None

    def _store(self, table: Dict[str, CacheEntry], key: str, data: str) -> None:
        with self._lock:
            table[key] = CacheEntry(key=key, data=data, stored_at=self.clock.now())

    def get(self, word: str, action: str) -> Optional[str]:
        return self._lookup(self._text, text_key(word, action))

    def set(self, word: str, action: str, data: str) -> None:
        self._store(self._text, text_key(word, action), data)

    def get_audio(self, text: str) -> Optional[str]:
        return self._lookup(self._audio, audio_key(text))

    def set_audio(self, text: str, data: str) -> None:
        self._store(self._audio, audio_key(text), data)

    def clear(self) -> None:
        with self._lock:
            self._text.clear()
            self._audio.clear()
        logger.debug("Response cache cleared")

    def sweep(self) -> int:
        """Drop every stale entry. Returns how many were removed."""
        removed = 0
        with self._lock:
            now = self.clock.now()
            for table in (self._text, self._audio):
                for key in [k for k, e in table.items() if not self._is_fresh(e, now)]:
                    del table[key]
                    removed += 1
        if removed:
            logger.debug(f"Cache sweep removed {removed} stale entries")
        return removed

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {'text_entries': len(self._text), 'audio_entries': len(self._audio)}

    def start_sweeper(self) -> None:
        if self._sweeper is None:
            self._sweeper = RepeatingTimer(self.sweep_interval, self.sweep, name='cache-sweeper')
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        if self._sweeper is not None:
            self._sweeper.stop()
