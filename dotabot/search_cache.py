"""
search_cache.py — Last search results per requesting user, consumed by /dota register <n>.
"""

from __future__ import annotations

import threading

from dotabot.schemas import SearchCandidate

MAX_SEARCH_RESULTS = 10


class SearchCache:
    """Lock-protected user_id → candidates table. Entries are used once and deleted."""

    def __init__(self, max_results: int = MAX_SEARCH_RESULTS) -> None:
        self._max_results = max_results
        self._lock = threading.Lock()
        self._entries: dict[str, list[SearchCandidate]] = {}

    def put(self, user_id: str, candidates: list[SearchCandidate]) -> list[SearchCandidate]:
        """Stores (at most max_results of) the candidates and returns what was stored."""
        kept = list(candidates[: self._max_results])
        with self._lock:
            self._entries[user_id] = kept
        return kept

    def take(self, user_id: str, index: int) -> SearchCandidate | None:
        """1-based pick. On a hit the user's whole entry is consumed."""
        with self._lock:
            candidates = self._entries.get(user_id)
            if not candidates or index < 1 or index > len(candidates):
                return None
            del self._entries[user_id]
            return candidates[index - 1]
