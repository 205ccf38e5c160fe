from __future__ import annotations

import time
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from app.services.unemployedle_game import GameState

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


def select_evictions(entries: Iterable[tuple[K, float]], max_entries: int) -> list[K]:
    """Keys to drop, oldest created first, so that at most `max_entries` remain."""
    snapshot = sorted(entries, key=lambda entry: entry[1])
    overflow = len(snapshot) - max(0, max_entries)
    if overflow <= 0:
        return []
    return [key for key, _ in snapshot[:overflow]]


@dataclass
class _CacheEntry(Generic[V]):
    value: V
    created_at: float


class TTLCache(Generic[V]):
    """Process-local cache with a fixed TTL and size-bounded, oldest-first eviction on write."""

    def __init__(self, *, ttl_s: float, max_entries: int, clock: Clock = time.monotonic) -> None:
        self._ttl_s = ttl_s
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _CacheEntry[V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at >= self._ttl_s:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = _CacheEntry(value=value, created_at=self._clock())
        snapshot = [(entry_key, entry.created_at) for entry_key, entry in self._entries.items()]
        for evicted in select_evictions(snapshot, self._max_entries):
            self._entries.pop(evicted, None)


class GameStore:
    def __init__(self, *, max_games: int = 50) -> None:
        self._max_games = max_games
        self._games: dict[str, GameState] = {}

    def __len__(self) -> int:
        return len(self._games)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._games

    def get(self, game_id: str) -> GameState | None:
        return self._games.get(game_id)

    def add(self, game: GameState) -> None:
        self._games[game.id] = game
        snapshot = [(game_id, stored.created_at) for game_id, stored in self._games.items()]
        for evicted in select_evictions(snapshot, self._max_games):
            self._games.pop(evicted, None)
