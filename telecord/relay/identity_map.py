"""Correlation between relayed Telegram messages and their Discord copies."""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Hashable
from enum import StrEnum


class Direction(StrEnum):
    TELEGRAM_TO_DISCORD = "telegram_to_discord"


class DuplicateMappingError(ValueError):
    """A source message can only be relayed once per direction."""


class _DirectionMaps:
    __slots__ = ("forward", "backward")

    def __init__(self) -> None:
        # Ordered by recency, oldest first
        self.forward: OrderedDict[Hashable, int] = OrderedDict()
        self.backward: dict[int, Hashable] = {}


class IdentityMap:
    """Bidirectional source id <-> destination id store.

    Every operation is an O(1) point access behind a single lock, so handlers
    running concurrently can insert and look up freely.

    With `max_entries` set, the least recently used mapping of a direction is
    evicted when an insert would exceed it. Edits to evicted messages then
    behave like edits to messages that were never relayed.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be positive, not {max_entries}")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._maps = {direction: _DirectionMaps() for direction in Direction}

    def insert(
        self, direction: Direction, source_id: Hashable, destination_id: int
    ) -> None:
        with self._lock:
            maps = self._maps[direction]
            if source_id in maps.forward:
                raise DuplicateMappingError(
                    f"Message {source_id} is already mapped to"
                    f" {maps.forward[source_id]} ({direction})"
                )

            maps.forward[source_id] = destination_id
            maps.backward[destination_id] = source_id

            if self.max_entries is not None:
                while len(maps.forward) > self.max_entries:
                    _, evicted = maps.forward.popitem(last=False)
                    maps.backward.pop(evicted, None)

    def lookup(self, direction: Direction, source_id: Hashable) -> int | None:
        """Destination id for `source_id`, None when unknown."""
        with self._lock:
            maps = self._maps[direction]
            destination_id = maps.forward.get(source_id)
            if destination_id is not None:
                maps.forward.move_to_end(source_id)
            return destination_id

    def lookup_source(
        self, direction: Direction, destination_id: int
    ) -> Hashable | None:
        """Source id that produced `destination_id`, None when unknown."""
        with self._lock:
            return self._maps[direction].backward.get(destination_id)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(maps.forward) for maps in self._maps.values())

    def __contains__(self, key: tuple[Direction, Hashable]) -> bool:
        direction, source_id = key
        with self._lock:
            return source_id in self._maps[direction].forward
