"""Game events recognised in the server output, and the bus that fans them out.

The session never delivers events itself: it is handed a `Publisher` at
construction and calls `publish(topic, event)`. `EventBus` is the in-process
implementation used by the CLI; tests substitute a capturing fake.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Move:
    """A move reported by a style-12 board line."""

    game_id: int
    san: str
    ply: int  # (move number - 1) * 2, plus one when Black is to move
    log: str  # raw line, kept for diagnostics

    def __str__(self) -> str:
        return f"[{self.game_id}] {self.ply}: {self.san} from {' '.join(self.log.split(' ')[9:])}"


@dataclass(frozen=True, slots=True)
class Resign:
    game_id: int
    loser: str


@dataclass(frozen=True, slots=True)
class Draw:
    game_id: int


GameEvent = Union[Move, Resign, Draw]


class Publisher(ABC):
    """Anything that accepts classified events for delivery to subscribers."""

    @abstractmethod
    def publish(self, topic: str, event: Any) -> None:
        ...


class EventBus(Publisher):
    """Topic-keyed fan-out to callbacks, in subscription order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, topic: str, callback: Callable[[Any], None]) -> None:
        with self._lock:
            self._subs.setdefault(topic, []).append(callback)

    def unsubscribe(self, topic: str, callback: Callable[[Any], None]) -> None:
        with self._lock:
            subs = self._subs.get(topic, [])
            if callback in subs:
                subs.remove(callback)

    def publish(self, topic: str, event: Any) -> None:
        with self._lock:
            subs = tuple(self._subs.get(topic, ()))
        if not subs:
            logger.debug("No subscriber for %s: %s", topic, event)
        for cb in subs:
            try:
                cb(event)
            except Exception:  # noqa: BLE001
                # A misbehaving subscriber must not take the session down
                logger.exception("Subscriber failed on %s event %s", topic, event)
