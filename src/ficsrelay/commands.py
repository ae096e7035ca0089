"""Commands the session can run, and how their replies are parsed.

A command knows its outbound text and how to turn the reply lines collected
so far into a result. `parse` returns None while the reply is incomplete;
the session keeps feeding it lines until it answers or the run timeout fires.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence


class CommandParseError(Exception):
    """Raised when a reply line cannot be parsed as what the command expects."""


class Command(ABC):
    text: str

    @abstractmethod
    def parse(self, lines: Sequence[str]) -> Optional[Any]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.text!r})"


@dataclass(frozen=True)
class Observe:
    """Start watching a remote game; the server answers with style-12 moves."""

    game_id: int

    @property
    def text(self) -> str:
        return f"observe {self.game_id}"


@dataclass(frozen=True)
class GameSummary:
    game_id: int
    white: str
    white_rating: Optional[int]
    black: str
    black_rating: Optional[int]


# " 38 ++++ GuestBLXF    ++++ GuestVPZK  [ bu  2  12]   2:00 -  2:00 (39-39) W:  1"
_GAME_ROW_RE = re.compile(r"^\s*(\d+)\s+(\S+)\s+(\w+)\s+(\S+)\s+(\w+)\s*\[")
_GAMES_TRAILER_RE = re.compile(r"^\s*(\d+) games? displayed")
_RATING_RE = re.compile(r"^(\d+)")


def parse_rating(token: str) -> Optional[int]:
    """`++++` (unrated) and `----` (no rating) become None; `1684E` becomes 1684."""
    m = _RATING_RE.match(token)
    return int(m.group(1)) if m else None


def parse_game_row(line: str) -> GameSummary:
    m = _GAME_ROW_RE.match(line)
    if not m:
        raise CommandParseError(f"Not a game row: {line!r}")
    game_id, welo, white, belo, black = m.groups()
    return GameSummary(int(game_id), white, parse_rating(welo), black, parse_rating(belo))


class ListGames(Command):
    """`games`: every game in progress on the server."""

    text = "games"

    def parse(self, lines: Sequence[str]) -> Optional[List[GameSummary]]:
        games: List[GameSummary] = []
        for line in lines:
            if _GAMES_TRAILER_RE.match(line):
                return games
            try:
                games.append(parse_game_row(line))
            except CommandParseError:
                continue
        return None


_SERVER_TIME_RE = re.compile(r"^\s*Server time\s+-\s+(.+?)\s*$")


class ServerTime(Command):
    """`date`: the server's local time, as printed."""

    text = "date"

    def parse(self, lines: Sequence[str]) -> Optional[str]:
        for line in lines:
            m = _SERVER_TIME_RE.match(line)
            if m:
                return m.group(1)
        return None
