"""Recognise game events in single lines of server output.

Matchers are tried in a fixed order: move, resignation, draw. The first one
that returns an event wins. The order matters because a kibitz line could in
principle satisfy more than one announcement pattern.

A line that almost matches but carries a malformed field (non-numeric game
id, missing token) is simply not an event; nothing here raises.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Tuple

from .events import Draw, GameEvent, Move, Resign

STYLE12_PREFIX = "<12>"

# Token positions in a space-separated style-12 line
_SIDE_TO_MOVE = 9
_GAME_ID = 16
_MOVE_NUMBER = 26
_SAN = 29

RESIGN_RE = re.compile(r"(?i)^relay\(.+\)\[(\d+)\] kibitzes: (\w+) has resigned.*$")
DRAW_RE = re.compile(r"(?i)^relay\(.+\)\[(\d+)\] kibitzes: The game is officially a draw.*$")


def _int_or_none(token: Optional[str]) -> Optional[int]:
    if token is None:
        return None
    try:
        return int(token)
    except ValueError:
        return None


def _token(tokens: List[str], idx: int) -> Optional[str]:
    return tokens[idx] if idx < len(tokens) else None


def parse_move(line: str) -> Optional[Move]:
    if not line.startswith(STYLE12_PREFIX):
        return None
    tokens = line.split(" ")
    game_id = _int_or_none(_token(tokens, _GAME_ID))
    move_number = _int_or_none(_token(tokens, _MOVE_NUMBER))
    side = _token(tokens, _SIDE_TO_MOVE)
    san = _token(tokens, _SAN)
    if game_id is None or move_number is None or not san or side not in ("W", "B"):
        return None
    ply = (move_number - 1) * 2 + (0 if side == "W" else 1)
    return Move(game_id=game_id, san=san, ply=ply, log=line)


def parse_resign(line: str) -> Optional[Resign]:
    m = RESIGN_RE.match(line)
    if not m:
        return None
    return Resign(game_id=int(m.group(1)), loser=m.group(2))


def parse_draw(line: str) -> Optional[Draw]:
    m = DRAW_RE.match(line)
    if not m:
        return None
    return Draw(game_id=int(m.group(1)))


MATCHERS: Tuple[Callable[[str], Optional[GameEvent]], ...] = (parse_move, parse_resign, parse_draw)


def classify(line: str) -> Optional[GameEvent]:
    """Return the first event recognised in *line*, or None for plain text."""
    for matcher in MATCHERS:
        event = matcher(line)
        if event is not None:
            return event
    return None


def split_events(lines: Iterable[str]) -> Tuple[List[GameEvent], List[str]]:
    """Partition *lines* into recognised events and leftover text, keeping order."""
    events: List[GameEvent] = []
    text: List[str] = []
    for line in lines:
        event = classify(line)
        if event is None:
            text.append(line)
        else:
            events.append(event)
    return events, text
