import sys
from pathlib import Path

import pytest
import logging

# Ensure local src importable before we import ficsrelay
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from ficsrelay import config as _cfg  # noqa: E402
from ficsrelay.events import Publisher  # noqa: E402
from ficsrelay.session import FICSSession, State, TextReceived  # noqa: E402
from ficsrelay.transport import LineTransport  # noqa: E402

# Suppress INFO & DEBUG logs from session threads during tests
logging.basicConfig(level=logging.WARNING)

RUN_TIMEOUT = 7.0
THROTTLE_DELAY = 0.5


def style12(game_id: int = 42, side: str = "B", move_number: int = 5, san: str = "Nf3") -> str:
    """Build a style-12 board line with the fields the classifier reads."""
    board = ["rnbqkbnr", "pppppppp", "--------", "--------", "--------", "-----N--", "PPPPPPPP", "RNBQKB-R"]
    tokens = [
        "<12>", *board, side, "-1", "1", "1", "1", "1", "0", str(game_id),
        "Carlsen", "Nakamura", "0", "3", "0", "39", "39", "180", "180",
        str(move_number), "N/g1-f3", "(0:02)", san, "0", "1", "0",
    ]
    return " ".join(tokens)


class FakeLink(LineTransport):
    """Records everything the session sends and the buffer mode it asks for."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.delimiters: list[str | None] = []

    def send(self, text: str) -> None:
        self.sent.append(text)

    def buffer_until(self, delimiter):
        self.delimiters.append(delimiter)


class CapturingPublisher(Publisher):
    def __init__(self) -> None:
        self.published: list[tuple[str, object]] = []

    def publish(self, topic, event) -> None:
        self.published.append((topic, event))


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Harness:
    """Drive a FICSSession synchronously: no threads, explicit clock."""

    def __init__(self) -> None:
        self.link = FakeLink()
        self.publisher = CapturingPublisher()
        self.clock = FakeClock()
        self.session = FICSSession(
            "relay",
            "secret",
            self.publisher,
            run_timeout=RUN_TIMEOUT,
            throttle_delay=THROTTLE_DELAY,
            clock=self.clock,
        )

    def feed(self, data: str) -> None:
        self.session.handle(TextReceived(data))

    def drain(self) -> None:
        """Hand every message callers have queued to the session, in order."""
        inbox = self.session._inbox
        while not inbox.empty():
            self.session.handle(inbox.get_nowait())

    def elapse(self, seconds: float) -> bool:
        self.clock.advance(seconds)
        return self.session.poll_timer()

    def connect(self) -> None:
        self.session.connection_established(self.link)
        self.drain()

    def login(self) -> None:
        """Walk the session from CONNECTING to READY."""
        self.connect()
        self.feed("Welcome to the Free Internet Chess Server\nlogin: ")
        self.feed("password: ")
        self.feed("**** Starting FICS session as relay ****\nfics% ")
        assert self.session.state is State.THROTTLED
        self.elapse(THROTTLE_DELAY)
        assert self.session.state is State.READY
        self.link.sent.clear()


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def ready(harness: Harness) -> Harness:
    harness.login()
    return harness


@pytest.fixture
def configure_commands() -> list[str]:
    return list(_cfg.CONFIGURE_COMMANDS)
