"""Session state machine for a FICS relay account.

One `FICSSession` drives one telnet connection through its whole life:

    CONNECTING -> LOGGING_IN -> CONFIGURING -> THROTTLED <-> READY <-> RUNNING

Callers talk to it from any thread:

submit(command)   Queue a command; returns a `concurrent.futures.Future`
                  resolved with the parsed reply, or failed with
                  `CommandTimeout` when no reply parses within the run timeout.
observe(game_id)  Ask the server to stream a game's moves. Nothing to wait for.

Everything else happens on the session thread, one inbox message at a time,
so the state needs no locking:

• Only READY accepts work. Requests arriving in any other state wait in a
  FIFO queue that is replayed, in order, the moment READY is entered again.
• RUNNING holds the single outstanding request. Reply text accumulates and
  is offered to the command parser after every chunk.
• Every finished exchange, answered or timed out, goes through THROTTLED
  so the server's rate limit is never hit.
• Every incoming line is first checked for game events. Moves are published
  on `MOVE_TOPIC`; resignations and draws are only logged.
"""

from __future__ import annotations

import enum
import logging
import queue
import threading
import time
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, List, Optional, Union

from . import config as _cfg
from .classifier import split_events
from .commands import Command, Observe
from .events import EventBus, Move, Publisher
from .noise import format_lines
from .transport import LineTransport

logger = logging.getLogger(__name__)


class State(enum.Enum):
    CONNECTING = enum.auto()
    LOGGING_IN = enum.auto()
    CONFIGURING = enum.auto()
    READY = enum.auto()
    RUNNING = enum.auto()
    THROTTLED = enum.auto()
    CLOSED = enum.auto()  # transport gone, terminal


class CommandTimeout(Exception):
    """No parseable reply arrived within the run timeout."""

    def __init__(self, command: Command) -> None:
        super().__init__(f"FICS:Run timeout on {command.text}")
        self.command = command


class SessionClosed(Exception):
    """The connection ended before the request could be answered."""


# ---------------------------------------------------------------------------
# Inbox messages
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ConnectionEstablished:
    link: LineTransport


@dataclass(frozen=True)
class TextReceived:
    data: str

    @property
    def lines(self) -> List[str]:
        return self.data.split("\n")


@dataclass
class Request:
    command: Command
    future: Future
    lines: List[str] = field(default_factory=list)  # reply text collected so far


@dataclass(frozen=True)
class StateTimeout:
    token: int  # identifies the state entry that armed the timer


@dataclass(frozen=True)
class ConnectionLost:
    pass


@dataclass(frozen=True)
class Stop:
    pass


Message = Union[ConnectionEstablished, TextReceived, Request, Observe, StateTimeout, ConnectionLost, Stop]


class FICSSession(threading.Thread):
    """Actor thread owning the protocol state of one connection."""

    def __init__(
        self,
        login: str = _cfg.LOGIN_HANDLE,
        password: str = _cfg.LOGIN_PASSWORD,
        publisher: Optional[Publisher] = None,
        *,
        run_timeout: float = _cfg.RUN_TIMEOUT,
        throttle_delay: float = _cfg.THROTTLE_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(daemon=True, name="fics-session")
        self.login = login
        self.password = password
        self.publisher: Publisher = publisher if publisher is not None else EventBus()
        self.state = State.CONNECTING
        self.request: Optional[Request] = None
        self.pending: Deque[Union[Request, Observe]] = deque()
        self._link: Optional[LineTransport] = None
        self._inbox: "queue.Queue[Message]" = queue.Queue()
        self._clock = clock
        self._timeouts = {State.RUNNING: run_timeout, State.THROTTLED: throttle_delay}
        self._deadline: Optional[float] = None
        self._token = 0
        # serialises submit() against the final inbox drain
        self._closing = threading.Lock()

    # -------------------- caller API --------------------
    def submit(self, command: Command) -> "Future[Any]":
        future: Future = Future()
        with self._closing:
            if self.state is State.CLOSED:
                future.set_exception(SessionClosed("session is closed"))
                return future
            self._inbox.put(Request(command, future))
        return future

    def observe(self, game_id: int) -> None:
        self._inbox.put(Observe(game_id))

    def stop(self) -> None:
        self._inbox.put(Stop())

    # -------------------- transport listener --------------------
    def connection_established(self, link: LineTransport) -> None:
        self._inbox.put(ConnectionEstablished(link))

    def text_received(self, data: str) -> None:
        self._inbox.put(TextReceived(data))

    def connection_lost(self) -> None:
        self._inbox.put(ConnectionLost())

    # -------------------- actor loop --------------------
    def run(self) -> None:
        while self.state is not State.CLOSED:
            remaining = self._remaining()
            if remaining == 0.0:
                # due timers win over a busy inbox
                msg: Message = StateTimeout(self._token)
            else:
                try:
                    msg = self._inbox.get(timeout=remaining)
                except queue.Empty:
                    continue
            if isinstance(msg, Stop):
                break
            try:
                self.handle(msg)
            except Exception:  # noqa: BLE001
                logger.exception("FICS[%s] failed to handle %r", self.state.name, msg)
        self.shutdown("session stopped")
        logger.debug("Session loop exited")

    def shutdown(self, reason: str) -> None:
        """Close the session and fail every request it still holds or has yet to read."""
        with self._closing:
            self._close(reason)
            while True:
                try:
                    msg = self._inbox.get_nowait()
                except queue.Empty:
                    break
                if isinstance(msg, Request):
                    self._fail(msg, SessionClosed(reason))

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def poll_timer(self) -> bool:
        """Fire the current state's timer if it is due. Returns True if it fired."""
        if self._deadline is None or self._clock() < self._deadline:
            return False
        self.handle(StateTimeout(self._token))
        return True

    def handle(self, msg: Message) -> None:
        """Process one message on the calling thread."""
        if isinstance(msg, ConnectionLost):
            self._close()
            return
        if isinstance(msg, StateTimeout):
            self._on_timeout(msg)
            return
        handler = getattr(self, f"_when_{self.state.name.lower()}")
        if not handler(msg):
            self._unhandled(msg)

    # -------------------- per-state handlers --------------------
    def _when_connecting(self, msg: Message) -> bool:
        if isinstance(msg, ConnectionEstablished):
            self._link = msg.link
            self._goto(State.LOGGING_IN)
            return True
        return False

    def _when_logging_in(self, msg: Message) -> bool:
        if not isinstance(msg, TextReceived):
            return False
        if msg.data.endswith(_cfg.LOGIN_PROMPT):
            self._send(self.login)
            return True
        if msg.data.endswith(_cfg.PASSWORD_PROMPT):
            # buffering must be on before the server can answer the password
            self._link.buffer_until(_cfg.EOM)
            self._send(self.password)
            self._goto(State.CONFIGURING)
            return True
        return False

    def _when_configuring(self, msg: Message) -> bool:
        if not isinstance(msg, TextReceived):
            return False
        self._log(self._dispatch_events(msg.lines))
        for cmd in _cfg.CONFIGURE_COMMANDS:
            self._send(cmd)
        self._goto(State.THROTTLED)
        return True

    def _when_ready(self, msg: Message) -> bool:
        if isinstance(msg, Request):
            if not msg.future.set_running_or_notify_cancel():
                logger.debug("Dropping cancelled %r", msg.command)
                return True
            # held before sending so a failed write still resolves by timeout or close
            self.request = msg
            self._goto(State.RUNNING)
            self._send(msg.command.text)
            return True
        if isinstance(msg, Observe):
            self._send(msg.text)
            return True
        return False

    def _when_running(self, msg: Message) -> bool:
        req = self.request
        if not isinstance(msg, TextReceived) or req is None:
            return False
        text = self._dispatch_events(msg.lines)
        req.lines.extend(text)
        result = self._try_parse(req)
        if result is None:
            self._log(text)
            return True
        self.request = None
        req.future.set_result(result)
        self._goto(State.THROTTLED)
        return True

    def _when_throttled(self, msg: Message) -> bool:
        return False

    def _when_closed(self, msg: Message) -> bool:
        if isinstance(msg, Request):
            self._fail(msg, SessionClosed("session is closed"))
        return True

    def _unhandled(self, msg: Message) -> None:
        if isinstance(msg, (Request, Observe)):
            self.pending.append(msg)
        elif isinstance(msg, TextReceived):
            self._log(self._dispatch_events(msg.lines))
        else:
            logger.debug("FICS[%s] ignoring %r", self.state.name, msg)

    def _on_timeout(self, msg: StateTimeout) -> None:
        if msg.token != self._token:
            logger.debug("Stale timer %d (current %d)", msg.token, self._token)
            return
        if self.state is State.RUNNING:
            req, self.request = self.request, None
            if req is None:
                logger.warning("FICS[%s] state timeout", self.state.name)
            else:
                # the text itself was logged chunk by chunk as it arrived
                logger.warning(
                    "FICS[%s] state timeout on %r, discarding %d lines",
                    self.state.name,
                    req.command.text,
                    len(req.lines),
                )
                self._fail(req, CommandTimeout(req.command))
            self._goto(State.THROTTLED)
        elif self.state is State.THROTTLED:
            self._goto(State.READY)

    # -------------------- helpers --------------------
    def _goto(self, state: State) -> None:
        logger.debug("FICS %s -> %s", self.state.name, state.name)
        self.state = state
        self._token += 1
        timeout = self._timeouts.get(state)
        self._deadline = None if timeout is None else self._clock() + timeout
        if state is State.READY:
            self._replay()

    def _replay(self) -> None:
        # Each entry goes through READY handling again; once one of them
        # starts a command the rest are queued anew, still in order.
        waiting = list(self.pending)
        self.pending.clear()
        for item in waiting:
            self.handle(item)

    def _send(self, text: str) -> None:
        self._link.send(text)

    def _dispatch_events(self, lines: List[str]) -> List[str]:
        events, text = split_events(lines)
        for ev in events:
            if isinstance(ev, Move):
                logger.debug("FICS move %s", ev)
                self.publisher.publish(_cfg.MOVE_TOPIC, ev)
            else:
                # TODO: publish resign/draw once the relay consumer handles game ends
                logger.info("------------------------- %s", ev)
        return text

    def _try_parse(self, req: Request) -> Optional[Any]:
        try:
            return req.command.parse(req.lines)
        except Exception:  # noqa: BLE001
            logger.exception("Parser of %r failed", req.command)
            return None

    def _log(self, lines: List[str]) -> None:
        rendered = format_lines(self.state.name, lines)
        if rendered:
            logger.info("%s", rendered)

    @staticmethod
    def _fail(req: Request, exc: Exception) -> None:
        if not req.future.done():
            req.future.set_exception(exc)

    def _close(self, reason: str = "connection lost") -> None:
        if self.state is State.CLOSED:
            return
        logger.info("FICS[%s] %s", self.state.name, reason)
        exc = SessionClosed(reason)
        if self.request is not None:
            self._fail(self.request, exc)
            self.request = None
        while self.pending:
            item = self.pending.popleft()
            if isinstance(item, Request):
                self._fail(item, exc)
        self.state = State.CLOSED
        self._token += 1
        self._deadline = None
