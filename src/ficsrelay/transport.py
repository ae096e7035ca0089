"""Socket transport: bytes in, decoded text chunks out.

FICS does not frame its output. Prompts such as ``login: `` arrive without a
trailing newline, so the reader hands over whatever each ``recv`` returned.
After login the session asks for buffered mode, in which text is held back
until the end-of-reply prompt shows up and then delivered as one block.
"""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
from abc import ABC, abstractmethod
from typing import Optional

from . import config as _cfg

logger = logging.getLogger(__name__)

RECV_SIZE = 4096


class LineTransport(ABC):
    """What the session needs from a connection."""

    @abstractmethod
    def send(self, text: str) -> None:
        """Write one command line; the newline is added here."""

    @abstractmethod
    def buffer_until(self, delimiter: Optional[str]) -> None:
        """Deliver text in blocks ending with *delimiter*; None delivers chunks as read."""


class TelnetTransport(LineTransport, threading.Thread):
    """Reader thread owning the TCP socket.

    *listener* gets ``connection_established(self)`` once the socket is open,
    ``text_received(data)`` for every chunk or block, in arrival order, and
    ``connection_lost()`` when the stream ends. `FICSSession` implements all
    three.
    """

    def __init__(
        self,
        listener,
        host: str = _cfg.DEFAULT_HOST,
        port: int = _cfg.DEFAULT_PORT,
        *,
        encoding: str = _cfg.ENCODING,
        connect_timeout: float = _cfg.CONNECT_TIMEOUT,
    ) -> None:
        super().__init__(daemon=True, name="fics-transport")
        self.listener = listener
        self.host = host
        self.port = port
        self.encoding = encoding
        self.connect_timeout = connect_timeout
        self._sock: socket.socket | None = None
        self._send_lock = threading.Lock()
        self._buf_lock = threading.Lock()
        self._delimiter: Optional[str] = None
        self._pending = ""

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    def send(self, text: str) -> None:
        if self._sock is None:
            raise ConnectionError("transport is not connected")
        logger.debug("send %r", text)
        with self._send_lock:
            self._sock.sendall(f"{text}\n".encode(self.encoding, errors="replace"))

    def buffer_until(self, delimiter: Optional[str]) -> None:
        with self._buf_lock:
            self._delimiter = delimiter
            if delimiter is not None:
                return
            flushed, self._pending = self._pending, ""
            # same lock as feed(), so a racing chunk cannot overtake the flush
            if flushed:
                self.listener.text_received(flushed)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------
    def feed(self, text: str) -> None:
        """Push decoded text through the delimiter buffer to the listener."""
        text = text.replace("\r", "")
        if not text:
            return
        with self._buf_lock:
            if self._delimiter is None:
                blocks = [text]
            else:
                self._pending += text
                blocks = []
                while True:
                    idx = self._pending.find(self._delimiter)
                    if idx < 0:
                        break
                    end = idx + len(self._delimiter)
                    blocks.append(self._pending[:end])
                    self._pending = self._pending[end:]
            # delivered under the lock so blocks keep their order
            for block in blocks:
                self.listener.text_received(block)

    def run(self) -> None:  # pragma: no cover – exercised by integration tests
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        except OSError as exc:
            logger.error("Cannot connect to %s:%d: %s", self.host, self.port, exc)
            self.listener.connection_lost()
            return
        sock.settimeout(None)
        self._sock = sock
        logger.info("Connected to %s:%d", self.host, self.port)
        self.listener.connection_established(self)
        try:
            while True:
                try:
                    data = sock.recv(RECV_SIZE)
                except OSError as exc:
                    logger.debug("recv failed: %s", exc)
                    break
                if not data:
                    break
                self.feed(data.decode(self.encoding, errors="replace"))
        finally:
            logger.info("Connection to %s:%d closed", self.host, self.port)
            self.close()
            self.listener.connection_lost()

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is None:
            return
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        sock.close()
