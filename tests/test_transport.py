import socket

import pytest

from ficsrelay.transport import TelnetTransport


class RecordingListener:
    def __init__(self) -> None:
        self.chunks: list[str] = []
        self.links = []
        self.lost = 0

    def text_received(self, data: str) -> None:
        self.chunks.append(data)

    def connection_established(self, link) -> None:
        self.links.append(link)

    def connection_lost(self) -> None:
        self.lost += 1


@pytest.fixture
def transport():
    listener = RecordingListener()
    return TelnetTransport(listener, "127.0.0.1", 1), listener


def test_unbuffered_chunks_pass_through(transport):
    t, listener = transport
    t.feed("Welcome\n\rlogin: ")
    t.feed("")
    assert listener.chunks == ["Welcome\nlogin: "]


def test_buffered_mode_waits_for_delimiter(transport):
    t, listener = transport
    t.buffer_until("fics% ")
    t.feed("line one\n")
    t.feed("line two\nfi")
    assert listener.chunks == []
    t.feed("cs% more\nfics% tail")
    assert listener.chunks == ["line one\nline two\nfics% ", "more\nfics% "]


def test_leaving_buffered_mode_flushes(transport):
    t, listener = transport
    t.buffer_until("fics% ")
    t.feed("partial")
    t.buffer_until(None)
    assert listener.chunks == ["partial"]
    t.feed("next")
    assert listener.chunks == ["partial", "next"]


def test_flush_is_delivered_under_the_buffer_lock(transport):
    t, listener = transport
    held = []
    listener.text_received = lambda data: held.append((data, t._buf_lock.locked()))
    t.buffer_until("fics% ")
    t.feed("partial")
    t.buffer_until(None)
    assert held == [("partial", True)]


def test_send_requires_connection(transport):
    t, _ = transport
    with pytest.raises(ConnectionError):
        t.send("games")


def test_send_appends_newline(transport):
    t, _ = transport
    ours, theirs = socket.socketpair()
    try:
        t._sock = ours
        t.send("observe 42")
        assert theirs.recv(64) == b"observe 42\n"
    finally:
        t.close()
        theirs.close()


@pytest.mark.timeout(5)  # type: ignore[arg-type]
def test_connect_failure_reports_lost():
    # Reserve a port nobody listens on
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as tmp:
        tmp.bind(("127.0.0.1", 0))
        port = tmp.getsockname()[1]
    listener = RecordingListener()
    t = TelnetTransport(listener, "127.0.0.1", port, connect_timeout=1)
    t.start()
    t.join(timeout=3)
    assert listener.links == []
    assert listener.lost == 1
