import logging
from concurrent.futures import Future

import pytest

from ficsrelay import config as _cfg
from ficsrelay import relay
from ficsrelay.commands import GameSummary, ListGames
from ficsrelay.events import Move
from ficsrelay.session import CommandTimeout

from conftest import style12


class DummySession:
    """Answers every submit with a pre-built future."""

    def __init__(self, future: Future) -> None:
        self.future = future
        self.submitted = []

    def submit(self, command):
        self.submitted.append(command)
        return self.future


def test_list_games_prints_table(capsys):
    fut: Future = Future()
    fut.set_result([GameSummary(42, "Carlsen", 2850, "Nakamura", None)])
    sess = DummySession(fut)
    relay._list_games(sess, wait=1)
    out = capsys.readouterr().out
    assert isinstance(sess.submitted[0], ListGames)
    assert "42 Carlsen (2850) - Nakamura (----)" in out
    assert "1 games" in out


def test_list_games_timeout_is_logged(capsys, caplog):
    fut: Future = Future()
    fut.set_exception(CommandTimeout(ListGames()))
    relay._list_games(DummySession(fut), wait=1)
    assert capsys.readouterr().out == ""
    assert "FICS:Run timeout on games" in caplog.text


def test_print_move(capsys):
    relay._print_move(Move(42, "Nf3", 9, style12()))
    assert capsys.readouterr().out.startswith("[42] 9: Nf3 from B")


@pytest.mark.parametrize(
    "quiet,debug,verbose,env_debug,expected",
    [
        (False, False, 0, False, logging.WARNING),
        (False, False, 1, False, logging.INFO),
        (False, True, 0, False, logging.DEBUG),
        (False, False, 0, True, logging.DEBUG),
        (True, True, 2, True, logging.ERROR),
    ],
)
def test_log_level_from_flags(monkeypatch, quiet, debug, verbose, env_debug, expected):
    monkeypatch.setattr(_cfg, "DEBUG", env_debug)
    assert relay._log_level(quiet, debug, verbose) == expected
