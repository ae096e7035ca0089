"""Command-line relay: log in, observe games and print their moves."""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import TimeoutError as FutureTimeout

from . import config as _cfg
from .commands import ListGames
from .events import EventBus, Move
from .session import CommandTimeout, FICSSession, SessionClosed
from .transport import TelnetTransport

logger = logging.getLogger(__name__)


def _print_move(move: Move) -> None:
    print(move, flush=True)


def _list_games(session: FICSSession, wait: float) -> None:
    try:
        games = session.submit(ListGames()).result(timeout=wait)
    except (CommandTimeout, SessionClosed, FutureTimeout) as exc:
        logger.warning("Game list unavailable: %s", exc)
        return
    for g in games:
        print(f"{g.game_id:>4} {g.white} ({g.white_rating or '----'}) - {g.black} ({g.black_rating or '----'})")
    print(f"{len(games)} games")


def _log_level(quiet: bool, debug: bool, verbose: int) -> int:
    """Flags win over FICS_DEBUG, which only ever raises verbosity."""
    if quiet:
        return logging.ERROR
    if debug or _cfg.DEBUG:
        return logging.DEBUG
    if verbose >= 1:
        return logging.INFO
    return logging.WARNING


def main(argv: list[str] | None = None) -> None:  # pragma: no cover – CLI entry
    parser = argparse.ArgumentParser(description="FICS relay session")
    parser.add_argument("--host", default=_cfg.DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=_cfg.DEFAULT_PORT)
    parser.add_argument("--login", default=_cfg.LOGIN_HANDLE)
    parser.add_argument("--password", default=_cfg.LOGIN_PASSWORD)
    parser.add_argument(
        "--observe",
        type=int,
        action="append",
        default=[],
        metavar="ID",
        help="Observe a game by its server id (repeatable).",
    )
    parser.add_argument("--games", action="store_true", help="Print the list of games in progress.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=_log_level(args.quiet, args.debug, args.verbose),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    bus = EventBus()
    bus.subscribe(_cfg.MOVE_TOPIC, _print_move)
    session = FICSSession(args.login, args.password, bus)
    transport = TelnetTransport(session, args.host, args.port)
    session.start()
    transport.start()

    # queued until login and configuration are done
    for game_id in args.observe:
        session.observe(game_id)
    if args.games:
        _list_games(session, wait=_cfg.CONNECT_TIMEOUT + _cfg.RUN_TIMEOUT * 2)

    try:
        session.join()
    except KeyboardInterrupt:
        logger.info("Relay exiting")
    finally:
        transport.close()
        session.stop()
    sys.exit(0)


if __name__ == "__main__":  # pragma: no cover
    main()
