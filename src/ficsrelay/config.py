"""Central configuration for runtime-tunable parameters.

All constants can be overridden via environment variables so that the
relay talks to the public server with production timings by default, while
the automated test-suite can shorten the timers or point at a local fake.
"""

from __future__ import annotations

import os

# ===========================================================================
# Network Defaults
# ===========================================================================
# FICS_HOST: Host of the chess server to log into.
#   Defaults to "freechess.org".
#   Example: export FICS_HOST=127.0.0.1
DEFAULT_HOST: str = os.getenv("FICS_HOST", "freechess.org")

# FICS_PORT: Telnet port of the chess server.
#   Defaults to 5000 (the classic FICS port; 23 also works on the public server).
#   Example: export FICS_PORT=5001
DEFAULT_PORT: int = int(os.getenv("FICS_PORT", "5000"))

# FICS_CONNECT_TIMEOUT: seconds to wait for the TCP connection to open.
CONNECT_TIMEOUT: float = float(os.getenv("FICS_CONNECT_TIMEOUT", "10"))

# FICS_ENCODING: codec used to decode server output. FICS is plain 8-bit text.
ENCODING: str = os.getenv("FICS_ENCODING", "latin-1")


# ===========================================================================
# Credentials
# ===========================================================================
# FICS_LOGIN / FICS_PASSWORD: account used by the relay.
#   Example: export FICS_LOGIN=relay FICS_PASSWORD=secret
LOGIN_HANDLE: str = os.getenv("FICS_LOGIN", "relay")
LOGIN_PASSWORD: str = os.getenv("FICS_PASSWORD", "")


# ===========================================================================
# Session Timing Controls
# ===========================================================================
# FICS_RUN_TIMEOUT: seconds a submitted command may wait for a parseable reply.
#   Defaults to 7 seconds.
#   Example: export FICS_RUN_TIMEOUT=3
RUN_TIMEOUT: float = float(os.getenv("FICS_RUN_TIMEOUT", "7"))

# FICS_THROTTLE: cooldown (in seconds) after every completed exchange.
#   The server enforces rate limits, so never set this to 0 against a real server.
#   Defaults to 0.5.
THROTTLE_DELAY: float = float(os.getenv("FICS_THROTTLE", "0.5"))


# ===========================================================================
# Protocol Constants
# ===========================================================================
# Prompt the server prints after every completed reply; also the block
# delimiter once the transport switches to buffered mode.
EOM = "fics% "

LOGIN_PROMPT = "login: "
PASSWORD_PROMPT = "password: "

# One-time configuration sent right after login: mute seeks, shouts and
# notifications, leave the noisy channels, ignore kibitzes from players
# below 3000 and select the style-12 board output.
CONFIGURE_COMMANDS: tuple[str, ...] = (
    *(f"set {var} 0" for var in ("seek", "shout", "cshout", "pin", "gin")),
    *(f"- channel {chan}" for chan in (1, 4, 53)),
    "set kiblevel 3000",
    "style 12",
)

# Topic under which move events are published.
MOVE_TOPIC = "relay.move"


# ===========================================================================
# Debugging and Logging
# ===========================================================================
# FICS_DEBUG: If "1", enables detailed debug logging across modules.
#   Defaults to "0" (disabled).
#   Example: export FICS_DEBUG=1
DEBUG: bool = os.getenv("FICS_DEBUG", "0") == "1"
