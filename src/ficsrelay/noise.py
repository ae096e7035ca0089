"""Keep the diagnostic log readable.

Server text that is not a reply we are waiting for ends up in the log. Bare
prompts are dropped and blocks matching a known-boring pattern are not
logged at all. None of this affects what the session does.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

NOISE_PATTERNS = [
    # re.compile(r"(?is)^\n\w+(\([^\)]+\)){1,2}:\s.+\nfics\%\s$"),  # people chatting
    # re.compile(r"(?is)^\n\w+(\([^\)]+\)){1,2}\[\d+\]\s.+\nfics\%\s$"),  # people whispering
    re.compile(r"^\(told relay\)$"),
    re.compile(r"^Game \d+: relay has set .+ clock to .+"),
    re.compile(r"^relay\(.+\)\[\d+\] kibitzes: .+"),
    re.compile(r"(?s).*Welcome to the Free Internet Chess Server.*"),
    re.compile(r"(?s).*Starting FICS session.*"),
    re.compile(r"(?s).*ROBOadmin.*"),
    re.compile(r"ANNOUNCEMENT"),
]


def is_prompt(line: str) -> bool:
    return line.strip() == "fics%"


def strip_prompts(lines: Iterable[str]) -> List[str]:
    return [line for line in lines if not is_prompt(line)]


def is_noise(block: str) -> bool:
    return any(p.fullmatch(block) for p in NOISE_PATTERNS)


def format_block(state: str, block: str) -> Optional[str]:
    """Render *block* for the log, or None when there is nothing worth logging."""
    body = "\n".join(line for line in block.splitlines() if line.strip())
    if not body or is_noise(body):
        return None
    return f"FICS[{state}] {body}"


def format_lines(state: str, lines: Iterable[str]) -> Optional[str]:
    return format_block(state, "\n".join(strip_prompts(lines)))
