"""
Token heuristics shared by the table and text-grid extractors:
HH:MM times, room codes and course titles.
"""
from __future__ import annotations

import math
import re
from typing import Iterator, Optional, Tuple

from .model import MINUTES_PER_DAY, day_label_pattern

TIME_RE = re.compile(r"\b(\d{1,2})\s*:\s*([0-5]\d)\b")
# Monospaced dumps: the colon sits directly between the digits.
STRICT_TIME_RE = re.compile(r"\b(\d{1,2}):([0-5]\d)\b")
ROOM_RE = re.compile(r"\b[a-z]{1,2}\d{2,3}[a-z]?\b", re.IGNORECASE)
TITLE_RE = re.compile(r"[@#]?[A-Za-z0-9]{3,}[-A-Za-z0-9]*")

# Labels that look like titles but never are: day names and the
# "Hod"/"Zac" corner labels of the grid header.
_NOT_A_TITLE_RE = re.compile(
    r"^(?:" + day_label_pattern() + r"|Hod|Zac)$", re.IGNORECASE
)


def time_tokens(text: str, pattern: re.Pattern[str] = TIME_RE) -> Iterator[Tuple[int, int]]:
    """Yield (column, minute_of_day) for each decodable HH:MM token in text."""
    for m in pattern.finditer(text):
        hours, minutes = int(m.group(1)), int(m.group(2))
        total = hours * 60 + minutes
        if total > MINUTES_PER_DAY:
            continue
        yield m.start(), total


def count_time_tokens(text: str) -> int:
    return sum(1 for _ in time_tokens(text))


def last_time(text: str) -> Optional[int]:
    """The last HH:MM in text (a '7:00 - 7:45' cell anchors on 7:45)."""
    last = None
    for _, minute in time_tokens(text):
        last = minute
    return last


def pick_room(text: str) -> str | None:
    m = ROOM_RE.search(text)
    return m.group(0) if m else None


def pick_title(text: str) -> str | None:
    """Longest title-shaped token, ignoring day and header labels."""
    candidates = [
        t for t in TITLE_RE.findall(text) if not _NOT_A_TITLE_RE.match(t)
    ]
    if not candidates:
        return None
    return max(candidates, key=len)


def normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace("\u00a0", " ")).strip()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
