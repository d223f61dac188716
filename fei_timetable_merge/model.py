"""
Timetable data model: weekdays, parsed slots and merged rows.

A Slot is one parsed entry of a class-section timetable page
(rozvrhy.fei.stuba.sk style). A MergedRow is the same entry after it has
been combined with identical entries from other sections; ``groups``
lists the section labels that reported it.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Day(Enum):
    MON = "Pon"
    TUE = "Uto"
    WED = "Str"
    THU = "Stv"
    FRI = "Pia"


_DAY_MAP = {
    "Pon": Day.MON,
    "Uto": Day.TUE,
    "Str": Day.WED,
    "Stv": Day.THU,
    "Štv": Day.THU,  # legacy spelling on older pages
    "Pia": Day.FRI,
}

DAY_ORDER = {day: i for i, day in enumerate(Day)}

MINUTES_PER_DAY = 24 * 60

ELECTIVE_MARKERS = ("@", "#")


def normalize_day(text: str) -> Day | None:
    """Map a day label ('Pon', 'Štv', ...) to a Day. Case-sensitive."""
    return _DAY_MAP.get(text.strip())


def is_day_label(text: str) -> bool:
    return text.strip() in _DAY_MAP


def day_label_pattern() -> str:
    """Regex alternation of every recognised day label."""
    return "|".join(re.escape(label) for label in _DAY_MAP)


def is_elective_title(title: str) -> bool:
    """Titles starting with '@' or '#' are electives (opt-in downstream)."""
    return title.strip().startswith(ELECTIVE_MARKERS)


def format_hm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_hm(text: str) -> int:
    """Parse 'HH:MM' into minutes since midnight."""
    m = re.match(r"^\s*(\d{1,2}):([0-5]\d)\s*$", text or "")
    if not m:
        raise ValueError(f"Invalid time: {text!r} (expected HH:MM)")
    return int(m.group(1)) * 60 + int(m.group(2))


@dataclass(frozen=True)
class Slot:
    day: Day
    start_min: int
    end_min: int
    title: str
    room: Optional[str] = None
    source_url: str = ""

    def __post_init__(self) -> None:
        if not (0 <= self.start_min < self.end_min <= MINUTES_PER_DAY):
            raise ValueError(
                f"Invalid slot span {self.start_min}-{self.end_min} for {self.title!r}"
            )
        if not self.title:
            raise ValueError("Slot title must not be empty")


@dataclass(frozen=True)
class MergedRow(Slot):
    groups: Tuple[str, ...] = ()


SlotKey = Tuple[Day, int, int, str, str]


def slot_key(slot: Slot) -> SlotKey:
    """Identity key: two slots with the same key are the same timetable entry."""
    return (slot.day, slot.start_min, slot.end_min, slot.title, slot.room or "")


def valid_span(start_min: int, end_min: int) -> bool:
    return 0 <= start_min < end_min <= MINUTES_PER_DAY


# ──────────────────────────────────────────────────────────────────
#  Flat records (JSON / CSV / fixtures)
# ──────────────────────────────────────────────────────────────────

def to_record(row: Slot) -> Dict:
    groups: List[str] = list(getattr(row, "groups", ()))
    return {
        "day": row.day.value,
        "start": format_hm(row.start_min),
        "end": format_hm(row.end_min),
        "title": row.title,
        "room": row.room or "",
        "groups": groups,
        "source_url": row.source_url,
    }


def from_record(record: Dict) -> MergedRow:
    if not isinstance(record, dict):
        raise ValueError(f"Record must be an object, got {type(record).__name__}")
    day = normalize_day(record.get("day", ""))
    if day is None:
        raise ValueError(f"Unknown day in record: {record.get('day')!r}")
    groups = record.get("groups") or []
    if isinstance(groups, str):
        groups = [g.strip() for g in groups.split(",") if g.strip()]
    return MergedRow(
        day=day,
        start_min=parse_hm(record.get("start", "")),
        end_min=parse_hm(record.get("end", "")),
        title=record.get("title", ""),
        room=record.get("room") or None,
        source_url=record.get("source_url", ""),
        groups=tuple(dict.fromkeys(groups)),
    )
