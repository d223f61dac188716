"""Parse FEI class-section timetable pages and merge them into one schedule."""
from __future__ import annotations

__version__ = "0.1.0"

from .merge import merge_rows, merge_tagged
from .model import Day, MergedRow, Slot, is_elective_title
from .schedule_html import parse_schedule_html

__all__ = [
    "Day",
    "MergedRow",
    "Slot",
    "is_elective_title",
    "merge_rows",
    "merge_tagged",
    "parse_schedule_html",
]
