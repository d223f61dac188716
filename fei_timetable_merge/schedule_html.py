"""
Parse a class-section timetable page (rozvrhy.fei.stuba.sk, saved or
fetched) into a list of Slots.

Usage pattern:
- the page is either a modern HTML grid or an older ASCII dump in <pre>
- the grid is tried first; the text grid is the fallback

The HTML grid structure:
- one or two header rows; the first cell is a corner label ("Hod", "Zac"),
  the others carry lesson numbers and/or HH:MM start times, possibly
  with colspan.
- data rows start with a day cell (Pon, Uto, Str, Stv, Pia). Rows with
  no day cell continue the previous day (parallel lessons).
- event cells span their lesson columns via colspan, with lines like:
    "PROG-101<br>c101"
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag  # type: ignore[import]
from bs4.element import Comment, NavigableString

from .model import Day, Slot, day_label_pattern, normalize_day, valid_span
from .text_grid import parse_text_grid
from .tokens import (
    count_time_tokens,
    last_time,
    normalize_text,
    pick_room,
    pick_title,
    round_half_up,
)

log = logging.getLogger(__name__)

DEFAULT_FIRST_LESSON = 7 * 60
DEFAULT_LESSON_COUNT = 14
LESSON_LENGTH = 60

_TABLE_MARKUP_RE = re.compile(r"<table[\s>]", re.IGNORECASE)
_PRE_RE = re.compile(r"<pre[^>]*>(.*?)</pre>", re.IGNORECASE | re.DOTALL)
# Day column as printed, in any case; only the exact labels map to a Day.
_DAY_CELL_RE = re.compile(r"^(?:" + day_label_pattern() + r")$", re.IGNORECASE)


# ──────────────────────────────────────────────────────────────────
#  Cell helpers
# ──────────────────────────────────────────────────────────────────

def _row_cells(tr: Tag) -> List[Tag]:
    return tr.find_all(["td", "th"], recursive=False)


def _colspan(cell: Tag) -> int:
    try:
        span = int(cell.get("colspan", 1))
    except (TypeError, ValueError):
        return 1
    return span if span > 0 else 1


def _cell_text(cell: Tag) -> str:
    return normalize_text(cell.get_text(separator=" "))


def _cell_lines(cell: Tag) -> List[str]:
    """Text of a cell split on <br> (and raw newlines); trimmed, non-empty."""
    parts: List[str] = []
    for node in cell.descendants:
        if isinstance(node, Tag):
            if node.name == "br":
                parts.append("\n")
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            parts.append(str(node))
    text = "".join(parts).replace("\u00a0", " ")
    return [line.strip() for line in text.split("\n") if line.strip()]


def _first_cell_day(cells: Sequence[Tag]) -> Tuple[bool, Optional[Day]]:
    """(is the first cell a day label, which day). 'PON' is a label with no day."""
    if not cells:
        return False, None
    text = _cell_text(cells[0])
    if not _DAY_CELL_RE.match(text):
        return False, None
    return True, normalize_day(text)


# ──────────────────────────────────────────────────────────────────
#  Header: lesson columns -> minute boundaries
# ──────────────────────────────────────────────────────────────────

def _hourly(start: int, count: int) -> List[int]:
    anchors = [start + i * LESSON_LENGTH for i in range(count)]
    return anchors + [anchors[-1] + LESSON_LENGTH]


def header_boundaries(header_rows: Sequence[Tag]) -> List[int]:
    """
    Build column boundaries (minutes) from the header rows.

    The row with the most HH:MM tokens wins (ties: first). Each of its
    cells after the corner label contributes its last time; a cell with
    colspan N feeds N logical columns, spread evenly up to the next
    cell's time. The result is padded (+60 min) or truncated to the
    expected column count and closed with one more boundary 60 min after
    the last start. No times at all -> 14 hourly lessons from 07:00.
    """
    best_cells: List[Tag] = []
    best_count = 0
    for tr in header_rows:
        cells = _row_cells(tr)[1:]
        count = sum(count_time_tokens(c.get_text(separator=" ")) for c in cells)
        if count > best_count:
            best_count, best_cells = count, cells

    if best_count == 0:
        return _hourly(DEFAULT_FIRST_LESSON, DEFAULT_LESSON_COUNT)

    columns = sum(_colspan(c) for c in best_cells) or DEFAULT_LESSON_COUNT

    timed: List[Tuple[int, int]] = []
    for cell in best_cells:
        minute = last_time(cell.get_text(separator=" "))
        if minute is not None:
            timed.append((minute, _colspan(cell)))

    if len(timed) < 2:
        return _hourly(DEFAULT_FIRST_LESSON, columns)

    anchors: List[int] = []
    for i, (minute, span) in enumerate(timed):
        following = timed[i + 1][0] if i + 1 < len(timed) else minute + span * LESSON_LENGTH
        step = (following - minute) / span
        anchors.extend(round_half_up(minute + k * step) for k in range(span))

    while len(anchors) < columns:
        anchors.append(anchors[-1] + LESSON_LENGTH)
    del anchors[columns:]
    return anchors + [anchors[-1] + LESSON_LENGTH]


# ──────────────────────────────────────────────────────────────────
#  Strategy 1: HTML grid table (primary)
# ──────────────────────────────────────────────────────────────────

def parse_table(table: Tag, source_url: str) -> List[Slot]:
    """Parse one <table> of the timetable grid."""
    rows = table.find_all("tr")
    if not rows:
        return []

    first_day_idx = next(
        (i for i, tr in enumerate(rows) if _first_cell_day(_row_cells(tr))[0]),
        -1,
    )
    header_rows = rows[:first_day_idx] if first_day_idx > 0 else rows[:2]
    boundaries = header_boundaries(header_rows)
    log.debug("table: rows=%d first day row=%d boundaries=%s",
              len(rows), first_day_idx, boundaries)
    if len(boundaries) < 2:
        return []

    slots: List[Slot] = []
    current_day: Optional[Day] = None
    start_at = first_day_idx if first_day_idx >= 0 else 1

    for tr in rows[start_at:]:
        cells = _row_cells(tr)
        if not cells:
            continue

        is_day, day = _first_cell_day(cells)
        if is_day:
            current_day = day
            cells = cells[1:]
        if current_day is None:
            continue

        cursor = 0
        for cell in cells:
            span = _colspan(cell)
            lines = _cell_lines(cell)
            if lines and cursor < len(boundaries) - 1:
                start_min = boundaries[cursor]
                end_min = boundaries[min(cursor + span, len(boundaries) - 1)]
                joined = " ".join(lines)
                # First line wins as the title; a room-only first line is
                # a known source of mis-titled slots on irregular pages.
                title = lines[0] or pick_title(joined)
                room = next(
                    (r for r in map(pick_room, lines[1:]) if r), None
                ) or pick_room(joined)
                if title and valid_span(start_min, end_min):
                    slots.append(Slot(
                        day=current_day,
                        start_min=start_min,
                        end_min=end_min,
                        title=title,
                        room=room,
                        source_url=source_url,
                    ))
            cursor += span

    return slots


def _parse_tables(html: str, source_url: str) -> List[Slot]:
    if not _TABLE_MARKUP_RE.search(html):
        return []
    soup = BeautifulSoup(html, "html.parser")
    tables = soup.find_all("table")
    log.debug("tables found: %d", len(tables))

    slots: List[Slot] = []
    for idx, table in enumerate(tables):
        part = parse_table(table, source_url)
        log.debug("table #%d: %d slot(s)", idx, len(part))
        slots.extend(part)
    return slots


# ──────────────────────────────────────────────────────────────────
#  Strategy 2: monospaced text (legacy <pre> pages)
# ──────────────────────────────────────────────────────────────────

def extract_pre_text(html: str) -> str:
    """
    Plain text of the first <pre> block, or of the whole document when
    there is none. Entities are decoded and tags dropped; column layout
    is kept.
    """
    m = _PRE_RE.search(html)
    fragment = m.group(1) if m else html
    text = BeautifulSoup(fragment, "html.parser").get_text()
    return text.replace("\r", "").replace("\u00a0", " ")


def _parse_text(html: str, source_url: str) -> List[Slot]:
    return parse_text_grid(extract_pre_text(html), source_url)


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

Strategy = Callable[[str, str], List[Slot]]

# Tried in order; the first non-empty result wins.
STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("table", _parse_tables),
    ("text", _parse_text),
)


def parse_schedule_html(
    *,
    html_path: str | Path | None = None,
    html_content: str | None = None,
    source_url: str | None = None,
) -> List[Slot]:
    """
    Parse a timetable page into slots.

    :param html_path: Path to a saved page.
    :param html_content: Raw page content, HTML or plain text (alternative to html_path).
    :param source_url: Origin written into every Slot. Defaults to html_path.
    :returns: Slots in document order; empty when nothing was recognised.
    """
    if html_content is not None:
        html = html_content
    elif html_path is not None:
        html = Path(html_path).read_text(encoding="utf-8", errors="ignore")
    else:
        raise ValueError("Provide either html_path or html_content.")

    if source_url is None:
        source_url = str(html_path) if html_path is not None else ""

    for i, (name, strategy) in enumerate(STRATEGIES):
        try:
            slots = strategy(html, source_url)
        except Exception as e:
            if i == len(STRATEGIES) - 1:
                raise
            log.debug("%s strategy failed for %s, falling back: %s", name, source_url, e)
            continue
        log.debug("%s strategy: %d slot(s) from %s", name, len(slots), source_url)
        if slots:
            return slots
    return []
