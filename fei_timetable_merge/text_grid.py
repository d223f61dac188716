"""
Fallback parser for legacy monospaced timetable pages (ASCII grids inside
<pre>), where nothing but character columns tells where an event starts
and ends.

Layout of such a page, roughly:

    Hod      1      2      3
    Zac    07:30  08:20  09:10
    Pon    ALG201 t05a   PROG-101
                         c101
    Uto    ...

Times are recovered by interpolating between the HH:MM tokens found in
the text (anchors), and events are the horizontal runs of "ink" below
each day label.
"""
from __future__ import annotations

import logging
import re
from typing import List, NamedTuple, Sequence, Tuple

from .model import Slot, day_label_pattern, normalize_day, valid_span
from .tokens import STRICT_TIME_RE, pick_room, pick_title, round_half_up, time_tokens

log = logging.getLogger(__name__)

ANCHOR_SCAN_LINES = 80
ANCHOR_TOLERANCE = 2
MIN_SEGMENT_WIDTH = 3

_DAY_LINE_RE = re.compile(r"^\s*(" + day_label_pattern() + r")\b")


class TimeAnchor(NamedTuple):
    column: int
    minute: int


class Segment(NamedTuple):
    start: int
    end: int  # exclusive


# ──────────────────────────────────────────────────────────────────
#  Anchor mapper: character column -> minute of day
# ──────────────────────────────────────────────────────────────────

def build_anchors(lines: Sequence[str]) -> List[TimeAnchor]:
    """
    Collect HH:MM tokens from the first lines of the page and cluster
    tokens within two columns of each other into one anchor (average
    column, earliest time). Falls back to 07:00 at column 0 and 20:00 at
    the widest line when fewer than two anchors are found.
    """
    head = list(lines[:ANCHOR_SCAN_LINES])
    matches: List[Tuple[int, int]] = []
    for line in head:
        matches.extend(time_tokens(line, STRICT_TIME_RE))
    matches.sort()

    clusters: List[List[int]] = []
    for column, minute in matches:
        if clusters and abs(column - clusters[-1][0]) <= ANCHOR_TOLERANCE:
            last = clusters[-1]
            last[0] = round_half_up((last[0] + column) / 2)
            last[1] = min(last[1], minute)
        else:
            clusters.append([column, minute])

    if len(clusters) < 2:
        width = max([len(line) for line in head] + [60])
        log.debug("text grid: %d anchor(s) found, using 07:00-20:00 fallback", len(clusters))
        return [TimeAnchor(0, 7 * 60), TimeAnchor(width, 20 * 60)]

    return sorted((TimeAnchor(c, m) for c, m in clusters), key=lambda a: a.column)


def column_to_minute(anchors: Sequence[TimeAnchor], column: int) -> int:
    """Piecewise-linear lookup, clamped to the outermost anchors."""
    first, last = anchors[0], anchors[-1]
    if column <= first.column:
        return first.minute
    if column >= last.column:
        return last.minute
    for a, b in zip(anchors, anchors[1:]):
        if a.column <= column <= b.column:
            t = (column - a.column) / max(1, b.column - a.column)
            return round_half_up(a.minute + t * (b.minute - a.minute))
    return first.minute


def build_mapper(lines: Sequence[str]) -> Tuple[List[TimeAnchor], int]:
    """Return the anchor list and the column where the time grid starts."""
    anchors = build_anchors(lines)
    return anchors, anchors[0].column


# ──────────────────────────────────────────────────────────────────
#  Segment finder
# ──────────────────────────────────────────────────────────────────

def pad_lines(lines: Sequence[str]) -> List[str]:
    if not lines:
        return []
    width = max(len(line) for line in lines)
    return [line.ljust(width) for line in lines]


def find_segments(padded_lines: Sequence[str], from_column: int) -> List[Segment]:
    """
    Find horizontal event spans in a block of equal-width lines.

    A column is active when any line has an alphanumeric character there.
    Gaps of one or two columns after an active column are bridged (looking
    ahead only), and runs narrower than three columns are dropped.
    """
    if not padded_lines:
        return []
    width = len(padded_lines[0])
    active = [0] * width

    for line in padded_lines:
        for c in range(from_column, width):
            if c < len(line) and line[c].isascii() and line[c].isalnum():
                active[c] += 1

    for c in range(from_column + 1, width - 1):
        if not active[c] and active[c - 1] and active[c + 1]:
            active[c] = 1
        if not active[c] and active[c - 1] and c + 2 < width and active[c + 2]:
            active[c] = 1

    segments: List[Segment] = []
    in_run = False
    start = from_column
    for c in range(from_column, width):
        if not in_run and active[c]:
            in_run = True
            start = c
        if in_run and (not active[c] or c == width - 1):
            end = c + 1 if active[c] else c
            if end - start >= MIN_SEGMENT_WIDTH:
                segments.append(Segment(start, end))
            in_run = False
    return segments


def segment_text(padded_lines: Sequence[str], segment: Segment) -> str:
    parts = []
    for line in padded_lines:
        piece = line[segment.start:segment.end].rstrip()
        if piece.strip():
            parts.append(piece)
    return "\n".join(parts)


# ──────────────────────────────────────────────────────────────────
#  Extractor
# ──────────────────────────────────────────────────────────────────

def parse_text_grid(text: str, source_url: str) -> List[Slot]:
    """Parse a monospaced timetable dump into slots."""
    lines = text.split("\n")
    anchors, grid_start = build_mapper(lines)
    log.debug("text grid: anchors=%s start column=%d", anchors, grid_start)

    day_starts = [i for i, line in enumerate(lines) if _DAY_LINE_RE.match(line)]

    slots: List[Slot] = []
    for n, first in enumerate(day_starts):
        last = day_starts[n + 1] if n + 1 < len(day_starts) else len(lines)
        day = normalize_day(_DAY_LINE_RE.match(lines[first]).group(1))
        if day is None:
            continue

        block = pad_lines(lines[first:last])
        for segment in find_segments(block, grid_start):
            start_min = column_to_minute(anchors, segment.start)
            end_min = column_to_minute(anchors, segment.end)
            if not valid_span(start_min, end_min):
                continue

            inside = segment_text(block, segment)
            title = pick_title(inside)
            if not title:
                continue
            slots.append(Slot(
                day=day,
                start_min=start_min,
                end_min=end_min,
                title=title,
                room=pick_room(inside),
                source_url=source_url,
            ))

    log.debug("text grid: %d slot(s) from %d day block(s)", len(slots), len(day_starts))
    return slots
