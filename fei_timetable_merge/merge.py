"""
Merge slots parsed from many class-section pages into one weekly
schedule, remembering which sections ("groups") share each entry.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Mapping, NamedTuple, Sequence

from .model import DAY_ORDER, MergedRow, Slot, SlotKey, is_elective_title, slot_key


def _sort_key(row: Slot):
    return (DAY_ORDER[row.day], row.start_min, row.title)


def _row_with_groups(slot: Slot, groups: Sequence[str]) -> MergedRow:
    return MergedRow(
        day=slot.day,
        start_min=slot.start_min,
        end_min=slot.end_min,
        title=slot.title,
        room=slot.room,
        source_url=slot.source_url,
        groups=tuple(dict.fromkeys(groups)),
    )


def tag_slots(slots: Iterable[Slot], label: str) -> List[MergedRow]:
    """Attach one source label to freshly parsed slots."""
    return [_row_with_groups(s, [label]) for s in slots]


def merge_rows(rows: Iterable[MergedRow]) -> List[MergedRow]:
    """
    Combine rows with the same identity key (day, start, end, title, room).

    Groups are unioned in order of first appearance. The result is sorted
    by weekday, start time and title. Merging is idempotent, and merging
    in batches gives the same rows as merging everything at once.
    """
    first: Dict[SlotKey, MergedRow] = {}
    groups: Dict[SlotKey, Dict[str, None]] = {}
    for row in rows:
        key = slot_key(row)
        if key not in first:
            first[key] = row
            groups[key] = {}
        for g in row.groups:
            groups[key].setdefault(g, None)

    merged = [_row_with_groups(first[k], list(groups[k])) for k in first]
    return sorted(merged, key=_sort_key)


def merge_tagged(
    slots: Iterable[Slot], label_of: Callable[[Slot], str]
) -> List[MergedRow]:
    """Merge plain slots, labelling each with ``label_of(slot)``."""
    return merge_rows(_row_with_groups(s, [label_of(s)]) for s in slots)


# ──────────────────────────────────────────────────────────────────
#  Title search across sections
# ──────────────────────────────────────────────────────────────────

class TitleMatch(NamedTuple):
    title: str
    rows: List[MergedRow]


def search_by_title(
    slots_by_label: Mapping[str, Sequence[Slot]], needle: str
) -> List[TitleMatch]:
    """
    Find a course in every section's timetable.

    Slots whose title contains ``needle`` (case-insensitive) are grouped by
    title regardless of case, each group is merged, and the groups are
    returned sorted by title.
    """
    needle = needle.strip().lower()
    if not needle:
        return []

    per_title: Dict[str, List[MergedRow]] = {}
    for label, slots in slots_by_label.items():
        for s in slots:
            if needle in s.title.lower():
                per_title.setdefault(s.title.strip().upper(), []).append(
                    _row_with_groups(s, [label])
                )

    matches = []
    for key, rows in per_title.items():
        merged = merge_rows(rows)
        matches.append(TitleMatch(merged[0].title if merged else key, merged))
    return sorted(matches, key=lambda m: m.title)


# ──────────────────────────────────────────────────────────────────
#  Elective opt-in / hidden rows
# ──────────────────────────────────────────────────────────────────

def select_rows(
    rows: Iterable[MergedRow],
    electives: Iterable[str] = (),
    all_electives: bool = False,
    hidden: Iterable[SlotKey] = (),
) -> List[MergedRow]:
    """
    Drop elective rows that were not opted into, and hidden rows.

    :param electives: Elective titles to keep (exact, after stripping).
    :param all_electives: Keep every elective row.
    :param hidden: Identity keys of rows to drop.
    """
    wanted = {t.strip() for t in electives}
    hidden_keys = set(hidden)
    selected = []
    for row in rows:
        if slot_key(row) in hidden_keys:
            continue
        if is_elective_title(row.title) and not all_electives and row.title.strip() not in wanted:
            continue
        selected.append(row)
    return selected
