"""
Export merged timetable rows to ICS, CSV, and JSON.
"""
from __future__ import annotations

import csv
import hashlib
import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import List, Sequence

import icalendar
import pytz

from .model import Day, MergedRow, format_hm, from_record, to_record

# Slovak timezone for calendar
TZ_SK = "Europe/Bratislava"

CSV_FIELDS = ["day", "start", "end", "title", "room", "groups", "source_url"]

_WEEKDAY_INDEX = {
    Day.MON: 0, Day.TUE: 1, Day.WED: 2, Day.THU: 3, Day.FRI: 4,
}


def _first_date_for_weekday(start: date, day: Day) -> date:
    offset = (_WEEKDAY_INDEX[day] - start.weekday()) % 7
    return start + timedelta(days=offset)


def _as_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def export_ics(
    rows: Sequence[MergedRow],
    out_path: str | Path,
    term_start: str | date | None = None,
    term_end: str | date | None = None,
    tz_name: str = TZ_SK,
) -> None:
    """Export rows as weekly recurring events between term_start and term_end."""
    if not term_start or not term_end:
        raise ValueError(
            "ICS export needs term dates. Provide --term-start and --term-end (YYYY-MM-DD)."
        )
    first_day = _as_date(term_start)
    last_day = _as_date(term_end)
    tz = pytz.timezone(tz_name)

    cal = icalendar.Calendar()
    cal.add("prodid", "-//FEI Timetable Merge//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", "FEI Timetable")
    cal.add("x-wr-timezone", tz_name)

    until_dt = datetime(last_day.year, last_day.month, last_day.day, 23, 59, 59, tzinfo=timezone.utc)

    for row in rows:
        event_date = _first_date_for_weekday(first_day, row.day)
        if event_date > last_day:
            continue
        midnight = datetime(event_date.year, event_date.month, event_date.day)
        start = midnight + timedelta(minutes=row.start_min)
        end = midnight + timedelta(minutes=row.end_min)

        event = icalendar.Event()

        uid_string = f"{row.title}-{row.day.value}-{format_hm(row.start_min)}-{row.room or ''}"
        uid_hash = hashlib.md5(uid_string.encode("utf-8")).hexdigest()
        event.add("uid", f"{uid_hash}@fei-timetable-merge")

        event.add("summary", row.title)
        event.add("description", f"Groups: {', '.join(row.groups)}")
        if row.room:
            event.add("location", row.room)

        event.add("dtstart", tz.localize(start))
        event.add("dtend", tz.localize(end))
        event.add("dtstamp", datetime.now(timezone.utc))
        event.add("rrule", {"freq": "weekly", "until": until_dt})

        cal.add_component(event)

    Path(out_path).write_text(cal.to_ical().decode("utf-8"), encoding="utf-8")


def export_csv(rows: Sequence[MergedRow], out_path: str | Path) -> None:
    """Export rows to CSV (groups joined with ', ')."""
    if not rows:
        Path(out_path).write_text("", encoding="utf-8")
        return
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS, extrasaction="ignore")
        w.writeheader()
        for row in rows:
            record = to_record(row)
            record["groups"] = ", ".join(record["groups"])
            w.writerow(record)


def export_json(rows: Sequence[MergedRow], out_path: str | Path) -> None:
    """Export rows to JSON, one record per row."""
    Path(out_path).write_text(
        json.dumps([to_record(r) for r in rows], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def load_json(path: str | Path) -> List[MergedRow]:
    """Read rows back from a JSON export (to merge them again)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of rows")
    return [from_record(record) for record in data]


def export(rows: Sequence[MergedRow], out_path: str | Path, fmt: str, **kwargs) -> None:
    """Export to the given format: ics, csv, or json."""
    fmt = fmt.lower()
    if fmt == "ics":
        export_ics(rows, out_path, **kwargs)
    elif fmt == "csv":
        export_csv(rows, out_path)
    elif fmt == "json":
        export_json(rows, out_path)
    else:
        raise ValueError(f"Unsupported format: {fmt}. Use ics, csv, or json.")
