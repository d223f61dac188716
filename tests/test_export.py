import json

import pytest

from fei_timetable_merge.export import export, export_csv, export_ics, export_json, load_json
from fei_timetable_merge.model import Day, MergedRow

ROWS = [
    MergedRow(
        day=Day.TUE, start_min=450, end_min=540, title="PROG-101", room="c101",
        source_url="http://x/1bc_API_1.html", groups=("1bc_API_1", "1bc_API_2"),
    ),
    MergedRow(
        day=Day.FRI, start_min=600, end_min=690, title="@ENVI",
        source_url="http://x/1bc_API_1.html", groups=("1bc_API_1",),
    ),
]


def test_export_ics(tmp_path):
    out_path = tmp_path / "test.ics"
    export_ics(ROWS, out_path, term_start="2025-09-22", term_end="2025-12-19")

    assert out_path.exists()
    content = out_path.read_text(encoding="utf-8")

    # Verify standard ICS elements
    assert "BEGIN:VCALENDAR" in content
    assert content.count("BEGIN:VEVENT") == 2
    assert "END:VCALENDAR" in content

    # First Tuesday on/after Monday 2025-09-22, local Bratislava time
    assert "DTSTART;TZID=Europe/Bratislava:20250923T073000" in content
    assert "DTEND;TZID=Europe/Bratislava:20250923T090000" in content
    assert "DTSTART;TZID=Europe/Bratislava:20250926T100000" in content

    assert "SUMMARY:PROG-101" in content
    assert "LOCATION:c101" in content
    assert "@fei-timetable-merge" in content

    assert "UNTIL=20251219T235959Z" in content
    assert "FREQ=WEEKLY" in content


def test_export_ics_needs_term_dates(tmp_path):
    with pytest.raises(ValueError, match="term"):
        export_ics(ROWS, tmp_path / "x.ics")


def test_export_json_round_trip(tmp_path):
    out_path = tmp_path / "rows.json"
    export_json(ROWS, out_path)
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert data[0]["day"] == "Uto"
    assert data[0]["groups"] == ["1bc_API_1", "1bc_API_2"]
    assert data[1]["room"] == ""
    assert load_json(out_path) == ROWS


def test_export_csv(tmp_path):
    out_path = tmp_path / "rows.csv"
    export_csv(ROWS, out_path)
    lines = out_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "day,start,end,title,room,groups,source_url"
    assert lines[1] == 'Uto,07:30,09:00,PROG-101,c101,"1bc_API_1, 1bc_API_2",http://x/1bc_API_1.html'


def test_export_csv_empty(tmp_path):
    out_path = tmp_path / "rows.csv"
    export_csv([], out_path)
    assert out_path.read_text(encoding="utf-8") == ""


def test_export_dispatch(tmp_path):
    export(ROWS, tmp_path / "rows.json", "JSON")
    assert (tmp_path / "rows.json").exists()
    with pytest.raises(ValueError, match="Unsupported format"):
        export(ROWS, tmp_path / "rows.xml", "xml")


def test_load_json_rejects_non_list(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text('{"day": "Pon"}', encoding="utf-8")
    with pytest.raises(ValueError):
        load_json(path)
