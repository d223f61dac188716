"""Tests for text_grid.py – monospaced (<pre>) timetable fallback."""
from fei_timetable_merge.model import Day
from fei_timetable_merge.text_grid import (
    Segment,
    TimeAnchor,
    build_anchors,
    build_mapper,
    column_to_minute,
    find_segments,
    pad_lines,
    parse_text_grid,
    segment_text,
)


# ── Anchor mapper ──────────────────────────────────────────────

class TestBuildAnchors:
    def test_anchor_per_time_token(self):
        anchors = build_anchors(["Pon 07:00        08:00"])
        assert anchors == [TimeAnchor(4, 420), TimeAnchor(17, 480)]

    def test_nearby_tokens_are_clustered(self):
        lines = [
            "   7:00          9:00",
            "    7:30",
        ]
        # 7:00 @3 and 7:30 @4 fold into one anchor: column 4, earliest time
        assert build_anchors(lines) == [TimeAnchor(4, 420), TimeAnchor(17, 540)]

    def test_fallback_without_times(self):
        assert build_anchors(["no times here"]) == [TimeAnchor(0, 420), TimeAnchor(60, 1200)]

    def test_fallback_uses_widest_line(self):
        wide = "x" * 75
        assert build_anchors([wide, "7:00"]) == [TimeAnchor(0, 420), TimeAnchor(75, 1200)]

    def test_spaced_colon_is_not_an_anchor(self):
        # "9 :00" is not a column header in a monospaced dump
        anchors = build_anchors(["Pon 07:00        9 :00       10:00"])
        assert [a.minute for a in anchors] == [420, 600]

    def test_only_first_80_lines_scanned(self):
        lines = [""] * 80 + ["07:00     08:00"]
        assert build_anchors(lines)[0] == TimeAnchor(0, 420)

    def test_start_column(self):
        anchors, start = build_mapper(["Zac   07:00     08:00"])
        assert start == 6
        assert anchors[0] == TimeAnchor(6, 420)


class TestColumnToMinute:
    ANCHORS = [TimeAnchor(10, 420), TimeAnchor(20, 480), TimeAnchor(30, 600)]

    def test_clamps_outside(self):
        assert column_to_minute(self.ANCHORS, 0) == 420
        assert column_to_minute(self.ANCHORS, 99) == 600

    def test_exact_anchor(self):
        assert column_to_minute(self.ANCHORS, 20) == 480

    def test_interpolates(self):
        assert column_to_minute(self.ANCHORS, 15) == 450
        assert column_to_minute(self.ANCHORS, 13) == 438
        assert column_to_minute(self.ANCHORS, 25) == 540

    def test_rounds_half_up(self):
        assert column_to_minute([TimeAnchor(0, 420), TimeAnchor(4, 422)], 1) == 421


# ── Segment finder ─────────────────────────────────────────────

class TestFindSegments:
    def test_two_column_run_is_not_a_segment(self):
        assert find_segments(["      XY      "], 0) == []

    def test_one_and_two_column_gaps_are_bridged(self):
        assert find_segments(["ABC DEF"], 0) == [Segment(0, 7)]
        assert find_segments(["ABC  DEF"], 0) == [Segment(0, 8)]

    def test_three_column_gap_splits(self):
        assert find_segments(["ABC   DEF"], 0) == [Segment(0, 3), Segment(6, 9)]

    def test_ink_counted_across_lines(self):
        lines = pad_lines(["ALG", "   201"])
        assert find_segments(lines, 0) == [Segment(0, 6)]

    def test_from_column(self):
        assert find_segments(["Pon   MATH1"], 6) == [Segment(6, 11)]

    def test_punctuation_is_not_ink(self):
        assert find_segments(["---  ---"], 0) == []

    def test_empty(self):
        assert find_segments([], 0) == []


def test_segment_text_slices_every_line():
    lines = pad_lines(["Pon   MATH1", "      c101  xyz"])
    assert segment_text(lines, Segment(6, 11)) == "MATH1\nc101"


# ── Extractor ──────────────────────────────────────────────────

class TestParseTextGrid:
    def test_single_event_under_time_span(self):
        text = "Pon 07:00        08:00\n      ALG201 t05a"
        [s] = parse_text_grid(text, "u")
        assert s.day is Day.MON
        assert s.title == "ALG201"
        assert s.room == "t05a"
        assert abs(s.start_min - 420) <= 1
        assert abs(s.end_min - 480) <= 1
        assert s.source_url == "u"

    def test_day_blocks(self):
        text = "\n".join([
            "Zac   07:00     08:00     09:00",
            "Pon   MATH1 c101",
            "Uto             FYZ22 b202",
            "                @ENVI",
            "Štv   LAB1",
        ])
        slots = parse_text_grid(text, "u")
        assert [(s.day, s.start_min, s.end_min, s.title, s.room) for s in slots] == [
            (Day.MON, 420, 480, "MATH1", "c101"),
            (Day.TUE, 480, 540, "FYZ22", "b202"),
            (Day.THU, 420, 444, "LAB1", None),
        ]

    def test_narrow_ink_never_becomes_slot(self):
        text = "Zac   07:00     08:00\nPon         AB"
        assert parse_text_grid(text, "u") == []

    def test_zero_duration_dropped(self):
        # event entirely right of the last anchor maps to a zero-length span
        text = "Zac   07:00     08:00\nPon                       LATE1"
        assert parse_text_grid(text, "u") == []

    def test_lines_without_day_ignored(self):
        assert parse_text_grid("Zac   07:00     08:00\n      MATH1", "u") == []
