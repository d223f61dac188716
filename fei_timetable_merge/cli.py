"""
Command-line interface: merge saved class-section timetables and export to file.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from . import __version__
from .batch import DEFAULT_WORKERS, Source, collect_slots
from .export import export, load_json
from .merge import merge_rows, merge_tagged, search_by_title, select_rows
from .model import MergedRow, format_hm


def _parse_source(arg: str) -> Source:
    """'LABEL=PATH' or just 'PATH' (label = file stem)."""
    label, sep, path = arg.partition("=")
    if sep and label and path:
        return Source(label.strip(), path.strip())
    return Source(Path(arg).stem, arg)


def _read_file(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="ignore")


def _print_rows(rows: List[MergedRow]) -> None:
    print("Day | Time        | Title                | Room  | Groups")
    print("-" * 72)
    for r in rows:
        span = f"{format_hm(r.start_min)}-{format_hm(r.end_min)}"
        print(f"{r.day.value:<3} | {span:<11} | {r.title[:20]:<20} | {(r.room or ''):<5} | {', '.join(r.groups)}")


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Merge FEI class-section timetables into one weekly schedule and export it "
            "to ICS / CSV / JSON.\n"
            "Each SOURCE is a saved timetable page (HTML grid or old <pre> text page)."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "sources",
        nargs="*",
        metavar="SOURCE",
        help="Saved timetable page, as PATH or LABEL=PATH (label defaults to the file name).",
    )
    parser.add_argument(
        "--merge-json",
        action="append",
        default=[],
        metavar="PATH",
        help="Previously exported JSON to merge in (repeatable).",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="fei_timetable",
        help="Output path (without extension). Default: fei_timetable",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["ics", "csv", "json"],
        default="json",
        help="Export format. Default: json",
    )
    parser.add_argument(
        "--term-start",
        metavar="YYYY-MM-DD",
        help="(ics) First teaching day of the term, e.g. 2025-09-22.",
    )
    parser.add_argument(
        "--term-end",
        metavar="YYYY-MM-DD",
        help="(ics) Last teaching day of the term, e.g. 2025-12-19.",
    )
    parser.add_argument(
        "--elective",
        action="append",
        default=[],
        metavar="TITLE",
        help="Keep this elective (titles starting with @ or #). Repeatable.",
    )
    parser.add_argument(
        "--all-electives",
        action="store_true",
        help="Keep every elective row.",
    )
    parser.add_argument(
        "--search",
        metavar="TEXT",
        help="Find a course by (part of) its title in all SOURCEs, print matches and exit.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print the merged rows instead of exporting.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Pages parsed in parallel. Default: {DEFAULT_WORKERS}",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose parser diagnostics.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if not args.sources and not args.merge_json:
        print("Error: give at least one SOURCE page or --merge-json file.", file=sys.stderr)
        return 1

    sources = [_parse_source(s) for s in args.sources]
    missing = [s.url for s in sources if not Path(s.url).exists()]
    if missing:
        print(f"Error: file not found: {', '.join(missing)}", file=sys.stderr)
        return 1

    collected = collect_slots(sources, _read_file, workers=args.workers)

    if args.search:
        matches = search_by_title(collected, args.search)
        if not matches:
            print(f"No course matching {args.search!r}.")
            return 0
        for m in matches:
            print(f"\n{m.title}")
            _print_rows(m.rows)
        return 0

    url_to_label = {s.url: s.label for s in sources}
    rows = merge_tagged(
        [slot for slots in collected.values() for slot in slots],
        lambda s: url_to_label.get(s.source_url, s.source_url),
    )
    try:
        for path in args.merge_json:
            rows = merge_rows(rows + load_json(path))
    except (OSError, ValueError) as e:
        print(f"Error reading --merge-json: {e}", file=sys.stderr)
        return 1

    rows = select_rows(rows, electives=args.elective, all_electives=args.all_electives)

    if args.list:
        _print_rows(rows)
        return 0

    ext = {"ics": ".ics", "csv": ".csv", "json": ".json"}[args.format]
    out_path = Path(args.output).with_suffix(ext) if Path(args.output).suffix else Path(args.output + ext)
    kwargs = {"term_start": args.term_start, "term_end": args.term_end} if args.format == "ics" else {}
    try:
        export(rows, out_path, args.format, **kwargs)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Exported {len(rows)} row(s) from {len(sources)} page(s) to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
