"""
Load many class-section pages with a small worker pool and merge them.

Fetching is left to the caller: pass any ``fetch(url) -> str``. A source
whose fetch or parse fails is logged and contributes no slots; the rest
of the batch carries on.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, NamedTuple, Sequence

from .merge import merge_tagged
from .model import MergedRow, Slot
from .schedule_html import parse_schedule_html

log = logging.getLogger(__name__)

DEFAULT_WORKERS = 3

Fetch = Callable[[str], str]


class Source(NamedTuple):
    label: str  # section label, e.g. "1bc_API_1"
    url: str


def _load(source: Source, fetch: Fetch) -> List[Slot]:
    try:
        html = fetch(source.url)
        slots = parse_schedule_html(html_content=html, source_url=source.url)
    except Exception as e:
        log.warning("Skipping %s (%s): %s", source.label, source.url, e)
        return []
    log.debug("%s: %d slot(s)", source.label, len(slots))
    return slots


def collect_slots(
    sources: Sequence[Source], fetch: Fetch, workers: int = DEFAULT_WORKERS
) -> Dict[str, List[Slot]]:
    """Fetch and parse every source; returns {label: slots} in input order."""
    if not sources:
        return {}
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(sources)))) as executor:
        results = list(executor.map(lambda s: _load(s, fetch), sources))

    collected: Dict[str, List[Slot]] = {}
    for source, slots in zip(sources, results):
        collected.setdefault(source.label, []).extend(slots)
    log.info("Parsed %d slot(s) from %d source(s)",
             sum(len(s) for s in collected.values()), len(sources))
    return collected


def merge_sources(
    sources: Sequence[Source], fetch: Fetch, workers: int = DEFAULT_WORKERS
) -> List[MergedRow]:
    """Collect every source, then merge with section labels as groups."""
    url_to_label = {s.url: s.label for s in sources}
    collected = collect_slots(sources, fetch, workers)
    all_slots = [slot for slots in collected.values() for slot in slots]
    return merge_tagged(all_slots, lambda s: url_to_label.get(s.source_url, s.source_url))
