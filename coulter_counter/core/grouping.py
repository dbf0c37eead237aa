# coulter_counter/core/grouping.py
from __future__ import annotations
from collections import defaultdict
from dataclasses import replace
from typing import Iterable
import logging

from .model import Run

_LOG = logging.getLogger(__name__)


def group_by_sample(runs: Iterable[Run]) -> dict[str, list[Run]]:
    """Sample label -> runs sorted by start time (stable for equal timestamps)."""
    by_sample: dict[str, list[Run]] = defaultdict(list)
    for r in runs:
        by_sample[r.sample].append(r)
    return {s: sorted(lst, key=lambda r: r.timepoint) for s, lst in sorted(by_sample.items())}


def with_relative_time(runs: list[Run]) -> list[Run]:
    """New records with ``rel_time`` measured from the first run of the (sorted) list."""
    if not runs:
        return []
    t0 = runs[0].timepoint
    return [replace(r, rel_time=r.timepoint - t0) for r in runs]


def group_runs(runs: Iterable[Run]) -> dict[str, list[Run]]:
    grouped = {s: with_relative_time(lst) for s, lst in group_by_sample(runs).items()}
    for s, lst in grouped.items():
        _LOG.info("sample %s: %d run(s) from %s to %s", s, len(lst), lst[0].timepoint, lst[-1].timepoint)
    return grouped
