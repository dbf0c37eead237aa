# coulter_counter/core/pipeline.py
from __future__ import annotations
from pathlib import Path
from typing import Iterable
import logging

from ..loaders import z2_loader
from .errors import Z2Error
from .grouping import group_runs
from .model import Run
from .plotting import sanitize, save_sample_plots
from .reports import write_observations, write_report

_LOG = logging.getLogger(__name__)


def load_runs(paths: Iterable[Path], cfg: dict | None = None) -> list[Run]:
    """Decode every file; a file that fails to decode is logged and left out."""
    runs: list[Run] = []
    for p in paths:
        try:
            runs.append(z2_loader.load(p, cfg))
        except Z2Error as e:
            _LOG.warning("skipping %s: %s", Path(p).name, e.reason)
        except OSError as e:
            _LOG.warning("cannot read %s: %s", Path(p).name, e)
    return runs


def run_pipeline(runs: list[Run], cfg: dict, out_root: Path) -> dict[str, list[Run]]:
    rep_cfg = cfg.get("reports", {}) or {}
    met_cfg = cfg.get("metrics", {}) or {}
    plot_cfg = cfg.get("plots", {}) or {}

    fmt = str(rep_cfg.get("format", "csv")).lower()
    mat_var = str(rep_cfg.get("mat_variable", "report"))
    kde_points = int(met_cfg.get("kde_points", 512))
    live_min = float(met_cfg.get("live_min_diameter", 0.0))

    grouped = group_runs(runs)
    for sample, sample_runs in grouped.items():
        sample_dir = out_root / (sanitize(sample) or "sample")
        sample_dir.mkdir(parents=True, exist_ok=True)

        write_report(sample_runs, sample_dir / "report", f"{sample} runs",
                     fmt=fmt, mat_variable=mat_var,
                     kde_points=kde_points, live_min_diameter=live_min)

        for r in sample_runs:
            write_observations(r, sample_dir / "observations" / f"{Path(r.filename).stem}.csv")

        if bool(plot_cfg.get("enabled", True)):
            save_sample_plots(sample, sample_runs, sample_dir,
                              legend_ncol=int(plot_cfg.get("legend_ncol", 3)),
                              kde_points=kde_points, live_min_diameter=live_min)
        _LOG.info("sample %s: %d run(s) written to %s", sample, len(sample_runs), sample_dir)
    return grouped
