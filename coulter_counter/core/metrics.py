# coulter_counter/core/metrics.py
from __future__ import annotations
import logging
import numpy as np
from scipy.signal import find_peaks
from scipy.stats import gaussian_kde

from .convert import volume
from .model import Run

_LOG = logging.getLogger(__name__)


def kde_peaks(observations, n_points: int = 512) -> np.ndarray:
    """Diameters of the local maxima of a Gaussian KDE, densest first."""
    x = np.asarray(observations, dtype=float)
    if x.size < 2 or np.unique(x).size < 2:
        return np.empty(0)
    try:
        kde = gaussian_kde(x)
    except np.linalg.LinAlgError:
        _LOG.debug("KDE failed for %d observations", x.size)
        return np.empty(0)
    grid = np.linspace(x.min(), x.max(), max(int(n_points), 3))
    dens = kde(grid)
    # pad so maxima at the grid edges are found too
    floor = dens.min() - 1.0
    idx, _ = find_peaks(np.concatenate(([floor], dens, [floor])))
    idx = idx - 1
    order = np.argsort(dens[idx])[::-1]
    return grid[idx[order]]


def _first_at_or_above(peaks: np.ndarray, min_diameter: float) -> float | None:
    kept = peaks[peaks >= min_diameter]
    return float(kept[0]) if kept.size else None


def live_peak(observations, min_diameter: float = 0.0, n_points: int = 512) -> float | None:
    """Densest KDE peak at or above ``min_diameter`` (debris sits below it)."""
    return _first_at_or_above(kde_peaks(observations, n_points), min_diameter)


def run_metrics(run: Run, kde_points: int = 512, live_min_diameter: float = 0.0) -> dict:
    obs = run.observations
    peaks = kde_peaks(obs, kde_points)
    live = _first_at_or_above(peaks, live_min_diameter)
    rel_h = run.rel_time.total_seconds() / 3600.0 if run.rel_time is not None else np.nan
    if obs.size:
        stats = {
            "mean_diameter":   float(np.mean(obs)),
            "median_diameter": float(np.median(obs)),
            "std_diameter":    float(np.std(obs, ddof=1)) if obs.size > 1 else 0.0,
            "mean_volume":     float(np.mean(volume(obs))),
        }
    else:
        stats = dict.fromkeys(("mean_diameter", "median_diameter", "std_diameter", "mean_volume"), np.nan)
    return {
        "filename": run.filename,
        "sample": run.sample,
        "timepoint": run.timepoint.strftime("%Y-%m-%d %H:%M:%S"),
        "rel_time_h": round(rel_h, 6),
        "n_bins": run.n_bins,
        "n_observations": int(obs.size),
        **{k: round(v, 6) for k, v in stats.items()},
        "live_peak": round(live, 6) if live is not None else np.nan,
        "n_peaks": int(peaks.size),
        **run.params,
    }
