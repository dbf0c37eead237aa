# coulter_counter/core/plotting.py
from __future__ import annotations
from pathlib import Path
import re
import matplotlib.pyplot as plt
import numpy as np

from .metrics import live_peak
from .model import Run


def sanitize(name: str) -> str:
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_")
    return s[:120] if len(s) > 120 else s


def _run_label(run: Run) -> str:
    if run.rel_time is not None:
        return f"{run.filename} (+{run.rel_time.total_seconds() / 3600.0:.1f} h)"
    return run.filename


def save_sample_plots(sample: str, runs: list[Run], out_dir: Path, legend_ncol: int = 3,
                      kde_points: int = 512, live_min_diameter: float = 0.0) -> None:
    if not runs:
        return
    out_dir.mkdir(parents=True, exist_ok=True)
    save_histogram_plot(sample, runs, out_dir, legend_ncol)
    save_live_peak_plot(sample, runs, out_dir, kde_points, live_min_diameter)


def save_histogram_plot(sample: str, runs: list[Run], out_dir: Path, legend_ncol: int = 3) -> None:
    """Overlay of the recorded histograms, one step line per run, drawn at bin upper limits."""
    if not runs:
        return

    plt.figure(figsize=(11, 6))
    for r in runs:
        plt.step(r.bin_upper, r.bin_heights, where="pre", label=_run_label(r))
    plt.xlabel("Diameter (bin upper limit)")
    plt.ylabel(runs[0].y_variable.capitalize())
    plt.title(f"Sample: {sample} — size distribution")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=8, ncol=legend_ncol, loc="upper center",
               bbox_to_anchor=(0.5, -0.15), frameon=False)
    plt.tight_layout(rect=[0, 0.18, 1, 1])
    out_path = out_dir / f"{sanitize(sample) or 'sample'}_histograms.png"
    plt.savefig(out_path, dpi=160)
    plt.close()
    print(f"[OK] {sample}: {len(runs)} histogram(s) → {out_path}")


def save_live_peak_plot(sample: str, runs: list[Run], out_dir: Path,
                        kde_points: int = 512, live_min_diameter: float = 0.0) -> None:
    """Live peak diameter against hours since the first run of the sample."""
    xs, ys = [], []
    for r in runs:
        peak = live_peak(r.observations, live_min_diameter, kde_points)
        if peak is None or r.rel_time is None:
            continue
        xs.append(r.rel_time.total_seconds() / 3600.0)
        ys.append(peak)
    if not xs:
        print(f"[INFO] {sample}: no live peak found; skipping peak plot.")
        return

    plt.figure(figsize=(8, 5))
    plt.plot(np.asarray(xs), np.asarray(ys), marker="o")
    plt.xlabel("Time since first run [h]")
    plt.ylabel("Live peak diameter")
    plt.title(f"Sample: {sample} — live peak over time")
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    out_path = out_dir / f"{sanitize(sample) or 'sample'}_live_peak.png"
    plt.savefig(out_path, dpi=160)
    plt.close()
    print(f"[OK] {sample}: live peak over {len(xs)} run(s) → {out_path}")
