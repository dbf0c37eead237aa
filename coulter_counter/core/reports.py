# coulter_counter/core/reports.py
from __future__ import annotations
from pathlib import Path
from typing import Literal, Sequence
import numpy as np
import pandas as pd
from scipy.io import savemat

from .metrics import run_metrics
from .model import PARAM_NAMES, Run

ReportFormat = Literal["csv", "mat", "both"]

REPORT_COLUMNS: list[str] = [
    "filename", "sample", "timepoint", "rel_time_h", "n_bins", "n_observations",
    "mean_diameter", "median_diameter", "std_diameter", "mean_volume",
    "live_peak", "n_peaks", *PARAM_NAMES,
]
_STRING_COLUMNS = ("filename", "sample", "timepoint")


def _build_dataframe(runs: Sequence[Run], kde_points: int = 512,
                     live_min_diameter: float = 0.0) -> pd.DataFrame:
    """Per-run rows + TOTAL row (observation count summed, statistics left blank)."""
    rows = [run_metrics(r, kde_points=kde_points, live_min_diameter=live_min_diameter) for r in runs]
    total = {c: np.nan for c in REPORT_COLUMNS}
    total.update({
        "filename": "TOTAL", "sample": rows[0]["sample"] if rows else "", "timepoint": "",
        "n_bins": sum(r["n_bins"] for r in rows),
        "n_observations": sum(r["n_observations"] for r in rows),
    })
    return pd.DataFrame(rows + [total], columns=REPORT_COLUMNS)


def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    print(f"[OK] wrote report: {title} → {out_csv}")


def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr


def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with fields matching the CSV columns.
    Strings become cell arrays (Nx1), numerics become double (Nx1, NaN for blanks).
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    mat_struct = {}
    for name in df_out.columns:
        if name in _STRING_COLUMNS:
            mat_struct[name] = _to_mat_cellstr(df_out[name].astype(str).replace("nan", "", regex=False).tolist())
        else:
            mat_struct[name] = pd.to_numeric(df_out[name], errors="coerce").to_numpy(dtype=float).reshape(-1, 1)
    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote report: {title} → {out_mat}")


def write_report(runs: Sequence[Run],
                 out_base: Path,
                 title: str,
                 fmt: ReportFormat = "csv",
                 mat_variable: str = "report",
                 kde_points: int = 512,
                 live_min_diameter: float = 0.0) -> pd.DataFrame | None:
    """
    Write report(s) in the requested format.
    - out_base is a *base path without extension* (e.g., .../report)
    - fmt: "csv" | "mat" | "both"
    - mat_variable: MATLAB variable name of the struct
    """
    if not runs:
        return None
    if fmt not in ("csv", "mat", "both"):
        raise ValueError(f"unknown report format {fmt!r}")
    df_out = _build_dataframe(runs, kde_points=kde_points, live_min_diameter=live_min_diameter)

    if fmt in ("csv", "both"):
        _write_csv(df_out, out_base.with_suffix(".csv"), title)
    if fmt in ("mat", "both"):
        _write_mat(df_out, out_base.with_suffix(".mat"), mat_variable, title)
    return df_out


def write_observations(run: Run, out_csv: Path) -> None:
    """One row per reconstructed particle: diameter and the matching sphere volume."""
    from .convert import volume
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame({
        "diameter": run.observations,
        "volume": volume(run.observations),
    }).to_csv(out_csv, index=False, encoding="utf-8")
