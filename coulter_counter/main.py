# coulter_counter/main.py
"""
Command line entry point.

Run as ``python -m coulter_counter.main [config.yaml]`` or through the installed
``coulter-counter`` script; the package-relative imports need the package context.
"""
from __future__ import annotations
from pathlib import Path
import logging
import sys
import yaml

from .core.pipeline import load_runs, run_pipeline
from .utils.detect import discover_inputs

DEFAULT_CONFIG = Path(__file__).resolve().parent / "config.yaml"


def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    # ---------- config ----------
    cfg_path = Path(argv[0]) if argv else DEFAULT_CONFIG
    cfg = load_config(cfg_path)

    log_cfg = cfg.get("logging", {}) or {}
    logging.basicConfig(level=str(log_cfg.get("level", "INFO")).upper(),
                        format="%(levelname)s %(name)s: %(message)s")
    verbose = bool(log_cfg.get("verbose", True))

    in_cfg = cfg.get("input", {}) or {}
    in_path = Path(in_cfg.get("path", ".")).resolve()
    recurse = bool(in_cfg.get("recurse", True))
    extensions = in_cfg.get("extensions") or [".Z2"]
    out_root = Path((cfg.get("output", {}) or {}).get("root", "out")).resolve()
    out_root.mkdir(parents=True, exist_ok=True)

    if verbose:
        print(f"[cfg] input={in_path} (recurse={recurse}, extensions={list(extensions)})")
        print(f"[cfg] output={out_root}")

    # ---------- discover ----------
    paths = discover_inputs(in_path, recurse=recurse, extensions=extensions)
    if not paths:
        print(f"[INFO] No {'/'.join(extensions)} inputs found under: {in_path}")
        return 0
    if verbose:
        print(f"[detector] found {len(paths)} input file(s)")

    # ---------- load ----------
    runs = load_runs(paths, cfg)
    if len(runs) < len(paths):
        print(f"[WARN] {len(paths) - len(runs)} file(s) could not be decoded and were skipped")
    if not runs:
        print("[INFO] No runs loaded; exiting without processing pipeline.")
        return 0

    # ---------- pipeline ----------
    grouped = run_pipeline(runs, cfg, out_root)
    if verbose:
        for sample, sample_runs in grouped.items():
            print(f"[summary] {sample}: {len(sample_runs)} run(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
