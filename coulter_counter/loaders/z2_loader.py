# coulter_counter/loaders/z2_loader.py
from __future__ import annotations
from pathlib import Path
from typing import Iterable
import logging

from ..core.convert import expand, to_counts
from ..core.errors import LengthMismatchError, MalformedValueError, MissingFieldError
from ..core.model import PARAM_NAMES, Run
from ..core.normalize import to_abs_time, to_floats

_LOG = logging.getLogger(__name__)

FIELD_PREFIXES: tuple[str, ...] = ("StartTime=", "Cur=", "Params=", "BinLims=", "BinVols=", "BinHeights=")
PARAMS_ORDER: tuple[str, ...] = PARAM_NAMES[1:]   # Params= order; Current comes from Cur=


# ---------- filename helpers ----------
def infer_sample_from_path(path: Path) -> str:
    """Sample label = file name up to the first underscore (Ctrl_day3.Z2 -> Ctrl)."""
    p = Path(path)
    return p.name.split("_")[0] if "_" in p.name else p.stem


def read_lines(path: Path, encoding: str = "latin-1") -> list[str]:
    return Path(path).read_text(encoding=encoding, errors="replace").splitlines()


# ---------- field lookup ----------
def _index_fields(lines: Iterable[str]) -> dict[str, str]:
    """First line per known prefix -> text after the prefix."""
    found: dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        for prefix in FIELD_PREFIXES:
            if prefix not in found and line.startswith(prefix):
                found[prefix] = line[len(prefix):]
                break
        if len(found) == len(FIELD_PREFIXES):
            break
    return found


def _require(fields: dict[str, str], prefix: str, filename: str) -> str:
    try:
        return fields[prefix]
    except KeyError:
        raise MissingFieldError(f"missing required field {prefix[:-1]}",
                                field=prefix[:-1], filename=filename) from None


# ---------- public decoder ----------
def decode(lines: Iterable[str], sample: str, y_variable: str = "count",
           filename: str = "<memory>") -> Run:
    """
    Decode the lines of one .Z2 file into a Run.

    Raises MissingFieldError, MalformedValueError or LengthMismatchError; each
    names ``filename`` and the offending field.
    """
    fields = _index_fields(lines)
    values = {p: _require(fields, p, filename) for p in FIELD_PREFIXES}

    timepoint = to_abs_time(values["StartTime="], filename=filename)
    current, = to_floats(values["Cur="], "Cur", filename, exact=1)
    params = to_floats(values["Params="], "Params", filename, exact=len(PARAMS_ORDER))
    bin_limits = to_floats(values["BinLims="], "BinLims", filename, min_count=2)
    bin_volumes = to_floats(values["BinVols="], "BinVols", filename)
    bin_heights = to_floats(values["BinHeights="], "BinHeights", filename)

    n = len(bin_heights)
    if len(bin_limits) != n + 1:
        raise LengthMismatchError(f"BinLims has {len(bin_limits)} values, expected {n + 1} for {n} bins",
                                  field="BinLims", filename=filename)
    if len(bin_volumes) != n:
        raise LengthMismatchError(f"BinVols has {len(bin_volumes)} values, expected {n}",
                                  field="BinVols", filename=filename)
    try:
        counts = to_counts(bin_heights)
    except MalformedValueError as e:
        raise MalformedValueError(e.reason, field="BinHeights", filename=filename) from e

    run = Run(
        filename=filename,
        sample=sample,
        timepoint=timepoint,
        bin_limits=bin_limits,
        bin_volumes=bin_volumes,
        bin_heights=bin_heights,
        observations=expand(bin_limits[1:], counts),
        params={"Current": current, **dict(zip(PARAMS_ORDER, params))},
        y_variable=y_variable,
    )
    _LOG.debug("decoded %s: %d bins, %d observations, start %s",
               filename, n, run.observations.size, timepoint)
    return run


# ---------- public loader ----------
def load(path: Path, cfg: dict | None = None) -> Run:
    dec = (cfg or {}).get("decode", {}) or {}
    path = Path(path)
    lines = read_lines(path, encoding=str(dec.get("encoding", "latin-1")))
    return decode(lines, infer_sample_from_path(path),
                  y_variable=str(dec.get("y_variable", "count")),
                  filename=path.name)
