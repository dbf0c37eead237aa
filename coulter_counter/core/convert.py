# coulter_counter/core/convert.py
from __future__ import annotations
from typing import Sequence
import numpy as np

from .errors import LengthMismatchError, MalformedValueError

# Upper bound on the particles one run may expand to; a full instrument run stays far below it.
MAX_TOTAL_COUNT: int = 100_000_000


def to_counts(heights: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    Truncation rule for histogram heights.

    Heights are whole numbers in practice; a fractional height is truncated
    toward zero (2.9 -> 2). Negative or non-finite heights are rejected, and so
    is a histogram holding more than MAX_TOTAL_COUNT particles.
    """
    h = np.asarray(heights, dtype=float).ravel()
    if not np.all(np.isfinite(h)):
        raise MalformedValueError("counts must be finite numbers", field="BinHeights")
    if np.any(h < 0):
        bad = h[h < 0][0]
        raise MalformedValueError(f"negative count {bad:g}", field="BinHeights")
    if np.any(h > MAX_TOTAL_COUNT) or np.sum(np.trunc(h)) > MAX_TOTAL_COUNT:
        raise MalformedValueError(f"total count {np.sum(h):g} exceeds the limit of {MAX_TOTAL_COUNT}",
                                  field="BinHeights")
    return np.trunc(h).astype(np.int64)


def expand(values: Sequence[float] | np.ndarray, counts: Sequence[float] | np.ndarray) -> np.ndarray:
    """Repeat each value by its count, keeping bin order: expand([10, 20, 30], [2, 0, 1]) -> [10, 10, 30]."""
    v = np.asarray(values, dtype=float).ravel()
    c = np.asarray(counts, dtype=float).ravel()
    if v.size != c.size:
        raise LengthMismatchError(f"{v.size} values but {c.size} counts")
    return np.repeat(v, to_counts(c))


def _check_non_negative(x: np.ndarray, what: str) -> None:
    if np.any(x < 0):
        raise ValueError(f"{what} must be >= 0")


def volume(diameter):
    """Volume of a sphere with the given diameter. Scalars in, float out; arrays in, arrays out."""
    d = np.asarray(diameter, dtype=float)
    _check_non_negative(d, "diameter")
    v = 4.0 / 3.0 * np.pi * (d / 2.0) ** 3
    return float(v) if v.ndim == 0 else v


def diameter(volume):
    """Inverse of :func:`volume`."""
    v = np.asarray(volume, dtype=float)
    _check_non_negative(v, "volume")
    d = 2.0 * np.cbrt(3.0 / (4.0 * np.pi) * v)
    return float(d) if d.ndim == 0 else d
