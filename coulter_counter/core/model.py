# coulter_counter/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping
import numpy as np
import pandas as pd

PARAM_NAMES: tuple[str, ...] = ("Current", "Threshold", "Diameter", "K", "Chi2")


@dataclass(frozen=True, eq=False)
class Run:
    filename: str               # e.g. Ctrl_day3_A.Z2
    sample: str                 # group label, e.g. Ctrl
    timepoint: pd.Timestamp     # StartTime= of the measurement
    bin_limits: np.ndarray      # N+1 diameters, ascending
    bin_volumes: np.ndarray     # N volumes
    bin_heights: np.ndarray     # N counts as written by the instrument
    observations: np.ndarray    # upper-limit expansion of the histogram
    params: Mapping[str, float] = field(default_factory=dict)
    y_variable: str = "count"
    rel_time: pd.Timedelta | None = None   # set by grouping, relative to first run of the sample

    def __post_init__(self):
        for name in ("bin_limits", "bin_volumes", "bin_heights", "observations"):
            arr = np.array(getattr(self, name), dtype=float)
            arr.flags.writeable = False
            object.__setattr__(self, name, arr)
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def n_bins(self) -> int:
        return int(self.bin_heights.size)

    @property
    def bin_upper(self) -> np.ndarray:
        """Representative value of each bin (instrument reports by upper threshold)."""
        return self.bin_limits[1:]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "lower":  self.bin_limits[:-1],
            "upper":  self.bin_limits[1:],
            "volume": self.bin_volumes,
            "height": self.bin_heights,
        })
