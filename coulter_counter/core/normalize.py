# coulter_counter/core/normalize.py
from __future__ import annotations
import math
import re
import pandas as pd

from .errors import MalformedValueError

# English month abbreviations as written by the instrument; never taken from the process locale.
_MONTHS = {m: i for i, m in enumerate(
    ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"), start=1)}

_DECIMAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_TIME = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})$")
_DATE = re.compile(r"^(\d{1,2})/([A-Za-z]{3})/(\d{4})$")


def split_tokens(value: str) -> list[str]:
    return value.split()


def to_float(token: str, field: str | None = None, filename: str | None = None) -> float:
    """Parse one decimal-point number; comma decimals, nan and inf are rejected."""
    if not _DECIMAL.match(token):
        raise MalformedValueError(f"{field or 'value'}: {token!r} is not a decimal number",
                                  field=field, filename=filename)
    x = float(token)
    if not math.isfinite(x):
        raise MalformedValueError(f"{field or 'value'}: {token!r} is out of range",
                                  field=field, filename=filename)
    return x


def to_floats(value: str, field: str | None = None, filename: str | None = None,
              min_count: int = 1, exact: int | None = None) -> list[float]:
    tokens = split_tokens(value)
    if exact is not None and len(tokens) != exact:
        raise MalformedValueError(f"{field}: expected {exact} values, got {len(tokens)}",
                                  field=field, filename=filename)
    if len(tokens) < min_count:
        raise MalformedValueError(f"{field}: expected at least {min_count} values, got {len(tokens)}",
                                  field=field, filename=filename)
    return [to_float(t, field, filename) for t in tokens]


def to_abs_time(value: str, field: str = "StartTime", filename: str | None = None) -> pd.Timestamp:
    """``HH:MM:SS DD/Mon/YYYY`` -> Timestamp."""
    tokens = split_tokens(value)
    if len(tokens) != 2:
        raise MalformedValueError(f"{field}: expected 'HH:MM:SS DD/Mon/YYYY', got {value!r}",
                                  field=field, filename=filename)
    mt, md = _TIME.match(tokens[0]), _DATE.match(tokens[1])
    month = _MONTHS.get(md.group(2).lower()) if md else None
    if mt is None or month is None:
        raise MalformedValueError(f"{field}: expected 'HH:MM:SS DD/Mon/YYYY', got {value!r}",
                                  field=field, filename=filename)
    try:
        return pd.Timestamp(year=int(md.group(3)), month=month, day=int(md.group(1)),
                            hour=int(mt.group(1)), minute=int(mt.group(2)), second=int(mt.group(3)))
    except ValueError as e:
        raise MalformedValueError(f"{field}: {value!r} is not a valid date/time ({e})",
                                  field=field, filename=filename) from e
