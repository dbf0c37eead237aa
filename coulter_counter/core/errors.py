# coulter_counter/core/errors.py
from __future__ import annotations


class Z2Error(ValueError):
    """Base for every failure raised while decoding or expanding a run."""

    def __init__(self, message: str, *, field: str | None = None, filename: str | None = None):
        self.field = field
        self.filename = filename
        self.reason = message
        prefix = f"{filename}: " if filename else ""
        super().__init__(prefix + message)


class MissingFieldError(Z2Error):
    """A required ``Prefix=`` line is absent."""


class MalformedValueError(Z2Error):
    """A value is present but cannot be parsed into the expected type."""


class LengthMismatchError(Z2Error):
    """Parallel arrays have different lengths."""
