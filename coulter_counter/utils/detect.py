# coulter_counter/utils/detect.py
from __future__ import annotations
from pathlib import Path
from typing import Iterable

DEFAULT_EXTENSIONS: tuple[str, ...] = (".Z2",)


def _norm_exts(extensions: Iterable[str]) -> tuple[str, ...]:
    out = []
    for e in extensions:
        e = str(e).strip().lower()
        if e:
            out.append(e if e.startswith(".") else "." + e)
    return tuple(out)


def is_instrument_file(p: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    return p.is_file() and p.suffix.lower() in _norm_exts(extensions)


def discover_inputs(root: Path, recurse: bool = True,
                    extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> list[Path]:
    """
    If 'root' is a file -> return it (if its extension matches).
    If 'root' is a folder -> walk (optionally recursively) and collect matching files.
    """
    root = Path(root)
    exts = _norm_exts(extensions)
    if root.is_file():
        return [root.resolve()] if is_instrument_file(root, exts) else []

    it = root.rglob("*") if recurse else root.glob("*")
    items = [p.resolve() for p in it if is_instrument_file(p, exts)]

    # deterministic ordering
    items.sort(key=str)
    return items
