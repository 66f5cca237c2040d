from __future__ import annotations

import hashlib
from pathlib import Path

from contracts.errors import UnsupportedInput


def resolve_under_data_root(*, data_root: Path, relpath: str) -> Path:
    """
    Resolve a relative path under an explicit data_root.

    Absolute paths and anything that escapes the root are rejected.
    """

    if relpath.startswith(("/", "\\")) or (":" in relpath and "\\" in relpath):
        raise UnsupportedInput(
            "Expected a relative path under data_root", detail={"relpath": relpath}
        )

    root = data_root.expanduser().resolve()
    candidate = (root / relpath).resolve()
    if not candidate.is_relative_to(root):
        raise UnsupportedInput("Path escapes data_root", detail={"relpath": relpath})
    return candidate


def resolve_input(path: str | Path, *, data_root: Path | None = None) -> Path:
    p = resolve_under_data_root(data_root=data_root, relpath=str(path)) if data_root else Path(path)
    if not p.is_file():
        raise UnsupportedInput("Input file not found", detail={"path": Path(path).as_posix()})
    return p


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise UnsupportedInput("Input is not valid UTF-8 text", detail={"path": path.as_posix()}) from e


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()
