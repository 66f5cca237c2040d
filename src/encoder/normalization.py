from __future__ import annotations

import re
from typing import Any

from contracts.document import CellType
from contracts.raw import RawPage, RawUnit

from .config import HyphenationMode

_TRAILING_HYPHEN = re.compile(r"[A-Za-z]-$")
_LEADING_LOWER = re.compile(r"^[a-z]")
_INNER_HYPHEN_BREAK = re.compile(r"([A-Za-z])-\n[ \t]*([a-z])")
_DELIMITED_SPLIT = re.compile(r"\s*\|\s*|\t+")
_GAP_SPLIT = re.compile(r" {3,}")
_TABLE_RULE = re.compile(r"^[\s|:+\-=]+$")
_HEADING_MARKS = re.compile(r"^#{1,6}\s+")
_FENCE = re.compile(r"^\s*(```|~~~)")


def _dehyphenate(text: str) -> str:
    return _INNER_HYPHEN_BREAK.sub(r"\1\2", text)


def _can_merge(left: RawUnit, right: RawUnit) -> bool:
    if left.z != right.z:
        return False
    if _FENCE.match(left.text) or _FENCE.match(right.text):
        return False
    return bool(_TRAILING_HYPHEN.search(left.text.rstrip())) and bool(_LEADING_LOWER.match(right.text.lstrip()))


def merge_hyphenated_units(units: list[RawUnit]) -> tuple[list[RawUnit], int]:
    """
    Join a unit ending in `letter-` with the next unit on the same page when
    that one starts lowercase. Returns (units, merges).
    """

    out: list[RawUnit] = []
    merges = 0
    for u in units:
        if out and _can_merge(out[-1], u):
            prev = out[-1]
            text = prev.text.rstrip()[:-1] + u.text.lstrip()
            out[-1] = RawUnit(text=text, bbox=prev.bbox.union(u.bbox), z=prev.z)
            merges += 1
        else:
            out.append(u)
    return out, merges


def prepare_page_units(
    page: RawPage, *, hyphenation: HyphenationMode
) -> tuple[list[RawUnit], list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Returns: (units_used, dropped_units, warnings)

    Unit order is the adapter's read order and is never re-sorted here.
    """

    dropped: list[dict[str, Any]] = []
    warnings: list[dict[str, Any]] = []
    used: list[RawUnit] = []

    for idx, u in enumerate(page.units):
        if u.text.strip() == "":
            dropped.append({"z": page.z, "unit_index": idx, "reason": "WHITESPACE"})
            continue

        bbox = u.bbox.repaired()
        if bbox != u.bbox:
            warnings.append(
                {
                    "code": "ENCODE_BBOX_REPAIRED",
                    "message": "Unit bbox with negative extent was flipped deterministically",
                    "detail": {"z": page.z, "unit_index": idx, "before": u.bbox.to_dict(), "after": bbox.to_dict()},
                }
            )
        if bbox.area() <= 0:
            dropped.append({"z": page.z, "unit_index": idx, "reason": "BBOX_ZERO_AREA"})
            continue

        text = u.text
        if hyphenation == HyphenationMode.MERGE and not _FENCE.match(text):
            text = _dehyphenate(text)
        used.append(RawUnit(text=text, bbox=bbox, z=page.z))

    if hyphenation == HyphenationMode.MERGE:
        used, merges = merge_hyphenated_units(used)
        if merges:
            warnings.append(
                {
                    "code": "ENCODE_HYPHENATION_MERGED",
                    "message": "Hyphenated line breaks were merged across units",
                    "detail": {"z": page.z, "merges": merges},
                }
            )

    return used, dropped, warnings


def split_columns(text: str) -> list[list[str]]:
    """
    Column texts for each content line of `text`; rule lines are skipped.

    Pipes and tabs always delimit columns. Runs of three or more spaces
    delimit only when at least two lines split that way, so a single line of
    justified prose stays one column.
    """

    lines = [ln for ln in text.splitlines() if ln.strip() != "" and not _TABLE_RULE.match(ln)]
    if any("|" in ln or "\t" in ln for ln in lines):
        splitter = _DELIMITED_SPLIT
    elif sum(1 for ln in lines if len(_GAP_SPLIT.split(ln.strip())) >= 2) >= 2:
        splitter = _GAP_SPLIT
    else:
        splitter = None

    rows: list[list[str]] = []
    for line in lines:
        body = line.strip().strip("|")
        cols = splitter.split(body) if splitter is not None else [body]
        cols = [" ".join(c.split()) for c in cols]
        cols = [c for c in cols if c != ""]
        if cols:
            rows.append(cols)
    return rows


def _normalize_table(text: str) -> str:
    return "\n".join(" | ".join(cols) for cols in split_columns(text))


def _normalize_code(text: str) -> str:
    lines = [ln.rstrip() for ln in text.splitlines()]
    lines = [ln for ln in lines if not _FENCE.match(ln)]
    while lines and lines[0] == "":
        lines.pop(0)
    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines)


def normalize_payload(text: str, cell_type: CellType) -> str:
    """
    Canonical payload text for a classified unit; this is what gets hashed.

    Tables keep one row per line with ` | ` column separators, code keeps its
    lines and indentation, everything else is whitespace-collapsed.
    """

    if cell_type == CellType.TABLE:
        return _normalize_table(text)
    if cell_type == CellType.CODE:
        return _normalize_code(text)
    collapsed = " ".join(text.split())
    if cell_type == CellType.HEADING:
        collapsed = _HEADING_MARKS.sub("", collapsed)
    return collapsed
