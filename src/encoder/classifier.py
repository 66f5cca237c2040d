"""
Cell classification.

Each rule is an independent pure predicate over a `UnitView`; rules are
evaluated in the fixed order of `RULES` and the first match wins:

    TABLE > CODE > CAPTION > HEADING > LIST > FOOTER > HEADER > BODY

The classifier only ever sees one page: grid membership is computed from
the units of the unit's own page, nothing crosses page boundaries.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from contracts.document import CellType
from contracts.raw import BBox, RawUnit

from .config import EncoderConfig
from .normalization import split_columns

_FENCE = re.compile(r"^\s*(```|~~~)")
_CODE_PUNCT = set("{}();=<>[]")
_CODE_KEYWORDS = re.compile(
    r"^\s*(def|class|return|import|from|function|const|let|var|fn|pub|impl|#include|elif)\b"
    r"|=>|::|;\s*$|\)\s*\{\s*$|\):\s*$"
)
_CAPTION = re.compile(r"^(figure|fig\.|table|chart|exhibit|listing)\s*\d+[a-z]?\s*[.:)\-]?(\s|$)", re.IGNORECASE)
_MD_HEADING = re.compile(r"^#{1,6}\s+\S")
_NUMBERED_HEADING = re.compile(
    r"^(\d+(\.\d+)+\.?\s+\S|\d+\s+[A-Z]|(chapter|section|part|appendix)\s+[0-9IVXLC]+\b)", re.IGNORECASE
)
_LIST_MARKER = re.compile(r"^\s*([-*•▪◦‣]|\d{1,3}[.)]|[a-z][.)])\s+\S")

# Grid cells are short; longer units aligned side by side are multi-column prose.
GRID_MAX_CELL_WORDS = 6


@dataclass(frozen=True, slots=True)
class UnitView:
    text: str
    bbox: BBox
    page_width_px: int
    page_height_px: int
    grid_member: bool
    config: EncoderConfig

    @property
    def stripped(self) -> str:
        return self.text.strip()

    @property
    def words(self) -> list[str]:
        return self.text.split()


def _is_table(u: UnitView) -> bool:
    if u.grid_member:
        return True
    if _FENCE.match(u.text):
        return False
    return any(len(cols) >= 2 for cols in split_columns(u.text))


def _is_code(u: UnitView) -> bool:
    if _FENCE.match(u.text):
        return True
    lines = [ln for ln in u.text.splitlines() if ln.strip() != ""]
    if not lines:
        return False
    if all(ln.startswith(("    ", "\t")) for ln in lines):
        return True
    s = u.stripped
    punct = sum(1 for ch in s if ch in _CODE_PUNCT)
    dense = len(s) > 0 and punct / len(s) >= 0.08
    return dense and any(_CODE_KEYWORDS.search(ln) for ln in lines)


def _is_caption(u: UnitView) -> bool:
    return bool(_CAPTION.match(u.stripped))


def _is_short_line(u: UnitView) -> bool:
    s = u.stripped
    return "\n" not in s and 0 < len(u.words) <= u.config.heading_max_words and not s.endswith((".", ";", ","))


def _is_heading(u: UnitView) -> bool:
    if not _is_short_line(u):
        return False
    s = u.stripped
    if _MD_HEADING.match(s) or _NUMBERED_HEADING.match(s):
        return True
    letters = [ch for ch in s if ch.isalpha()]
    if len(letters) >= 3 and all(ch.isupper() for ch in letters):
        return True
    if s.endswith(":"):
        return True
    return u.bbox.h / float(u.page_height_px) >= u.config.heading_height_ratio


def _is_list(u: UnitView) -> bool:
    return bool(_LIST_MARKER.match(u.text))


def _is_footer(u: UnitView) -> bool:
    return u.bbox.y >= u.page_height_px * (1.0 - u.config.margin_band)


def _is_header(u: UnitView) -> bool:
    return u.bbox.y1 <= u.page_height_px * u.config.margin_band


RULES: tuple[tuple[CellType, Callable[[UnitView], bool]], ...] = (
    (CellType.TABLE, _is_table),
    (CellType.CODE, _is_code),
    (CellType.CAPTION, _is_caption),
    (CellType.HEADING, _is_heading),
    (CellType.LIST, _is_list),
    (CellType.FOOTER, _is_footer),
    (CellType.HEADER, _is_header),
)


def classify_unit(
    unit: RawUnit,
    *,
    page_width_px: int,
    page_height_px: int,
    config: EncoderConfig,
    grid_member: bool = False,
) -> CellType:
    view = UnitView(
        text=unit.text,
        bbox=unit.bbox,
        page_width_px=page_width_px,
        page_height_px=page_height_px,
        grid_member=grid_member,
        config=config,
    )
    for cell_type, rule in RULES:
        if rule(view):
            return cell_type
    return CellType.BODY


def _edges_aligned(a: BBox, b: BBox, tol: int) -> bool:
    return abs(a.x - b.x) <= tol or abs(a.x1 - b.x1) <= tol


def _rows_aligned(row_a: list[BBox], row_b: list[BBox], tol: int) -> bool:
    matched = 0
    used: set[int] = set()
    for a in row_a:
        for j, b in enumerate(row_b):
            if j not in used and _edges_aligned(a, b, tol):
                used.add(j)
                matched += 1
                break
    return matched >= 2


def grid_members(units: list[RawUnit], tolerance_px: int) -> set[int]:
    """
    Indices of units that sit in a grid on their page: at least two short
    units sharing a row (y within tolerance) whose column edges line up with
    at least two units of another such row.
    """

    candidates = [i for i, u in enumerate(units) if "\n" not in u.text.strip() and len(u.text.split()) <= GRID_MAX_CELL_WORDS]
    sweep = sorted(candidates, key=lambda i: (units[i].bbox.y, units[i].bbox.x, i))

    rows: list[dict] = []
    for i in sweep:
        b = units[i].bbox
        for r in rows:
            # Row members sit side by side, never stacked.
            side_by_side = all(b.x >= units[m].bbox.x1 or b.x1 <= units[m].bbox.x for m in r["members"])
            if side_by_side and abs(b.y - r["ref_y"]) <= tolerance_px:
                r["members"].append(i)
                break
        else:
            rows.append({"ref_y": b.y, "members": [i]})

    multi = [sorted(r["members"], key=lambda i: (units[i].bbox.x, i)) for r in rows if len(r["members"]) >= 2]

    out: set[int] = set()
    for a_idx, row_a in enumerate(multi):
        boxes_a = [units[i].bbox for i in row_a]
        for b_idx, row_b in enumerate(multi):
            if a_idx == b_idx:
                continue
            if _rows_aligned(boxes_a, [units[i].bbox for i in row_b], tolerance_px):
                out.update(row_a)
                break
    return out
