from __future__ import annotations

import re

from contracts.document import CellType
from contracts.raw import BBox

from .config import ImportanceTuning

BASE_SCORES: dict[CellType, float] = {
    CellType.HEADING: 70.0,
    CellType.TABLE: 60.0,
    CellType.CODE: 55.0,
    CellType.CAPTION: 50.0,
    CellType.LIST: 45.0,
    CellType.BODY: 40.0,
    CellType.HEADER: 20.0,
    CellType.FOOTER: 20.0,
}

_DIGIT = re.compile(r"\d")


def early_line_factor(*, bbox: BBox, page_height_px: int, early_line_bonus: float) -> float:
    # 1.0 at the bottom of the page, `early_line_bonus` at the very top.
    y_frac = min(1.0, max(0.0, bbox.y / float(page_height_px))) if page_height_px > 0 else 1.0
    return 1.0 + (early_line_bonus - 1.0) * (1.0 - y_frac)


def score_cell(
    *,
    cell_type: CellType,
    bbox: BBox,
    page_height_px: int,
    payload: str,
    tuning: ImportanceTuning,
) -> int:
    """
    Importance in [0, 100]. A pure function of its arguments, so the score of
    one cell never depends on which cells were scored before it.
    """

    score = BASE_SCORES[cell_type]
    if cell_type == CellType.HEADING:
        score *= tuning.heading_boost
    if _DIGIT.search(payload):
        score *= tuning.number_boost
    score *= early_line_factor(bbox=bbox, page_height_px=page_height_px, early_line_bonus=tuning.early_line_bonus)
    if cell_type == CellType.FOOTER:
        score *= tuning.footer_penalty

    # Round half-up; the value is non-negative here.
    return max(0, min(100, int(score + 0.5)))
