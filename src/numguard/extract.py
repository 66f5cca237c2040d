from __future__ import annotations

import re
from dataclasses import dataclass, replace

from contracts.document import CellRecord, CellType, Document

_NUMBER = re.compile(
    r"""
    (?<![\w.\-/])
    (?P<paren>\()?
    (?P<cur_pre>[$€£¥]|\b(?:USD|EUR|GBP|JPY)\s?)?
    (?P<sign>[-+−])?
    (?P<num>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?|\.\d+)
    (?P<pct>\s?%)?
    (?P<cur_post>\s?(?:USD|EUR|GBP|JPY)\b)?
    (?(paren)\))
    (?![\w])
    """,
    re.VERBOSE,
)
_LABEL_CLEAN = re.compile(r"[^0-9a-z\s]+")
_SENTENCE_BREAK = re.compile(r"[.;!?](?:\s|$)")
_ASSOCIATION_TAIL = re.compile(r"[:=|]\s*[$€£¥]?\s*$")
_TOTAL_LABEL = re.compile(r"\b(grand\s+total|sub\s?total|totals?|sum)\b")

# Row grouping tolerance when the document header does not record one.
DEFAULT_ROW_TOLERANCE_PX = 16


@dataclass(frozen=True, slots=True)
class NumericToken:
    cell_id: str
    cell_index: int  # position in Document.cells
    z: int
    cell_type: CellType
    raw: str
    value: float
    unit: str | None  # "percent" | "currency" | None
    label: str  # normalized text preceding the number; "" when none
    associated: bool  # label bound by ':' / '=' / a table column
    column: int  # index among the numbers of its row
    slot: int  # index of the row column the number sits in


@dataclass(frozen=True, slots=True)
class NumericRow:
    """
    One logical row: a payload line, or side-by-side table cells on one
    baseline. `cell_id`/`cell_index` name the leftmost member cell.
    """

    cell_id: str
    cell_index: int
    z: int
    label: str
    columns: list[str]
    values: list[NumericToken]
    cell_ids: list[str]

    @property
    def is_total(self) -> bool:
        return is_total_label(self.label)


def normalize_label(text: str) -> str:
    t = _LABEL_CLEAN.sub(" ", text.lower())
    return " ".join(t.split())


def is_total_label(text: str) -> bool:
    return bool(_TOTAL_LABEL.search(normalize_label(text)))


def _parse_value(m: re.Match[str]) -> float:
    v = float(m.group("num").replace(",", ""))
    if m.group("paren") or m.group("sign") in ("-", "−"):
        v = -v
    return v


def _unit(m: re.Match[str]) -> str | None:
    if m.group("pct"):
        return "percent"
    if m.group("cur_pre") or m.group("cur_post"):
        return "currency"
    return None


def _label_for(prefix: str) -> tuple[str, bool]:
    """Nearest preceding text segment that contains letters."""
    associated = bool(_ASSOCIATION_TAIL.search(prefix))
    segments = prefix.split("|")
    for seg in reversed(segments):
        pieces = _SENTENCE_BREAK.split(seg)
        candidate = pieces[-1] if pieces else seg
        if any(ch.isalpha() for ch in candidate):
            words = normalize_label(candidate).split()
            return " ".join(words[-6:]), associated or len(segments) > 1
    return "", associated or len(segments) > 1


def _row_label(columns: list[str]) -> str:
    for col in columns:
        stripped = _NUMBER.sub(" ", col)
        if any(ch.isalpha() for ch in stripped):
            return normalize_label(stripped)
    return ""


def _split_line(line: str) -> list[str]:
    return [c.strip() for c in line.strip().strip("|").split("|")]


def _tokens_for_columns(columns: list[str], *, cell: CellRecord, cell_index: int) -> list[NumericToken]:
    out: list[NumericToken] = []
    for slot, col in enumerate(columns):
        for m in _NUMBER.finditer(col):
            label, associated = _label_for("|".join(columns[:slot] + [col[: m.start()]]))
            out.append(
                NumericToken(
                    cell_id=cell.cell_id,
                    cell_index=cell_index,
                    z=cell.z,
                    cell_type=cell.cell_type,
                    raw=m.group(0).strip(),
                    value=_parse_value(m),
                    unit=_unit(m),
                    label=label,
                    associated=associated or cell.cell_type == CellType.TABLE,
                    column=len(out),
                    slot=slot,
                )
            )
    return out


def _line_rows(document: Document, ci: int) -> list[NumericRow]:
    cell = document.cells[ci]
    rows: list[NumericRow] = []
    for line in document.resolve(cell).splitlines():
        columns = _split_line(line)
        rows.append(
            NumericRow(
                cell_id=cell.cell_id,
                cell_index=ci,
                z=cell.z,
                label=_row_label(columns),
                columns=columns,
                values=_tokens_for_columns(columns, cell=cell, cell_index=ci),
                cell_ids=[cell.cell_id],
            )
        )
    return rows


def _merged_row(document: Document, members: list[int]) -> NumericRow:
    cells = [document.cells[i] for i in members]
    columns = [" ".join(document.resolve(c).split()) for c in cells]
    label = _row_label(columns)

    values: list[NumericToken] = []
    for slot, (ci, cell, text) in enumerate(zip(members, cells, columns)):
        for t in _tokens_for_columns([text], cell=cell, cell_index=ci):
            # A bare number cell takes the row label.
            values.append(replace(t, label=t.label or label, associated=True, column=len(values), slot=slot))

    first = cells[0]
    return NumericRow(
        cell_id=first.cell_id,
        cell_index=members[0],
        z=first.z,
        label=label,
        columns=columns,
        values=values,
        cell_ids=[c.cell_id for c in cells],
    )


def _side_by_side(document: Document, i: int, others: list[int]) -> bool:
    b = document.cells[i].bbox
    return all(b.x >= document.cells[m].bbox.x1 or b.x1 <= document.cells[m].bbox.x for m in others)


def _cluster_rows(document: Document, indices: list[int], tolerance_px: int) -> list[NumericRow]:
    """
    Rebuild the rows of one table cluster from geometry.

    Single-line cells sitting side by side with their y within
    `tolerance_px` form one row, ordered by x. Multi-line cells carry their
    own rows, one per line.
    """

    cells = document.cells
    sweep = sorted(indices, key=lambda i: (cells[i].bbox.y, cells[i].bbox.x, i))
    groups: list[dict] = []
    for i in sweep:
        single = "\n" not in document.resolve(cells[i])
        if single:
            for g in groups:
                if (
                    g["single"]
                    and abs(cells[i].bbox.y - g["ref_y"]) <= tolerance_px
                    and _side_by_side(document, i, g["members"])
                ):
                    g["members"].append(i)
                    break
            else:
                groups.append({"ref_y": cells[i].bbox.y, "members": [i], "single": True})
        else:
            groups.append({"ref_y": cells[i].bbox.y, "members": [i], "single": False})

    rows: list[NumericRow] = []
    for g in groups:
        members = sorted(g["members"], key=lambda i: (cells[i].bbox.x, i))
        if len(members) == 1:
            rows.extend(_line_rows(document, members[0]))
        else:
            rows.append(_merged_row(document, members))
    return rows


def table_clusters(document: Document) -> dict[int, int]:
    """Maximal runs of consecutive TABLE cells on one page share a cluster id."""
    out: dict[int, int] = {}
    cluster = -1
    prev: tuple[int, int] | None = None  # (cell index, z) of the previous TABLE cell
    for i, c in enumerate(document.cells):
        if c.cell_type != CellType.TABLE:
            continue
        if prev is None or prev[0] != i - 1 or prev[1] != c.z:
            cluster += 1
        out[i] = cluster
        prev = (i, c.z)
    return out


def row_tolerance_px(document: Document) -> int:
    raw = document.header.config.get("table_tolerance_px")
    if isinstance(raw, int) and raw >= 0:
        return raw
    return DEFAULT_ROW_TOLERANCE_PX


def extract_rows(
    document: Document, *, clusters: dict[int, int] | None = None, tolerance_px: int | None = None
) -> list[NumericRow]:
    """
    Numeric rows in document order. Cells outside tables give one row per
    payload line; each table cluster is regrouped by geometry at the position
    of its first cell.
    """

    clusters = table_clusters(document) if clusters is None else clusters
    tol = row_tolerance_px(document) if tolerance_px is None else tolerance_px

    members: dict[int, list[int]] = {}
    for ci, cid in clusters.items():
        members.setdefault(cid, []).append(ci)

    rows: list[NumericRow] = []
    done: set[int] = set()
    for ci in range(len(document.cells)):
        cid = clusters.get(ci)
        if cid is None:
            rows.extend(_line_rows(document, ci))
        elif cid not in done:
            done.add(cid)
            rows.extend(_cluster_rows(document, sorted(members[cid]), tol))
    return rows


def extract_tokens(document: Document) -> list[NumericToken]:
    return [t for row in extract_rows(document) for t in row.values]
