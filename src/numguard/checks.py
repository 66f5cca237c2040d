from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Callable

from contracts.document import CellType, Document
from contracts.numguard import NumGuardAlert, NumGuardIssue, Severity

from .config import NumGuardConfig
from .extract import NumericRow, NumericToken, extract_rows, is_total_label, row_tolerance_px, table_clusters

# Cells whose numbers are page furniture or enumerations, not data.
_NON_DATA_TYPES = frozenset({CellType.HEADER, CellType.FOOTER, CellType.HEADING, CellType.CAPTION})


@dataclass(frozen=True, slots=True)
class NumGuardContext:
    document: Document
    config: NumGuardConfig
    rows: list[NumericRow]
    cluster_of: dict[int, int]  # cell index -> table cluster id (TABLE cells only)

    @property
    def tokens(self) -> list[NumericToken]:
        return [t for r in self.rows for t in r.values]


Check = Callable[[NumGuardContext], list[NumGuardAlert]]


def build_context(document: Document, config: NumGuardConfig) -> NumGuardContext:
    clusters = table_clusters(document)
    rows = extract_rows(document, clusters=clusters, tolerance_px=row_tolerance_px(document))
    return NumGuardContext(document=document, config=config, rows=rows, cluster_of=clusters)


def _is_year_row(row: NumericRow) -> bool:
    return all(float(t.value).is_integer() and 1900 <= t.value <= 2100 and t.unit is None for t in row.values)


def _within(expected: float, found: float, tolerance: float) -> bool:
    return abs(expected - found) <= tolerance * max(abs(expected), abs(found), 1.0)


def _total_slot(row: NumericRow) -> int | None:
    """Column of a header row named like a total; the label column never counts."""
    if len(row.columns) < 3 or (row.values and not _is_year_row(row)):
        return None
    for slot in range(len(row.columns) - 1, 0, -1):
        if is_total_label(row.columns[slot]):
            return slot
    return None


def _column_total_alerts(rows: list[NumericRow], tolerance: float) -> list[NumGuardAlert]:
    # A total row is compared with the same-width rows above it.
    alerts: list[NumGuardAlert] = []
    parts: list[NumericRow] = []
    for row in rows:
        if not row.values:
            continue
        if not row.is_total:
            # Column headers such as "Item | 2023 | 2024" precede the data.
            if parts or not _is_year_row(row):
                parts.append(row)
            continue

        width = len(row.values)
        same = [r for r in parts if len(r.values) == width]
        parts = []
        if len(same) < 2:
            continue
        for col, found in enumerate(row.values):
            expected = sum(r.values[col].value for r in same)
            if _within(expected, found.value, tolerance):
                continue
            cell_ids = [found.cell_id, *row.cell_ids, *(r.values[col].cell_id for r in same)]
            alerts.append(
                NumGuardAlert(
                    issue=NumGuardIssue.SUM_MISMATCH,
                    severity=Severity.MEDIUM,
                    cell_ids=list(dict.fromkeys(cell_ids)),
                    pages=[row.z],
                    message=f"{row.label or 'total'}: stated {found.raw}, rows sum to {expected:g}",
                    detail={
                        "axis": "column",
                        "label": row.label,
                        "column": col,
                        "expected": expected,
                        "found": found.value,
                        "rows": len(same),
                    },
                )
            )
    return alerts


def _row_total_alerts(rows: list[NumericRow], tolerance: float) -> list[NumGuardAlert]:
    # Under a header naming a total column, each row's total is compared with its other columns.
    alerts: list[NumGuardAlert] = []
    total_slot: int | None = None
    width = 0
    for row in rows:
        slot = _total_slot(row)
        if slot is not None:
            total_slot, width = slot, len(row.columns)
            continue
        if total_slot is None or len(row.columns) != width:
            continue

        totals = [t for t in row.values if t.slot == total_slot]
        parts = [t for t in row.values if 0 < t.slot < total_slot]
        if len(totals) != 1 or len(parts) < 2:
            continue
        found = totals[0]
        expected = sum(t.value for t in parts)
        if _within(expected, found.value, tolerance):
            continue
        cell_ids = [found.cell_id, *row.cell_ids, *(t.cell_id for t in parts)]
        alerts.append(
            NumGuardAlert(
                issue=NumGuardIssue.SUM_MISMATCH,
                severity=Severity.MEDIUM,
                cell_ids=list(dict.fromkeys(cell_ids)),
                pages=[row.z],
                message=f"{row.label or 'row'}: stated total {found.raw}, columns sum to {expected:g}",
                detail={
                    "axis": "row",
                    "label": row.label,
                    "column": total_slot,
                    "expected": expected,
                    "found": found.value,
                    "columns": len(parts),
                },
            )
        )
    return alerts


def check_sum_mismatch(ctx: NumGuardContext) -> list[NumGuardAlert]:
    by_cluster: dict[int, list[NumericRow]] = {}
    for row in ctx.rows:
        cid = ctx.cluster_of.get(row.cell_index)
        if cid is not None:
            by_cluster.setdefault(cid, []).append(row)

    alerts: list[NumGuardAlert] = []
    for cid in sorted(by_cluster):
        rows = by_cluster[cid]
        alerts.extend(_column_total_alerts(rows, ctx.config.sum_tolerance))
        alerts.extend(_row_total_alerts(rows, ctx.config.sum_tolerance))
    return alerts


def check_magnitude_outlier(ctx: NumGuardContext) -> list[NumGuardAlert]:
    groups: dict[tuple[str, str], list[NumericToken]] = {}
    for t in ctx.tokens:
        if t.cell_type in _NON_DATA_TYPES or t.value == 0:
            continue
        cid = ctx.cluster_of.get(t.cell_index)
        scope = f"table:{cid}" if cid is not None else f"type:{t.cell_type.value}"
        groups.setdefault((scope, t.unit or ""), []).append(t)

    factor = ctx.config.outlier_factor
    alerts: list[NumGuardAlert] = []
    for key in sorted(groups):
        members = groups[key]
        if len(members) < ctx.config.outlier_min_group:
            continue
        median = statistics.median(abs(t.value) for t in members)
        for t in members:
            v = abs(t.value)
            ratio = max(v / median, median / v)
            if ratio <= factor:
                continue
            alerts.append(
                NumGuardAlert(
                    issue=NumGuardIssue.MAGNITUDE_OUTLIER,
                    severity=Severity.LOW,
                    cell_ids=[t.cell_id],
                    pages=[t.z],
                    message=f"{t.raw} is {ratio:.0f}x off the group median {median:g}",
                    detail={"value": t.value, "median": median, "ratio": ratio, "group": key[0], "unit": key[1] or None},
                )
            )
    return alerts


def check_cross_occurrence_drift(ctx: NumGuardContext) -> list[NumGuardAlert]:
    # First associated value per (row cell, label); labels are compared across pages.
    by_label: dict[str, list[NumericToken]] = {}
    seen: set[tuple[str, str]] = set()
    for row in ctx.rows:
        for t in row.values:
            if not t.associated or t.cell_type in _NON_DATA_TYPES:
                continue
            if len(t.label) < ctx.config.min_label_chars or (row.cell_id, t.label) in seen:
                continue
            seen.add((row.cell_id, t.label))
            by_label.setdefault(t.label, []).append(t)

    alerts: list[NumGuardAlert] = []
    for label in sorted(by_label):
        occ = by_label[label]
        pages = sorted({t.z for t in occ})
        if len(pages) < 2:
            continue
        lo = min(t.value for t in occ)
        hi = max(t.value for t in occ)
        spread = (hi - lo) / max(abs(hi), abs(lo), 1e-9)
        if spread <= ctx.config.drift_tolerance:
            continue
        alerts.append(
            NumGuardAlert(
                issue=NumGuardIssue.CROSS_OCCURRENCE_DRIFT,
                severity=Severity.MEDIUM,
                cell_ids=list(dict.fromkeys(t.cell_id for t in occ)),
                pages=pages,
                message=f"'{label}' reported as {', '.join(dict.fromkeys(t.raw for t in occ))}",
                detail={
                    "label": label,
                    "spread": spread,
                    "values": [{"cell_id": t.cell_id, "z": t.z, "raw": t.raw, "value": t.value} for t in occ],
                },
            )
        )
    return alerts


DEFAULT_CHECKS: tuple[Check, ...] = (check_sum_mismatch, check_magnitude_outlier, check_cross_occurrence_drift)
