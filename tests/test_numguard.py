from __future__ import annotations

import json
import unittest

from contracts.document import CellRecord, CellType, Document, Header, PageInfo, fmt_cell_id, hash_payload
from contracts.numguard import NumGuardIssue, Severity
from contracts.raw import BBox, RawPage, RawUnit
from encoder.module import Encoder
from numguard.config import NumGuardConfig
from numguard.extract import extract_rows, extract_tokens
from numguard.module import NumGuard


def _doc(cells: list[tuple[int, CellType, str]]) -> Document:
    records: list[CellRecord] = []
    dictionary: dict[str, str] = {}
    per_page: dict[int, int] = {}
    for z, cell_type, text in cells:
        idx = per_page.get(z, 0)
        per_page[z] = idx + 1
        code_id = hash_payload(text)
        dictionary[code_id] = text
        records.append(
            CellRecord(
                cell_id=fmt_cell_id(z, idx),
                code_id=code_id,
                cell_type=cell_type,
                bbox=BBox(x=100, y=200 + 20 * idx, w=400, h=18),
                z=z,
                importance=50,
            )
        )
    pages = [PageInfo(z=z, width_px=1024, height_px=1400) for z in sorted(per_page)]
    header = Header(version="test", preset="reports", budget=None, page_width_px=1024, page_height_px=1400)
    return Document(header=header, pages=pages, cells=records, dictionary=dictionary)


def _table(total: str) -> Document:
    return _doc(
        [
            (1, CellType.TABLE, "Item A | 10"),
            (1, CellType.TABLE, "Item B | 20"),
            (1, CellType.TABLE, "Item C | 30"),
            (1, CellType.TABLE, f"Total | {total}"),
        ]
    )


class TestNumGuard(unittest.TestCase):
    def test_consistent_total_has_no_alerts(self) -> None:
        self.assertEqual(NumGuard().run(_table("60")), [])

    def test_wrong_total_yields_one_medium_sum_mismatch(self) -> None:
        doc = _table("55")
        alerts = NumGuard().run(doc)
        self.assertEqual(len(alerts), 1)
        a = alerts[0]
        self.assertEqual(a.issue, NumGuardIssue.SUM_MISMATCH)
        self.assertEqual(a.severity, Severity.MEDIUM)
        self.assertEqual(a.cell_ids[0], doc.cells[3].cell_id)
        self.assertEqual(a.detail["expected"], 60.0)
        self.assertEqual(a.detail["found"], 55.0)

    def test_multirow_table_cell_with_header_row(self) -> None:
        doc = _doc([(1, CellType.TABLE, "Item | 2023\nItem A | 10\nItem B | 20\nTotal | 35")])
        alerts = NumGuard().run(doc)
        self.assertEqual([a.issue for a in alerts], [NumGuardIssue.SUM_MISMATCH])
        self.assertEqual(alerts[0].detail["expected"], 30.0)

    def test_running_numguard_does_not_mutate_document(self) -> None:
        doc = _table("55")
        before = json.dumps(doc.to_dict(), sort_keys=True)
        cells_before = list(doc.cells)
        NumGuard().run(doc)
        self.assertEqual(json.dumps(doc.to_dict(), sort_keys=True), before)
        self.assertEqual(doc.cells, cells_before)

    def test_magnitude_outlier_is_low_severity(self) -> None:
        doc = _doc(
            [
                (1, CellType.BODY, "Shipped 100 units."),
                (1, CellType.BODY, "Shipped 120 units."),
                (1, CellType.BODY, "Shipped 110 units."),
                (1, CellType.BODY, "Shipped 130 units."),
                (1, CellType.BODY, "Shipped 5,000,000 units."),
            ]
        )
        alerts = NumGuard().run(doc)
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0].issue, NumGuardIssue.MAGNITUDE_OUTLIER)
        self.assertEqual(alerts[0].severity, Severity.LOW)
        self.assertEqual(alerts[0].cell_ids, [doc.cells[4].cell_id])

    def test_cross_page_drift_for_same_label(self) -> None:
        doc = _doc(
            [
                (1, CellType.BODY, "Net revenue: $1,200"),
                (2, CellType.BODY, "Unrelated discussion of strategy."),
                (3, CellType.BODY, "Net revenue: $1,450"),
            ]
        )
        alerts = NumGuard().run(doc)
        self.assertEqual(len(alerts), 1)
        a = alerts[0]
        self.assertEqual(a.issue, NumGuardIssue.CROSS_OCCURRENCE_DRIFT)
        self.assertEqual(a.severity, Severity.MEDIUM)
        self.assertEqual(a.pages, [1, 3])
        self.assertEqual(a.detail["label"], "net revenue")

    def test_same_value_across_pages_is_not_drift(self) -> None:
        doc = _doc([(1, CellType.BODY, "Headcount: 42"), (4, CellType.BODY, "Headcount: 42")])
        self.assertEqual(NumGuard().run(doc), [])

    def test_disabled_config_returns_nothing(self) -> None:
        self.assertEqual(NumGuard(NumGuardConfig(enabled=False)).run(_table("55")), [])

    def test_extraction_handles_signs_units_and_identifiers(self) -> None:
        doc = _doc(
            [
                (1, CellType.BODY, "Loss: (1,234)"),
                (1, CellType.BODY, "Growth 12.5%"),
                (1, CellType.BODY, "USD 300"),
                (1, CellType.BODY, "COVID-19 response"),
            ]
        )
        toks = extract_tokens(doc)
        self.assertEqual([(t.value, t.unit) for t in toks], [(-1234.0, None), (12.5, "percent"), (300.0, "currency")])
        self.assertEqual(toks[0].raw, "(1,234)")
        self.assertEqual(toks[0].label, "loss")
        self.assertTrue(toks[0].associated)

    def test_labelled_total_column_is_checked_per_row(self) -> None:
        doc = _doc([(1, CellType.TABLE, "Item | Q1 | Q2 | Total\nA | 10 | 20 | 35\nB | 5 | 5 | 10")])
        alerts = NumGuard().run(doc)
        self.assertEqual(len(alerts), 1)
        a = alerts[0]
        self.assertEqual((a.issue, a.severity), (NumGuardIssue.SUM_MISMATCH, Severity.MEDIUM))
        self.assertEqual(a.detail["axis"], "row")
        self.assertEqual(a.detail["label"], "a")
        self.assertEqual((a.detail["expected"], a.detail["found"]), (30.0, 35.0))

    def test_consistent_total_column_has_no_alerts(self) -> None:
        doc = _doc([(1, CellType.TABLE, "Item | Q1 | Q2 | Total\nA | 10 | 20 | 30\nB | 5 | 5 | 10")])
        self.assertEqual(NumGuard().run(doc), [])


def _grid_page(z: int, rows: list[tuple[str, str]], *, top: int = 300) -> RawPage:
    units = [RawUnit(text="Figures for the period are listed below.", bbox=BBox(x=100, y=200, w=600, h=18), z=z)]
    for i, (label, value) in enumerate(rows):
        y = top + 30 * i
        units.append(RawUnit(text=label, bbox=BBox(x=100, y=y, w=120, h=18), z=z))
        units.append(RawUnit(text=value, bbox=BBox(x=400, y=y, w=60, h=18), z=z))
    return RawPage(z=z, width_px=1024, height_px=1400, units=units)


def _cell_with_text(doc: Document, text: str) -> str:
    return next(c.cell_id for c in doc.cells if doc.resolve(c) == text)


class TestNumGuardOnEncodedTables(unittest.TestCase):
    ITEMS = [("Item A", "10"), ("Item B", "20"), ("Item C", "30")]

    def test_grid_table_with_consistent_total(self) -> None:
        doc, metrics = Encoder.from_preset("reports").encode_pages([_grid_page(1, self.ITEMS + [("Total", "60")])])
        self.assertEqual([c.cell_type for c in doc.cells[1:]], [CellType.TABLE] * 8)
        self.assertEqual(metrics.alerts, [])

    def test_grid_table_with_wrong_total_references_the_total_cell(self) -> None:
        doc, metrics = Encoder.from_preset("reports").encode_pages([_grid_page(1, self.ITEMS + [("Total", "55")])])
        self.assertEqual([c.cell_type for c in doc.cells[1:]], [CellType.TABLE] * 8)
        self.assertEqual(len(metrics.alerts), 1)
        a = metrics.alerts[0]
        self.assertEqual((a.issue, a.severity), (NumGuardIssue.SUM_MISMATCH, Severity.MEDIUM))
        self.assertEqual(a.cell_ids[0], _cell_with_text(doc, "55"))
        self.assertIn(_cell_with_text(doc, "Total"), a.cell_ids)
        self.assertEqual((a.detail["expected"], a.detail["found"]), (60.0, 55.0))

    def test_grid_rows_rebuilt_from_geometry(self) -> None:
        doc, _ = Encoder.from_preset("reports").encode_pages([_grid_page(1, self.ITEMS + [("Total", "60")])])
        table_rows = [r for r in extract_rows(doc) if r.cell_ids[0] != doc.cells[0].cell_id]
        self.assertEqual([r.label for r in table_rows], ["item a", "item b", "item c", "total"])
        self.assertEqual([[t.value for t in r.values] for r in table_rows], [[10.0], [20.0], [30.0], [60.0]])
        self.assertTrue(all(r.values[0].label == r.label for r in table_rows))

    def test_grid_values_drift_across_pages(self) -> None:
        pages = [
            _grid_page(1, [("Net sales", "1,200"), ("Returns", "40")]),
            _grid_page(3, [("Net sales", "1,450"), ("Returns", "40")]),
        ]
        _, metrics = Encoder.from_preset("reports").encode_pages(pages)
        self.assertEqual([a.issue for a in metrics.alerts], [NumGuardIssue.CROSS_OCCURRENCE_DRIFT])
        self.assertEqual(metrics.alerts[0].detail["label"], "net sales")
        self.assertEqual(metrics.alerts[0].pages, [1, 3])

    def test_markdown_total_column_end_to_end(self) -> None:
        md = "| Item | Q1 | Q2 | Total |\n|---|---|---|---|\n| A | 10 | 20 | 35 |\n| B | 5 | 5 | 10 |\n"
        doc, metrics = Encoder.from_preset("reports").encode_text(md)
        self.assertEqual(len(metrics.alerts), 1)
        self.assertEqual(metrics.alerts[0].issue, NumGuardIssue.SUM_MISMATCH)
        self.assertEqual(metrics.alerts[0].cell_ids[0], doc.cells[0].cell_id)


if __name__ == "__main__":
    unittest.main()
