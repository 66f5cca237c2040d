from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path

from contracts.errors import EncodingFailure, UnsupportedInput
from encoder.artifacts import read_document_json, serialize_document, write_document_json
from encoder.module import Encoder
from export.jsonl import ExportWriters, JsonlWriter, export_document, open_export_dir
from export.records import CellRecord, DocumentRecord
from ingest.module import ingest_text

REPORT_MD = """# Results

Sales closed the year ahead of plan.

| Item | Amount |
| Widgets | 10 |
| Gadgets | 20 |
| Total | 35 |
"""


def _writers() -> tuple[ExportWriters, dict[str, io.StringIO]]:
    streams = {"documents": io.StringIO(), "pages": io.StringIO(), "cells": io.StringIO()}
    writers = ExportWriters(
        documents=JsonlWriter(streams["documents"]),
        pages=JsonlWriter(streams["pages"]),
        cells=JsonlWriter(streams["cells"]),
    )
    return writers, streams


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestDocumentArtifacts(unittest.TestCase):
    def test_round_trip_is_byte_identical(self) -> None:
        doc, _ = Encoder.from_preset("reports").encode_text(REPORT_MD)
        with tempfile.TemporaryDirectory() as td:
            out = Path(td) / "nested" / "doc.json"
            write_document_json(document=doc, out_file=out)
            raw = out.read_text(encoding="utf-8")
            self.assertTrue(raw.endswith("\n"))
            again = read_document_json(out)
        self.assertEqual(again, doc)
        self.assertEqual(serialize_document(again), raw)

    def test_reading_a_broken_document_fails_integrity(self) -> None:
        doc, _ = Encoder.from_preset("reports").encode_text(REPORT_MD)
        payload = doc.to_dict()
        payload["dictionary"] = {}
        with tempfile.TemporaryDirectory() as td:
            out = Path(td) / "broken.json"
            out.write_text(json.dumps(payload), encoding="utf-8")
            with self.assertRaises(EncodingFailure):
                read_document_json(out)

    def test_malformed_document_json_is_an_encoding_failure(self) -> None:
        doc, _ = Encoder.from_preset("reports").encode_text(REPORT_MD)
        valid = serialize_document(doc)
        missing_key = doc.to_dict()
        del missing_key["cells"][0]["code_id"]
        bad_type = doc.to_dict()
        bad_type["cells"][0]["cell_type"] = "SIDEBAR"
        cases = {
            "truncated": valid[: len(valid) // 2],
            "not_an_object": "[1, 2, 3]",
            "missing_key": json.dumps(missing_key),
            "unknown_cell_type": json.dumps(bad_type),
        }
        with tempfile.TemporaryDirectory() as td:
            for name, text in cases.items():
                with self.subTest(case=name):
                    out = Path(td) / f"{name}.json"
                    out.write_text(text, encoding="utf-8")
                    with self.assertRaises(EncodingFailure) as ctx:
                        read_document_json(out)
                    self.assertIsNotNone(ctx.exception.__cause__)

    def test_missing_document_json_is_unsupported_input(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(UnsupportedInput):
                read_document_json(Path(td) / "absent.json")


class TestJsonlExport(unittest.TestCase):
    def test_export_writes_documents_pages_and_cells(self) -> None:
        pages = ingest_text(REPORT_MD, fmt="markdown")
        doc, metrics = Encoder.from_preset("reports").encode_pages(pages, source="reports/q4.md")
        writers, streams = _writers()
        counts = export_document(doc, "q4", writers, alerts=metrics.alerts, tags=["finance"])

        docs = _lines(streams["documents"])
        self.assertEqual(len(docs), 1)
        self.assertEqual(DocumentRecord.from_dict(docs[0]).source_format, "md")
        self.assertEqual(docs[0]["tags"], ["finance"])

        pages = _lines(streams["pages"])
        self.assertEqual([p["page_id"] for p in pages], ["q4_page_1"])
        self.assertGreater(pages[0]["approx_tokens"], 0)

        cells = [CellRecord.from_dict(c) for c in _lines(streams["cells"])]
        self.assertEqual(counts.cells, len(doc.cells))
        self.assertEqual([c.cell_id for c in cells], [f"q4_page_1_cell_{i}" for i in range(len(doc.cells))])
        self.assertEqual([c.kind for c in cells], ["heading", "body", "table"])
        for rec, cell in zip(cells, doc.cells):
            self.assertEqual(rec.text, doc.resolve(cell))
            self.assertAlmostEqual(rec.importance, cell.importance / 100.0)
            self.assertTrue(0.0 <= rec.importance <= 1.0)
            self.assertEqual(len(rec.bbox or []), 4)
        self.assertIsNone(cells[0].numguard)
        self.assertEqual(cells[2].numguard["alerts"][0]["issue"], "SUM_MISMATCH")

    def test_jsonl_lines_are_compact_and_sorted(self) -> None:
        buf = io.StringIO()
        w = JsonlWriter(buf)
        w.write_record({"b": 1, "a": "x"})
        w.write_record(DocumentRecord(doc_id="d", title=None, source_type="files", source_format="pdf", source_ref="r"))
        self.assertEqual(w.count, 2)
        first, second = buf.getvalue().splitlines()
        self.assertEqual(first, '{"a":"x","b":1}')
        self.assertEqual(json.loads(second)["doc_id"], "d")

    def test_open_export_dir_creates_three_files(self) -> None:
        doc, _ = Encoder.from_preset("reports").encode_text(REPORT_MD)
        with tempfile.TemporaryDirectory() as td:
            out_dir = Path(td) / "export"
            with open_export_dir(out_dir) as writers:
                export_document(doc, "doc", writers)
            names = sorted(p.name for p in out_dir.iterdir())
            self.assertEqual(names, ["cells.jsonl", "documents.jsonl", "pages.jsonl"])
            cells = (out_dir / "cells.jsonl").read_text(encoding="utf-8").splitlines()
            self.assertEqual(len(cells), len(doc.cells))


if __name__ == "__main__":
    unittest.main()
