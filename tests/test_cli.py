from __future__ import annotations

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from chunking.cli import main as chunk_main
from encoder.artifacts import read_document_json
from encoder.cli import main as encode_main

SAMPLE_MD = """# Operating Review

Revenue: $1,200 for the quarter.

Costs were held flat against the prior period.

- Hiring resumed in the second half.
- Two new offices opened.
"""


def _run(fn, argv: list[str]) -> tuple[int, dict]:
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        code = fn(argv)
    return code, json.loads(buf.getvalue().strip().splitlines()[-1])


class TestCli(unittest.TestCase):
    def test_encode_then_chunk(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            src = root / "review.md"
            src.write_text(SAMPLE_MD, encoding="utf-8")
            doc_json = root / "out" / "review.json"
            metrics_json = root / "out" / "metrics.json"
            export_dir = root / "jsonl"

            code, summary = _run(
                encode_main,
                [
                    "--input", str(src),
                    "--output", str(doc_json),
                    "--metrics", str(metrics_json),
                    "--export-dir", str(export_dir),
                    "--keep-footers",
                ],
            )
            self.assertEqual(code, 0)
            self.assertTrue(summary["ok"])
            self.assertEqual(summary["metrics"]["pages"], 1)
            self.assertEqual(len(summary["source_sha256"]), 64)

            doc = read_document_json(doc_json)
            self.assertEqual(summary["exported"]["cells"], len(doc.cells))
            self.assertFalse(doc.header.config["drop_footers"])
            self.assertEqual(json.loads(metrics_json.read_text(encoding="utf-8"))["pages"], 1)
            self.assertTrue((export_dir / "cells.jsonl").exists())

            chunks_json = root / "out" / "chunks.json"
            code, summary = _run(
                chunk_main,
                [
                    "--input", str(doc_json),
                    "--output", str(chunks_json),
                    "--mode", "cells",
                    "--cells-per-chunk", "2",
                    "--overlap-cells", "0",
                    "--with-text",
                ],
            )
            self.assertEqual(code, 0)
            payload = json.loads(chunks_json.read_text(encoding="utf-8"))
            self.assertEqual(payload["doc_id"], "review")
            self.assertEqual(summary["chunks"], len(payload["chunks"]))
            covered = sorted(i for ch in payload["chunks"] for i in ch["cell_indices"])
            self.assertEqual(covered, list(range(len(doc.cells))))
            self.assertIn("Operating Review", payload["chunks"][0]["text"])

    def test_encode_reports_unsupported_input(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            src = root / "slides.key"
            src.write_text("not supported", encoding="utf-8")
            code, summary = _run(encode_main, ["--input", str(src), "--output", str(root / "x.json")])
            self.assertEqual(code, 2)
            self.assertEqual(summary["error"]["code"], "UNSUPPORTED_INPUT")
            self.assertFalse((root / "x.json").exists())

    def test_chunk_rejects_invalid_config(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            src = root / "a.md"
            src.write_text("# A\n\nBody text here.\n", encoding="utf-8")
            doc_json = root / "a.json"
            code, _ = _run(encode_main, ["--input", str(src), "--output", str(doc_json)])
            self.assertEqual(code, 0)
            code, summary = _run(
                chunk_main,
                ["--input", str(doc_json), "--output", str(root / "c.json"), "--max-tokens", "10", "--overlap-tokens", "10"],
            )
            self.assertEqual(code, 2)
            self.assertEqual(summary["error"]["code"], "CONFIGURATION_ERROR")

    def test_chunk_reports_malformed_document_json(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            doc_json = root / "cut.json"
            doc_json.write_text('{"header": {"version": "dcf/1"}, "cells": [', encoding="utf-8")
            code, summary = _run(chunk_main, ["--input", str(doc_json), "--output", str(root / "c.json")])
            self.assertEqual(code, 2)
            self.assertEqual(summary["error"]["code"], "ENCODING_FAILURE")
            self.assertFalse((root / "c.json").exists())


if __name__ == "__main__":
    unittest.main()
