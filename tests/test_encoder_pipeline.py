from __future__ import annotations

import unittest

from contracts.document import CellType
from contracts.errors import ConfigurationError, UnsupportedInput
from contracts.numguard import NumGuardIssue
from contracts.raw import BBox, RawPage, RawUnit
from encoder.artifacts import serialize_document, serialize_metrics
from encoder.budget import trim_to_budget
from encoder.buffer import PendingCell
from encoder.config import EncoderConfig, EncoderPreset, HyphenationMode, ImportanceTuning
from encoder.module import Encoder, EncoderBuilder
from encoder.tokens import TokenizerKind, estimate_tokens

REPORT_MD = """# Quarterly Report

Revenue grew strongly this quarter.

| Item | Amount |
|---|---|
| Item A | 10 |
| Item B | 20 |
| Item C | 30 |
| Total | 55 |

```python
print('hi')
```
"""


def _pages() -> list[RawPage]:
    return [
        RawPage(
            z=1,
            width_px=1024,
            height_px=1400,
            units=[
                RawUnit(text="Annual Report 2024", bbox=BBox(x=100, y=20, w=300, h=18), z=1),
                RawUnit(text="1. Overview", bbox=BBox(x=100, y=150, w=300, h=30), z=1),
                RawUnit(text="The company grew in every region this year.", bbox=BBox(x=100, y=200, w=700, h=18), z=1),
                RawUnit(text="   ", bbox=BBox(x=100, y=230, w=10, h=18), z=1),
                RawUnit(text="Page 1", bbox=BBox(x=480, y=1360, w=60, h=18), z=1),
            ],
        ),
        RawPage(
            z=2,
            width_px=1024,
            height_px=1400,
            units=[
                RawUnit(text="Annual Report 2024", bbox=BBox(x=100, y=20, w=300, h=18), z=2),
                RawUnit(text="Costs were kept flat through con-", bbox=BBox(x=100, y=200, w=700, h=18), z=2),
                RawUnit(text="tinued discipline.", bbox=BBox(x=100, y=220, w=300, h=18), z=2),
                RawUnit(text="Page 2", bbox=BBox(x=480, y=1360, w=60, h=18), z=2),
            ],
        ),
    ]


def _pending(position: int, importance: int) -> PendingCell:
    return PendingCell(
        cell_id=f"p001_c{position:06d}",
        position=position,
        z=1,
        cell_type=CellType.BODY,
        bbox=BBox(x=0, y=10 * position, w=100, h=10),
        payload=f"payload {position}",
        code_id="",
        importance=importance,
    )


class TestEncoderPipeline(unittest.TestCase):
    def test_encoding_is_deterministic(self) -> None:
        encoder = Encoder.from_preset("reports")
        d1, m1 = encoder.encode_pages(_pages(), source="synthetic.pdf")
        d2, m2 = encoder.encode_pages(_pages(), source="synthetic.pdf")
        self.assertEqual(serialize_document(d1).encode("utf-8"), serialize_document(d2).encode("utf-8"))
        self.assertEqual(serialize_metrics(m1), serialize_metrics(m2))

        d3, _ = Encoder.from_preset("reports").encode_pages(_pages(), source="synthetic.pdf")
        self.assertEqual(serialize_document(d1), serialize_document(d3))

    def test_dictionary_integrity_and_pruning(self) -> None:
        doc, metrics = Encoder.from_preset("reports").encode_pages(_pages())
        referenced = {c.code_id for c in doc.cells}
        self.assertEqual(set(doc.dictionary), referenced)
        for c in doc.cells:
            self.assertIn(c.code_id, doc.dictionary)
            self.assertTrue(0 <= c.importance <= 100)
        self.assertEqual(metrics.dictionary_entries, len(doc.dictionary))
        doc.check_integrity()

    def test_classification_hyphenation_and_warnings(self) -> None:
        doc, metrics = Encoder.from_preset("reports").encode_pages(_pages())
        types = [(c.z, c.cell_type) for c in doc.cells]
        self.assertIn((1, CellType.HEADER), types)
        self.assertIn((1, CellType.HEADING), types)
        self.assertIn((1, CellType.FOOTER), types)
        texts = [doc.resolve(c) for c in doc.cells]
        self.assertIn("Costs were kept flat through continued discipline.", texts)
        codes = {w["code"] for w in metrics.warnings}
        self.assertIn("ENCODE_UNIT_DROPPED", codes)
        self.assertIn("ENCODE_HYPHENATION_MERGED", codes)
        # The running header repeats on page 2 and collapses into one group.
        headers = [c for c in doc.cells if c.cell_type == CellType.HEADER]
        self.assertEqual(len({c.code_id for c in headers}), 1)
        self.assertGreater(metrics.dedup_ratio, 1.0)

    def test_preserve_hyphenation_keeps_units_apart(self) -> None:
        encoder = Encoder.builder("reports").hyphenation("preserve").build()
        doc, _ = encoder.encode_pages(_pages())
        texts = [doc.resolve(c) for c in doc.cells]
        self.assertIn("Costs were kept flat through con-", texts)

    def test_budget_trimmer_keeps_highest_importance_in_order(self) -> None:
        cells = [_pending(0, 90), _pending(1, 10), _pending(2, 80)]
        outcome = trim_to_budget(cells, budget=50, estimate=lambda _t: 20)
        self.assertEqual([c.position for c in outcome.cells], [0, 2])
        self.assertEqual([c.importance for c in outcome.cells], [90, 80])
        self.assertEqual(outcome.trimmed, 1)
        self.assertEqual(outcome.tokens_kept, 40)

    def test_budget_trimmer_stops_at_first_overflow(self) -> None:
        cells = [_pending(0, 90), _pending(1, 80), _pending(2, 70)]
        costs = {"payload 0": 20, "payload 1": 40, "payload 2": 5}
        outcome = trim_to_budget(cells, budget=50, estimate=lambda t: costs[t])
        self.assertEqual([c.position for c in outcome.cells], [0])

    def test_encoded_document_respects_budget(self) -> None:
        budget = 30
        full, _ = Encoder.from_preset("reports").encode_text(REPORT_MD)
        encoder = Encoder.builder("reports").budget(budget).build()
        doc, metrics = encoder.encode_text(REPORT_MD)

        cost = sum(estimate_tokens(doc.resolve(c), TokenizerKind.CHAR_RATIO) for c in doc.cells)
        self.assertLessEqual(cost, budget)
        self.assertEqual(metrics.tokens_kept, cost)
        self.assertGreaterEqual(metrics.cells_trimmed, 1)
        full_order = [c.cell_id for c in full.cells]
        kept = [c.cell_id for c in doc.cells]
        self.assertEqual(kept, [cid for cid in full_order if cid in set(kept)])

    def test_encode_text_markdown_end_to_end(self) -> None:
        doc, metrics = Encoder.from_preset("reports").encode_text(REPORT_MD)
        self.assertEqual(
            [c.cell_type for c in doc.cells], [CellType.HEADING, CellType.BODY, CellType.TABLE, CellType.CODE]
        )
        self.assertEqual(doc.resolve(doc.cells[0]), "Quarterly Report")
        self.assertEqual(doc.resolve(doc.cells[3]), "print('hi')")
        self.assertEqual(metrics.numguard_count, 1)
        self.assertEqual(metrics.alerts[0].issue, NumGuardIssue.SUM_MISMATCH)
        self.assertEqual(metrics.alerts[0].cell_ids[0], doc.cells[2].cell_id)
        self.assertEqual(doc.header.preset, "reports")
        self.assertEqual(doc.header.config["dedup_window"], 5)

    def test_empty_inputs_raise_unsupported(self) -> None:
        encoder = Encoder.from_preset("reports")
        with self.assertRaises(UnsupportedInput):
            encoder.encode_pages([])
        blank = RawPage(z=1, width_px=1024, height_px=1400, units=[RawUnit(text=" \n", bbox=BBox(0, 0, 5, 5), z=1)])
        with self.assertRaises(UnsupportedInput):
            encoder.encode_pages([blank])
        with self.assertRaises(UnsupportedInput):
            encoder.encode_text("   \n\n")

    def test_presets_and_configuration_errors(self) -> None:
        slides = EncoderConfig.for_preset("slides")
        self.assertEqual((slides.page_width_px, slides.page_height_px), (1920, 1080))
        self.assertEqual(slides.hyphenation, HyphenationMode.PRESERVE)
        self.assertEqual(EncoderConfig.for_preset(EncoderPreset.SCANS).drop_footers, False)

        with self.assertRaises(ConfigurationError):
            Encoder.from_preset("brochures")
        with self.assertRaises(ValueError):
            EncoderConfig.for_preset("brochures")
        with self.assertRaises(ConfigurationError):
            ImportanceTuning(heading_boost=0.5)
        with self.assertRaises(ConfigurationError):
            EncoderConfig().with_overrides(dedup_window=-1)
        with self.assertRaises(ConfigurationError):
            EncoderConfig(hyphenation="merge")  # type: ignore[arg-type]
        with self.assertRaises(ConfigurationError):
            EncoderBuilder("reports").hyphenation("squash")
        with self.assertRaises(ConfigurationError):
            EncoderBuilder("reports").budget(0).build()

    def test_builder_applies_overrides(self) -> None:
        encoder = (
            EncoderBuilder("news")
            .budget(512)
            .drop_footers(False)
            .dedup_window(7)
            .table_tolerance(20)
            .tokenizer("whitespace")
            .importance_tuning(heading_boost=2.0)
            .page_size(800, 1000)
            .build()
        )
        cfg = encoder.config
        self.assertEqual(cfg.preset, EncoderPreset.NEWS)
        self.assertEqual(cfg.budget, 512)
        self.assertFalse(cfg.drop_footers)
        self.assertEqual(cfg.dedup_window, 7)
        self.assertEqual(cfg.table_tolerance_px, 20)
        self.assertEqual(cfg.tokenizer, TokenizerKind.WHITESPACE)
        self.assertEqual(cfg.importance.heading_boost, 2.0)
        # Preset-specific tuning survives a partial override.
        self.assertEqual(cfg.importance.early_line_bonus, 1.3)
        self.assertEqual((cfg.page_width_px, cfg.page_height_px), (800, 1000))


if __name__ == "__main__":
    unittest.main()
