from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, TextIO

from contracts.document import Document
from contracts.numguard import NumGuardAlert
from encoder.tokens import TokenizerKind, estimate_tokens

from .records import CellRecord, DocumentRecord, PageRecord, fmt_export_cell_id, fmt_page_id


class JsonlWriter:
    """Streams records as JSON lines: one compact, key-sorted object per line."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self.count = 0

    def write_record(self, record: Any) -> None:
        payload = record if isinstance(record, dict) else record.to_dict()
        self._stream.write(json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")) + "\n")
        self.count += 1

    def flush(self) -> None:
        self._stream.flush()


@dataclass(slots=True)
class ExportWriters:
    documents: JsonlWriter
    pages: JsonlWriter
    cells: JsonlWriter


@contextmanager
def open_export_dir(out_dir: Path) -> Iterator[ExportWriters]:
    """documents.jsonl, pages.jsonl and cells.jsonl under `out_dir`, truncated."""
    out_dir.mkdir(parents=True, exist_ok=True)
    with (
        (out_dir / "documents.jsonl").open("w", encoding="utf-8") as docs,
        (out_dir / "pages.jsonl").open("w", encoding="utf-8") as pages,
        (out_dir / "cells.jsonl").open("w", encoding="utf-8") as cells,
    ):
        yield ExportWriters(documents=JsonlWriter(docs), pages=JsonlWriter(pages), cells=JsonlWriter(cells))


@dataclass(frozen=True, slots=True)
class ExportCounts:
    documents: int
    pages: int
    cells: int


def _source_format(source: str | None) -> str:
    if not source:
        return "unknown"
    suffix = Path(source).suffix.lower().lstrip(".")
    return suffix or "unknown"


def _alerts_by_cell(alerts: Iterable[NumGuardAlert]) -> dict[str, list[dict[str, Any]]]:
    out: dict[str, list[dict[str, Any]]] = {}
    for a in alerts:
        brief = {"issue": a.issue.value, "severity": a.severity.value, "message": a.message}
        for cid in a.cell_ids:
            out.setdefault(cid, []).append(brief)
    return out


def export_document(
    document: Document,
    doc_id: str,
    writers: ExportWriters,
    *,
    alerts: Iterable[NumGuardAlert] = (),
    title: str | None = None,
    source_type: str = "files",
    tags: Iterable[str] = (),
    tokenizer: TokenizerKind = TokenizerKind.CHAR_RATIO,
) -> ExportCounts:
    """
    Write one document, its pages and its cells (text resolved) to JSONL.

    Pages are written even when they hold no cells; cell order within a page
    is document order.
    """

    source = document.header.source
    writers.documents.write_record(
        DocumentRecord(
            doc_id=doc_id,
            title=title,
            source_type=source_type,
            source_format=_source_format(source),
            source_ref=source or "",
            tags=list(tags),
        )
    )

    by_cell = _alerts_by_cell(alerts)
    n_cells = 0
    for page in document.pages:
        page_id = fmt_page_id(doc_id, page.z)
        cells = document.cells_on_page(page.z)
        texts = [document.resolve(c) for c in cells]
        writers.pages.write_record(
            PageRecord(
                page_id=page_id,
                doc_id=doc_id,
                page_number=page.z,
                approx_tokens=sum(estimate_tokens(t, tokenizer) for t in texts),
                meta={"width_px": page.width_px, "height_px": page.height_px, "cells": len(cells)},
            )
        )
        for idx, (cell, text) in enumerate(zip(cells, texts)):
            flagged = by_cell.get(cell.cell_id)
            writers.cells.write_record(
                CellRecord(
                    cell_id=fmt_export_cell_id(page_id, idx),
                    doc_id=doc_id,
                    page_id=page_id,
                    kind=cell.cell_type.value.lower(),
                    text=text,
                    importance=cell.importance / 100.0,
                    bbox=cell.bbox.as_floats(),
                    numguard=None if flagged is None else {"alerts": flagged},
                    meta={"cell_ref": cell.cell_id, "code_id": cell.code_id, "z": cell.z},
                )
            )
            n_cells += 1

    return ExportCounts(documents=1, pages=len(document.pages), cells=n_cells)
