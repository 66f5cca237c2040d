from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from contracts.chunking import ChunkRecord
from contracts.document import Document

from .chunker import chunk_text
from .config import ChunkConfig


def chunks_payload(
    *, document: Document, chunks: list[ChunkRecord], doc_id: str, config: ChunkConfig, include_text: bool
) -> dict[str, Any]:
    rows: list[dict[str, Any]] = []
    for ch in chunks:
        row = ch.to_dict()
        if include_text:
            row["text"] = chunk_text(document, ch)
        rows.append(row)
    return {"doc_id": doc_id, "config": config.to_dict(), "source": document.header.source, "chunks": rows}


def serialize_chunks(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), indent=2) + "\n"


def write_chunks_json(*, payload: dict[str, Any], out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_chunks(payload), encoding="utf-8")
