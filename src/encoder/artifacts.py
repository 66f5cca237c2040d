from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from contracts.document import Document
from contracts.errors import EncodingFailure, UnsupportedInput
from contracts.metrics import Metrics


def _canonical_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), indent=2) + "\n"


def serialize_document(document: Document) -> str:
    return _canonical_json(document.to_dict())


def serialize_metrics(metrics: Metrics) -> str:
    return _canonical_json(metrics.to_dict())


def write_document_json(*, document: Document, out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_document(document), encoding="utf-8")


def write_metrics_json(*, metrics: Metrics, out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_metrics(metrics), encoding="utf-8")


def read_document_json(path: Path) -> Document:
    """
    Load a document artifact and verify dictionary integrity.

    A missing file is UnsupportedInput; content that does not parse into a
    Document is EncodingFailure with the parse error chained.
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise UnsupportedInput("Document JSON could not be read", detail={"path": p.as_posix()}) from e

    try:
        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise TypeError("Document JSON must be an object")
        document = Document.from_dict(raw)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise EncodingFailure(
            "Document JSON is malformed", detail={"path": p.as_posix(), "error": f"{type(e).__name__}: {e}"}
        ) from e
    document.check_integrity()
    return document
