from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def fmt_page_id(doc_id: str, z: int) -> str:
    return f"{doc_id}_page_{z}"


def fmt_export_cell_id(page_id: str, idx: int) -> str:
    return f"{page_id}_cell_{idx}"


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    doc_id: str
    title: str | None
    source_type: str
    source_format: str
    source_ref: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_id": self.doc_id,
            "title": self.title,
            "source_type": self.source_type,
            "source_format": self.source_format,
            "source_ref": self.source_ref,
            "tags": list(self.tags),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "DocumentRecord":
        return DocumentRecord(
            doc_id=str(d["doc_id"]),
            title=(None if d.get("title") is None else str(d["title"])),
            source_type=str(d.get("source_type", "")),
            source_format=str(d.get("source_format", "")),
            source_ref=str(d.get("source_ref", "")),
            tags=[str(t) for t in (d.get("tags") or [])],
        )


@dataclass(frozen=True, slots=True)
class PageRecord:
    page_id: str  # {doc_id}_page_{z}
    doc_id: str
    page_number: int
    approx_tokens: int | None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_id": self.page_id,
            "doc_id": self.doc_id,
            "page_number": self.page_number,
            "approx_tokens": self.approx_tokens,
            "meta": dict(self.meta),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PageRecord":
        return PageRecord(
            page_id=str(d["page_id"]),
            doc_id=str(d["doc_id"]),
            page_number=int(d["page_number"]),
            approx_tokens=(None if d.get("approx_tokens") is None else int(d["approx_tokens"])),
            meta=dict(d.get("meta") or {}),
        )


@dataclass(frozen=True, slots=True)
class CellRecord:
    """
    One cell, text resolved, as a flat dataset row.

    `importance` is the encoder score scaled to [0, 1]; `numguard` carries
    the alerts that reference this cell, or None when there are none.
    """

    cell_id: str  # {page_id}_cell_{idx}
    doc_id: str
    page_id: str
    kind: str  # lowercase cell type
    text: str
    importance: float
    bbox: list[float] | None
    numguard: dict[str, Any] | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cell_id": self.cell_id,
            "doc_id": self.doc_id,
            "page_id": self.page_id,
            "kind": self.kind,
            "text": self.text,
            "importance": self.importance,
            "bbox": None if self.bbox is None else list(self.bbox),
            "numguard": None if self.numguard is None else dict(self.numguard),
            "meta": dict(self.meta),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "CellRecord":
        bbox = d.get("bbox")
        return CellRecord(
            cell_id=str(d["cell_id"]),
            doc_id=str(d["doc_id"]),
            page_id=str(d["page_id"]),
            kind=str(d["kind"]),
            text=str(d.get("text", "")),
            importance=float(d["importance"]),
            bbox=(None if bbox is None else [float(v) for v in bbox]),
            numguard=(None if d.get("numguard") is None else dict(d["numguard"])),
            meta=dict(d.get("meta") or {}),
        )
