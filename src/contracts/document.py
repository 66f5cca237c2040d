from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import EncodingFailure
from .raw import BBox

# Content address of a normalized payload: sha256 hex digest (64 chars).
CodeHash = str


def hash_payload(text: str) -> CodeHash:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def fmt_cell_id(z: int, idx: int) -> str:
    return f"p{z:03d}_c{idx:06d}"


class CellType(str, Enum):
    HEADING = "HEADING"
    BODY = "BODY"
    TABLE = "TABLE"
    CODE = "CODE"
    CAPTION = "CAPTION"
    LIST = "LIST"
    HEADER = "HEADER"
    FOOTER = "FOOTER"


@dataclass(frozen=True, slots=True)
class PageInfo:
    z: int  # 1-indexed, unique, strictly increasing across a Document
    width_px: int
    height_px: int

    def to_dict(self) -> dict[str, Any]:
        return {"z": self.z, "width_px": self.width_px, "height_px": self.height_px}

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PageInfo":
        return PageInfo(z=int(d["z"]), width_px=int(d["width_px"]), height_px=int(d["height_px"]))


@dataclass(frozen=True, slots=True)
class CellRecord:
    cell_id: str  # p{z:03d}_c{index:06d}, page-local read order at classification time
    code_id: CodeHash
    cell_type: CellType
    bbox: BBox
    z: int
    importance: int  # 0..100 ranking signal, not a probability

    def to_dict(self) -> dict[str, Any]:
        return {
            "cell_id": self.cell_id,
            "code_id": self.code_id,
            "cell_type": self.cell_type.value,
            "bbox": self.bbox.to_dict(),
            "z": self.z,
            "importance": self.importance,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "CellRecord":
        return CellRecord(
            cell_id=str(d["cell_id"]),
            code_id=str(d["code_id"]),
            cell_type=CellType(str(d["cell_type"])),
            bbox=BBox.from_dict(d["bbox"]),
            z=int(d["z"]),
            importance=int(d["importance"]),
        )


@dataclass(frozen=True, slots=True)
class Header:
    version: str
    preset: str
    budget: int | None
    page_width_px: int
    page_height_px: int
    config: dict[str, Any] = field(default_factory=dict)  # stable encoder config summary
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "preset": self.preset,
            "budget": self.budget,
            "page_width_px": self.page_width_px,
            "page_height_px": self.page_height_px,
            "config": dict(self.config),
            "source": self.source,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Header":
        return Header(
            version=str(d.get("version", "")),
            preset=str(d.get("preset", "")),
            budget=(None if d.get("budget") is None else int(d["budget"])),
            page_width_px=int(d.get("page_width_px", 0)),
            page_height_px=int(d.get("page_height_px", 0)),
            config=dict(d.get("config") or {}),
            source=(None if d.get("source") is None else str(d["source"])),
        )


@dataclass(frozen=True, slots=True)
class Document:
    """
    Encoder output: pages, cells and the content dictionary they index into.

    Cells hold only the `code_id` key; text lives once per distinct payload
    in `dictionary`.
    """

    header: Header
    pages: list[PageInfo]
    cells: list[CellRecord]
    dictionary: dict[CodeHash, str]

    def payload_for(self, code_id: CodeHash) -> str | None:
        return self.dictionary.get(code_id)

    def resolve(self, cell: CellRecord) -> str:
        text = self.dictionary.get(cell.code_id)
        if text is None:
            raise EncodingFailure(
                "Cell code_id does not resolve in the document dictionary",
                detail={"cell_id": cell.cell_id, "code_id": cell.code_id},
            )
        return text

    def cells_on_page(self, z: int) -> list[CellRecord]:
        return [c for c in self.cells if c.z == z]

    def check_integrity(self) -> None:
        prev_z = 0
        for p in self.pages:
            if p.z <= prev_z:
                raise EncodingFailure(
                    "Pages must be 1-indexed and strictly increasing",
                    detail={"z": p.z, "previous_z": prev_z},
                )
            prev_z = p.z

        known = {p.z for p in self.pages}
        for c in self.cells:
            if c.code_id not in self.dictionary:
                raise EncodingFailure(
                    "Cell code_id does not resolve in the document dictionary",
                    detail={"cell_id": c.cell_id, "code_id": c.code_id},
                )
            if c.z not in known:
                raise EncodingFailure(
                    "Cell references an unknown page",
                    detail={"cell_id": c.cell_id, "z": c.z},
                )
            if not (0 <= c.importance <= 100):
                raise EncodingFailure(
                    "Cell importance outside [0, 100]",
                    detail={"cell_id": c.cell_id, "importance": c.importance},
                )

    def to_dict(self) -> dict[str, Any]:
        return {
            "header": self.header.to_dict(),
            "pages": [p.to_dict() for p in self.pages],
            "cells": [c.to_dict() for c in self.cells],
            "dictionary": dict(self.dictionary),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Document":
        pages_raw = d.get("pages") or []
        cells_raw = d.get("cells") or []
        if not isinstance(pages_raw, list) or not isinstance(cells_raw, list):
            raise TypeError("Document.pages and Document.cells must be lists")
        return Document(
            header=Header.from_dict(d.get("header") or {}),
            pages=[PageInfo.from_dict(p) for p in pages_raw],
            cells=[CellRecord.from_dict(c) for c in cells_raw],
            dictionary={str(k): str(v) for k, v in (d.get("dictionary") or {}).items()},
        )
