from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def fmt_chunk_id(doc_id: str, idx: int) -> str:
    return f"{doc_id}_chunk_{idx:04d}"


@dataclass(frozen=True, slots=True)
class ChunkRecord:
    chunk_id: str  # {doc_id}_chunk_{index:04d}
    index: int
    cell_ids: list[str]  # ordered, document order
    cell_indices: list[int]  # positions in Document.cells
    cell_count: int
    token_count: int
    overlap_cells: int  # cells shared with the previous chunk
    overlap_tokens: int
    page_start: int
    page_end: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_id": self.chunk_id,
            "index": self.index,
            "cell_ids": list(self.cell_ids),
            "cell_indices": list(self.cell_indices),
            "cell_count": self.cell_count,
            "token_count": self.token_count,
            "overlap_cells": self.overlap_cells,
            "overlap_tokens": self.overlap_tokens,
            "page_start": self.page_start,
            "page_end": self.page_end,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ChunkRecord":
        return ChunkRecord(
            chunk_id=str(d["chunk_id"]),
            index=int(d["index"]),
            cell_ids=[str(x) for x in (d.get("cell_ids") or [])],
            cell_indices=[int(x) for x in (d.get("cell_indices") or [])],
            cell_count=int(d["cell_count"]),
            token_count=int(d["token_count"]),
            overlap_cells=int(d.get("overlap_cells", 0)),
            overlap_tokens=int(d.get("overlap_tokens", 0)),
            page_start=int(d["page_start"]),
            page_end=int(d["page_end"]),
        )
