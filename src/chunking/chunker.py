from __future__ import annotations

import logging

from contracts.chunking import ChunkRecord, fmt_chunk_id
from contracts.document import Document

from encoder.tokens import TokenEstimator, estimator_for

from .config import ChunkConfig, ChunkMode

logger = logging.getLogger(__name__)

Span = tuple[int, int]  # [start, end) over Document.cells


def cell_windows(n: int, *, size: int, overlap: int) -> list[Span]:
    if n == 0:
        return []
    stride = size - overlap
    spans: list[Span] = []
    start = 0
    while True:
        end = min(start + size, n)
        spans.append((start, end))
        if end >= n:
            return spans
        start += stride


def token_windows(costs: list[int], *, max_tokens: int, overlap_tokens: int) -> list[Span]:
    """
    Greedy token windows.

    A chunk takes cells while the next one still fits `max_tokens`; its first
    cell is always taken, so an oversize cell becomes a chunk of its own. The
    next chunk re-includes trailing cells until their cost reaches
    `overlap_tokens`, never stepping back to the previous start and never so
    far that the overlap plus the following new cell would overflow.
    """

    n = len(costs)
    spans: list[Span] = []
    start = 0
    while start < n:
        end = start
        total = 0
        while end < n and (end == start or total + costs[end] <= max_tokens):
            total += costs[end]
            end += 1
        spans.append((start, end))
        if end >= n:
            break

        back = end
        overlap = 0
        while (
            overlap < overlap_tokens
            and back - 1 > start
            and overlap + costs[back - 1] + costs[end] <= max_tokens
        ):
            back -= 1
            overlap += costs[back]
        start = back
    return spans


class Chunker:
    """
    Windows a finished Document's cells into ordered, overlapping chunks.

    Read-only over the Document; every call returns fresh ChunkRecords.
    """

    def __init__(self, config: ChunkConfig | None = None, *, estimate: TokenEstimator | None = None) -> None:
        self.config = config or ChunkConfig()
        self.config.validate()
        self._estimate = estimate or estimator_for(self.config.tokenizer)

    def spans(self, document: Document) -> tuple[list[Span], list[int]]:
        costs = [self._estimate(document.resolve(c)) for c in document.cells]
        cfg = self.config
        if cfg.mode == ChunkMode.CELLS:
            spans = cell_windows(len(costs), size=cfg.cells_per_chunk, overlap=cfg.overlap_cells)
        else:
            spans = token_windows(costs, max_tokens=cfg.max_tokens, overlap_tokens=cfg.overlap_tokens)
        return spans, costs

    def chunk(self, document: Document, doc_id: str = "doc") -> list[ChunkRecord]:
        spans, costs = self.spans(document)
        cells = document.cells
        out: list[ChunkRecord] = []
        prev_end = 0
        for idx, (start, end) in enumerate(spans):
            shared = max(0, prev_end - start) if idx > 0 else 0
            out.append(
                ChunkRecord(
                    chunk_id=fmt_chunk_id(doc_id, idx),
                    index=idx,
                    cell_ids=[c.cell_id for c in cells[start:end]],
                    cell_indices=list(range(start, end)),
                    cell_count=end - start,
                    token_count=sum(costs[start:end]),
                    overlap_cells=shared,
                    overlap_tokens=sum(costs[start : start + shared]),
                    page_start=cells[start].z,
                    page_end=cells[end - 1].z,
                )
            )
            prev_end = end

        logger.debug("chunked %s: %d cells -> %d chunks (%s)", doc_id, len(cells), len(out), self.config.mode.value)
        return out


def chunk_text(document: Document, chunk: ChunkRecord, separator: str = "\n\n") -> str:
    """Resolve a chunk's cells back to text, document order."""
    return separator.join(document.resolve(document.cells[i]) for i in chunk.cell_indices)
