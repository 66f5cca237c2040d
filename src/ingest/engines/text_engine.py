from __future__ import annotations

import math
import re
from dataclasses import dataclass
from pathlib import Path

from contracts.raw import BBox, RawPage, RawUnit

from ..contracts import IngestConfig
from ..data_access import read_text
from .base import IngestEngine

_FENCE = re.compile(r"^\s*(```|~~~)")
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s")
_INDENTED = re.compile(r"^( {4}|\t)")


@dataclass(frozen=True, slots=True)
class TextBlock:
    kind: str  # "line" | "fence" | "table" | "indented" | "gap"
    text: str = ""

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")


def _collect_fence(lines: list[str], start: int) -> tuple[str, int]:
    marker = _FENCE.match(lines[start]).group(1)  # type: ignore[union-attr]
    end = start + 1
    while end < len(lines):
        if lines[end].strip().startswith(marker):
            end += 1
            break
        end += 1
    return "\n".join(lines[start:end]), end


def _collect_run(lines: list[str], start: int, pred) -> tuple[str, int]:
    end = start
    while end < len(lines) and lines[end].strip() != "" and pred(lines[end]):
        end += 1
    return "\n".join(lines[start:end]), end


def split_blocks(text: str) -> list[TextBlock]:
    """
    Split one page worth of text into layout blocks.

    Fenced code, markdown table rows and indented code runs stay together;
    every other non-blank line is its own block.
    """

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    blocks: list[TextBlock] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.strip() == "":
            if blocks and blocks[-1].kind != "gap":
                blocks.append(TextBlock(kind="gap"))
            i += 1
        elif _FENCE.match(line):
            body, i = _collect_fence(lines, i)
            blocks.append(TextBlock(kind="fence", text=body))
        elif line.lstrip().startswith("|"):
            body, i = _collect_run(lines, i, lambda s: s.lstrip().startswith("|"))
            blocks.append(TextBlock(kind="table", text=body))
        elif _INDENTED.match(line):
            body, i = _collect_run(lines, i, lambda s: bool(_INDENTED.match(s)))
            blocks.append(TextBlock(kind="indented", text=body))
        else:
            blocks.append(TextBlock(kind="line", text=line.strip()))
            i += 1
    return blocks


class _PageCursor:
    def __init__(self, config: IngestConfig) -> None:
        self.config = config
        self.pages: list[RawPage] = []
        self.z = 0
        self.y = 0
        self.units: list[RawUnit] = []
        self.new_page()

    def new_page(self) -> None:
        if self.z > 0:
            self.flush()
        self.z += 1
        self.y = self.config.content_top_px
        self.units = []

    def flush(self) -> None:
        self.pages.append(
            RawPage(
                z=self.z,
                width_px=self.config.page_width_px,
                height_px=self.config.page_height_px,
                units=self.units,
            )
        )

    def place(self, text: str, *, w: int, h: int) -> None:
        if self.y + h > self.config.content_bottom_px and self.y > self.config.content_top_px:
            self.new_page()
        bbox = BBox(x=self.config.margin_left_px, y=self.y, w=max(1, w), h=max(1, h))
        self.units.append(RawUnit(text=text, bbox=bbox, z=self.z))
        self.y += h


def _block_extent(block: TextBlock, config: IngestConfig) -> tuple[int, int]:
    cw = config.content_width_px
    if block.kind == "line":
        raw_w = len(block.text) * config.char_width_px
        if _HEADING.match(block.text):
            return min(raw_w, cw), config.heading_line_height_px
        wraps = max(1, math.ceil(raw_w / cw))
        return min(raw_w, cw), wraps * config.line_height_px
    lines = block.lines
    widest = max(len(ln) for ln in lines) * config.char_width_px
    return min(widest, cw), len(lines) * config.line_height_px


def layout_text(text: str, config: IngestConfig) -> list[RawPage]:
    """
    Lay plain/markdown text out on virtual pages.

    Form feeds force a page break; a block that would cross the bottom of
    the content area starts a new page.
    """

    segments = text.split("\f")
    if len(segments) > 1 and segments[-1].strip() == "":
        segments = segments[:-1]

    cursor = _PageCursor(config)
    for n, segment in enumerate(segments):
        if n > 0:
            cursor.new_page()
        for block in split_blocks(segment):
            if block.kind == "gap":
                cursor.y += config.paragraph_gap_px
                continue
            w, h = _block_extent(block, config)
            cursor.place(block.text, w=w, h=h)
    cursor.flush()
    return cursor.pages


class TextEngine(IngestEngine):
    def backend_id(self) -> str:
        return "text"

    def read_pages(self, *, path: Path, config: IngestConfig) -> list[RawPage]:
        return layout_text(read_text(path), config)
