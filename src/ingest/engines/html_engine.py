from __future__ import annotations

from pathlib import Path

from bs4 import BeautifulSoup, Tag

from contracts.raw import RawPage

from ..contracts import IngestConfig
from ..data_access import read_text
from .base import IngestEngine
from .text_engine import layout_text

_HEADING_LEVEL: dict[str, int] = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_BLOCK_TAGS: set[str] = {
    "div", "p", "article", "section", "main", "aside", "nav",
    "header", "footer", "blockquote", "figure", "figcaption",
    "li", "ul", "ol", "dl", "dt", "dd",
    "form", "fieldset", "details", "summary", "caption",
} | set(_HEADING_LEVEL)
_NOISE_TAGS = ["script", "style", "noscript", "template"]


def _table_lines(table: Tag) -> list[str]:
    lines: list[str] = []
    for tr in table.find_all("tr"):
        cells = [c.get_text(" ", strip=True) for c in tr.find_all(["th", "td"])]
        if any(cells):
            lines.append("| " + " | ".join(cells) + " |")
    return lines


def extract_blocks(body: Tag) -> list[str]:
    """
    Flatten the DOM into markdown-flavoured text blocks, document order.

    Headings, `pre` and tables emit their whole content without descending;
    a block element with no block children emits its text; container blocks
    recurse.
    """

    blocks: list[str] = []

    def walk(el: Tag) -> None:
        name = el.name
        if name in _HEADING_LEVEL:
            text = el.get_text(" ", strip=True)
            if text:
                blocks.append("#" * _HEADING_LEVEL[name] + " " + text)
            return
        if name == "pre":
            code = el.get_text().strip("\n")
            if code.strip():
                blocks.append("```\n" + code + "\n```")
            return
        if name == "table":
            rows = _table_lines(el)
            if rows:
                blocks.append("\n".join(rows))
            return
        if name in _BLOCK_TAGS:
            has_block_child = any(
                isinstance(c, Tag) and (c.name in _BLOCK_TAGS or c.name in ("pre", "table")) for c in el.children
            )
            if not has_block_child:
                text = el.get_text(" ", strip=True)
                if text:
                    blocks.append(("- " + text) if name == "li" else text)
                return
        for child in el.children:
            if isinstance(child, Tag):
                walk(child)

    walk(body)
    return blocks


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_NOISE_TAGS):
        tag.decompose()
    body = soup.find("body") or soup
    return "\n\n".join(extract_blocks(body))  # type: ignore[arg-type]


def layout_html(html: str, config: IngestConfig) -> list[RawPage]:
    return layout_text(html_to_text(html), config)


class HtmlEngine(IngestEngine):
    def backend_id(self) -> str:
        return "beautifulsoup4"

    def read_pages(self, *, path: Path, config: IngestConfig) -> list[RawPage]:
        return layout_html(read_text(path), config)
