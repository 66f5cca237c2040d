from __future__ import annotations

from pathlib import Path

from contracts.errors import ConfigurationError, UnsupportedInput
from contracts.raw import BBox, RawPage, RawUnit

from ..contracts import IngestConfig
from .base import IngestEngine


def parse_page_selection(selection: str | None, *, page_count: int) -> list[int]:
    """
    Parse "1,3-5" into a sorted list of unique 1-indexed page numbers.
    None => all pages.
    """

    if selection is None or selection.strip() == "":
        return list(range(1, page_count + 1))

    pages: set[int] = set()
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "-" in part:
                a_str, b_str = part.split("-", 1)
                a, b = int(a_str.strip()), int(b_str.strip())
            else:
                a = b = int(part)
        except ValueError:
            raise ConfigurationError(f"invalid page selection: {part!r}") from None
        if a <= 0 or b < a:
            raise ConfigurationError(f"invalid page range: {part!r}")
        pages.update(range(a, b + 1))

    ordered = sorted(pages)
    if ordered and ordered[-1] > page_count:
        raise ConfigurationError(f"page selection out of bounds (1..{page_count})")
    return ordered


class Pypdfium2Engine(IngestEngine):
    """
    PDF text extraction through pdfium text rectangles.

    Each text rect becomes one unit; coordinates are converted from PDF
    points (bottom-left origin) to page pixels (top-left origin).
    """

    def backend_id(self) -> str:
        return "pypdfium2"

    def _require_pdfium(self):
        try:
            import pypdfium2 as pdfium  # type: ignore

            return pdfium
        except ImportError as e:
            raise RuntimeError("Missing dependency: pypdfium2 is required for PDF ingestion.") from e

    def read_pages(self, *, path: Path, config: IngestConfig) -> list[RawPage]:
        pdfium = self._require_pdfium()
        try:
            doc = pdfium.PdfDocument(str(path))
        except pdfium.PdfiumError as e:
            raise UnsupportedInput("PDF could not be opened", detail={"path": path.as_posix()}) from e

        try:
            selected = parse_page_selection(config.page_selection, page_count=len(doc))
            return [self._read_page(doc[n - 1], z=n, config=config) for n in selected]
        except pdfium.PdfiumError as e:
            raise UnsupportedInput("PDF text extraction failed", detail={"path": path.as_posix()}) from e
        finally:
            doc.close()

    def _read_page(self, page, *, z: int, config: IngestConfig) -> RawPage:
        width_pt, height_pt = page.get_size()
        scale = config.pdf_scale or (config.page_width_px / float(width_pt))
        textpage = page.get_textpage()
        units: list[RawUnit] = []
        try:
            for i in range(textpage.count_rects()):
                left, bottom, right, top = textpage.get_rect(i)
                text = textpage.get_text_bounded(left=left, bottom=bottom, right=right, top=top)
                if text.strip() == "":
                    continue
                bbox = BBox(
                    x=int(round(left * scale)),
                    y=int(round((height_pt - top) * scale)),
                    w=int(round((right - left) * scale)),
                    h=int(round((top - bottom) * scale)),
                )
                units.append(RawUnit(text=text, bbox=bbox, z=z))
        finally:
            textpage.close()
            page.close()

        return RawPage(
            z=z,
            width_px=int(round(width_pt * scale)),
            height_px=int(round(height_pt * scale)),
            units=units,
        )
