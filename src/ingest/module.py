from __future__ import annotations

import logging
from pathlib import Path

from contracts.errors import UnsupportedInput
from contracts.raw import RawPage

from .contracts import IngestConfig, IngestFormat
from .data_access import resolve_input
from .engines import HtmlEngine, IngestEngine, Pypdfium2Engine, TesseractCliEngine, TextEngine
from .engines.html_engine import layout_html
from .engines.text_engine import layout_text

logger = logging.getLogger(__name__)


def engine_for(fmt: IngestFormat) -> IngestEngine:
    if fmt in (IngestFormat.TEXT, IngestFormat.MARKDOWN):
        return TextEngine()
    if fmt == IngestFormat.HTML:
        return HtmlEngine()
    if fmt == IngestFormat.PDF:
        return Pypdfium2Engine()
    if fmt == IngestFormat.IMAGE:
        return TesseractCliEngine()
    raise UnsupportedInput(f"No ingestion engine for format: {fmt}")


def _require_units(pages: list[RawPage], *, source: str) -> list[RawPage]:
    if not any(u.text.strip() for p in pages for u in p.units):
        raise UnsupportedInput("Ingestion produced no content units", detail={"source": source})
    return pages


def ingest_path(path: str | Path, config: IngestConfig | None = None, *, data_root: Path | None = None) -> list[RawPage]:
    """
    Read one input file into raw pages, dispatching on its extension.

    Raises UnsupportedInput for unknown extensions, missing files and inputs
    that yield no units.
    """

    cfg = config or IngestConfig()
    fmt = IngestFormat.from_path(Path(path))
    p = resolve_input(path, data_root=data_root)
    engine = engine_for(fmt)
    pages = engine.read_pages(path=p, config=cfg)
    logger.debug(
        "ingested %s via %s: %d page(s), %d unit(s)",
        p.as_posix(),
        engine.backend_id(),
        len(pages),
        sum(len(pg.units) for pg in pages),
    )
    return _require_units(pages, source=p.as_posix())


def ingest_text(text: str, *, fmt: str = "markdown", config: IngestConfig | None = None) -> list[RawPage]:
    cfg = config or IngestConfig()
    kind = IngestFormat.from_name(fmt)
    if kind in (IngestFormat.TEXT, IngestFormat.MARKDOWN):
        pages = layout_text(text, cfg)
    elif kind == IngestFormat.HTML:
        pages = layout_html(text, cfg)
    else:
        raise UnsupportedInput(f"In-memory ingestion does not support {kind.value!r}", detail={"format": fmt})
    return _require_units(pages, source=f"<{kind.value}>")
