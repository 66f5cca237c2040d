from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from contracts.errors import ConfigurationError, UnsupportedInput


class IngestFormat(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    HTML = "html"
    PDF = "pdf"
    IMAGE = "image"

    @staticmethod
    def from_name(name: str) -> "IngestFormat":
        key = str(name).strip().lower().lstrip(".")
        fmt = _ALIASES.get(key)
        if fmt is None:
            raise UnsupportedInput(f"Unsupported input format: {name!r}", detail={"format": name})
        return fmt

    @staticmethod
    def from_path(path: Path) -> "IngestFormat":
        suffix = path.suffix.lower()
        if suffix == "":
            raise UnsupportedInput("Input path has no file extension", detail={"path": path.as_posix()})
        return IngestFormat.from_name(suffix)


_ALIASES: dict[str, IngestFormat] = {
    "txt": IngestFormat.TEXT,
    "text": IngestFormat.TEXT,
    "md": IngestFormat.MARKDOWN,
    "markdown": IngestFormat.MARKDOWN,
    "html": IngestFormat.HTML,
    "htm": IngestFormat.HTML,
    "pdf": IngestFormat.PDF,
    "png": IngestFormat.IMAGE,
    "jpg": IngestFormat.IMAGE,
    "jpeg": IngestFormat.IMAGE,
    "tif": IngestFormat.IMAGE,
    "tiff": IngestFormat.IMAGE,
    "image": IngestFormat.IMAGE,
}


@dataclass(frozen=True, slots=True)
class IngestConfig:
    """
    Ingestion configuration.

    Text-like inputs are laid out on a virtual page of `page_width_px` x
    `page_height_px`; the content area leaves `margin_ratio` of the page
    height free at the top and bottom so body lines never land in the
    header/footer bands. PDF and image inputs keep their own geometry.
    """

    page_width_px: int = 1024
    page_height_px: int = 1400
    margin_ratio: float = 0.1
    line_height_px: int = 18
    heading_line_height_px: int = 40
    char_width_px: int = 8
    paragraph_gap_px: int = 9

    # PDF
    pdf_scale: float | None = None  # None => fit page width to page_width_px
    page_selection: str | None = None  # e.g. "1,3-5"; None => all pages

    # Image (tesseract CLI)
    language: str = "eng"
    psm: int | None = None
    confidence_floor: float = 0.0  # [0, 1]
    timeout_s: float = 300.0

    def validate(self) -> None:
        if self.page_width_px <= 0 or self.page_height_px <= 0:
            raise ConfigurationError("page dimensions must be positive")
        if not (0.0 <= self.margin_ratio < 0.4):
            raise ConfigurationError("margin_ratio must be within [0, 0.4)")
        for name in ("line_height_px", "heading_line_height_px", "char_width_px"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.paragraph_gap_px < 0:
            raise ConfigurationError("paragraph_gap_px must be >= 0")
        if self.pdf_scale is not None and self.pdf_scale <= 0:
            raise ConfigurationError("pdf_scale must be positive")
        if not (0.0 <= self.confidence_floor <= 1.0):
            raise ConfigurationError("confidence_floor must be within [0, 1]")
        if self.timeout_s <= 0:
            raise ConfigurationError("timeout_s must be positive")

    def __post_init__(self) -> None:
        self.validate()

    @property
    def content_top_px(self) -> int:
        return int(round(self.page_height_px * self.margin_ratio))

    @property
    def content_bottom_px(self) -> int:
        return self.page_height_px - self.content_top_px

    @property
    def content_width_px(self) -> int:
        return self.page_width_px - 2 * self.margin_left_px

    @property
    def margin_left_px(self) -> int:
        return int(round(self.page_width_px * 0.08))

    @staticmethod
    def for_encoder(config: Any, **overrides: Any) -> "IngestConfig":
        """Match the virtual page to an encoder config's page size."""
        return IngestConfig(page_width_px=config.page_width_px, page_height_px=config.page_height_px, **overrides)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_width_px": self.page_width_px,
            "page_height_px": self.page_height_px,
            "margin_ratio": self.margin_ratio,
            "line_height_px": self.line_height_px,
            "heading_line_height_px": self.heading_line_height_px,
            "char_width_px": self.char_width_px,
            "paragraph_gap_px": self.paragraph_gap_px,
            "pdf_scale": self.pdf_scale,
            "page_selection": self.page_selection,
            "language": self.language,
            "psm": self.psm,
            "confidence_floor": self.confidence_floor,
            "timeout_s": self.timeout_s,
        }
