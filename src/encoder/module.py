from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from contracts.document import Document, Header, PageInfo, fmt_cell_id, hash_payload
from contracts.errors import ConfigurationError, UnsupportedInput
from contracts.metrics import Metrics
from contracts.raw import RawPage
from ingest.contracts import IngestConfig
from ingest.module import ingest_path, ingest_text
from numguard.module import NumGuard

from .budget import trim_to_budget
from .buffer import PendingCell
from .classifier import classify_unit, grid_members
from .config import EncoderConfig, EncoderPreset, HyphenationMode, ImportanceTuning
from .dedup import SlidingWindowDeduplicator
from .dictionary import ContentDictionary
from .normalization import normalize_payload, prepare_page_units
from .scoring import score_cell
from .tokens import TokenizerKind, estimator_for

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = "dcf/1"


@dataclass(frozen=True, slots=True)
class _Classified:
    cells: list[PendingCell]
    pages: list[PageInfo]
    warnings: list[dict[str, Any]]


def _ordered_pages(pages: Sequence[RawPage]) -> list[RawPage]:
    ordered = sorted(pages, key=lambda p: p.z)
    prev = 0
    for p in ordered:
        if p.z < 1 or p.z == prev:
            raise UnsupportedInput(
                "Pages must carry unique 1-indexed page numbers", detail={"z": p.z}
            )
        prev = p.z
    return ordered


class Encoder:
    """
    Turns raw page units into a cell-based Document plus Metrics.

    The Encoder holds only its immutable config. Every encode call builds its
    own dictionary, buffers and dedup state, so one Encoder may be shared.
    """

    def __init__(self, config: EncoderConfig | None = None) -> None:
        self._config = config or EncoderConfig()
        self._config.validate()

    @staticmethod
    def from_preset(name: str | EncoderPreset) -> "Encoder":
        return Encoder(EncoderConfig.for_preset(name))

    @staticmethod
    def builder(preset: str | EncoderPreset = EncoderPreset.REPORTS) -> "EncoderBuilder":
        return EncoderBuilder(preset)

    @property
    def config(self) -> EncoderConfig:
        return self._config

    def _page_dims(self, page: RawPage) -> tuple[int, int]:
        w = page.width_px if page.width_px > 0 else self._config.page_width_px
        h = page.height_px if page.height_px > 0 else self._config.page_height_px
        return int(w), int(h)

    def _classify(self, pages: list[RawPage]) -> _Classified:
        cfg = self._config
        cells: list[PendingCell] = []
        infos: list[PageInfo] = []
        warnings: list[dict[str, Any]] = []
        units_seen = 0

        for page in pages:
            width, height = self._page_dims(page)
            infos.append(PageInfo(z=page.z, width_px=width, height_px=height))

            units, dropped, page_warnings = prepare_page_units(page, hyphenation=cfg.hyphenation)
            warnings.extend(page_warnings)
            for d in dropped:
                warnings.append({"code": "ENCODE_UNIT_DROPPED", "message": "Unit dropped before classification", "detail": d})
            units_seen += len(units)

            grid = grid_members(units, cfg.table_tolerance_px)
            page_idx = 0
            for i, unit in enumerate(units):
                cell_type = classify_unit(
                    unit, page_width_px=width, page_height_px=height, config=cfg, grid_member=i in grid
                )
                payload = normalize_payload(unit.text, cell_type)
                if payload == "":
                    warnings.append(
                        {
                            "code": "ENCODE_EMPTY_PAYLOAD",
                            "message": "Unit normalized to an empty payload and was dropped",
                            "detail": {"z": page.z, "unit_index": i, "cell_type": cell_type.value},
                        }
                    )
                    continue
                cells.append(
                    PendingCell(
                        cell_id=fmt_cell_id(page.z, page_idx),
                        position=len(cells),
                        z=page.z,
                        cell_type=cell_type,
                        bbox=unit.bbox,
                        payload=payload,
                        code_id=hash_payload(payload),
                        importance=score_cell(
                            cell_type=cell_type,
                            bbox=unit.bbox,
                            page_height_px=height,
                            payload=payload,
                            tuning=cfg.importance,
                        ),
                    )
                )
                page_idx += 1

        if units_seen == 0:
            raise UnsupportedInput("Input produced no usable content units", detail={"pages": len(pages)})
        return _Classified(cells=cells, pages=infos, warnings=warnings)

    def _header(self, source: str | None) -> Header:
        cfg = self._config
        return Header(
            version=DOCUMENT_VERSION,
            preset=cfg.preset.value,
            budget=cfg.budget,
            page_width_px=cfg.page_width_px,
            page_height_px=cfg.page_height_px,
            config=cfg.summary(),
            source=source,
        )

    def encode_pages(self, pages: Sequence[RawPage], *, source: str | None = None) -> tuple[Document, Metrics]:
        """
        Encode already-ingested pages.

        Pipeline: normalize, classify, score, dedup, NumGuard, trim, prune,
        integrity check. NumGuard looks at the deduplicated cells before
        trimming; its alerts are advisory and travel in Metrics.
        """

        if not pages:
            raise UnsupportedInput("No pages to encode")
        cfg = self._config
        ordered = _ordered_pages(pages)
        header = self._header(source)

        classified = self._classify(ordered)
        cells_total = len(classified.cells)

        dictionary = ContentDictionary()
        dedup = SlidingWindowDeduplicator(window=cfg.dedup_window, drop_footers=cfg.drop_footers)
        deduped = dedup.run(classified.cells, dictionary)

        interim = Document(
            header=header,
            pages=classified.pages,
            cells=[c.to_record() for c in deduped.cells],
            dictionary=dictionary.snapshot(),
        )
        alerts = NumGuard(cfg.numguard).run(interim)

        trimmed = trim_to_budget(deduped.cells, budget=cfg.budget, estimate=estimator_for(cfg.tokenizer))
        final = trimmed.cells
        dictionary.prune(c.code_id for c in final)

        document = Document(
            header=header,
            pages=classified.pages,
            cells=[c.to_record() for c in final],
            dictionary=dictionary.snapshot(),
        )
        document.check_integrity()

        cells_kept = len({c.group for c in final})
        metrics = Metrics(
            pages=len(classified.pages),
            cells_total=cells_total,
            cells_kept=cells_kept,
            dedup_ratio=(cells_total / cells_kept) if cells_kept else 1.0,
            numguard_count=len(alerts),
            alerts=alerts,
            dedup_hits=deduped.hits,
            dictionary_entries=len(dictionary),
            footers_dropped=deduped.footers_dropped,
            cells_trimmed=trimmed.trimmed,
            tokens_kept=trimmed.tokens_kept,
            warnings=classified.warnings,
        )

        logger.debug(
            "encoded source=%s pages=%d cells_total=%d cells_final=%d kept=%d ratio=%.3f alerts=%d trimmed=%d",
            source,
            metrics.pages,
            cells_total,
            len(final),
            cells_kept,
            metrics.dedup_ratio,
            metrics.numguard_count,
            trimmed.trimmed,
        )
        return document, metrics

    def encode_path(self, path: str | Path, ingest_config: IngestConfig | None = None) -> tuple[Document, Metrics]:
        p = Path(path)
        icfg = ingest_config or IngestConfig.for_encoder(self._config)
        pages = ingest_path(p, icfg)
        return self.encode_pages(pages, source=p.as_posix())

    def encode_text(self, text: str, fmt: str = "markdown") -> tuple[Document, Metrics]:
        pages = ingest_text(text, fmt=fmt, config=IngestConfig.for_encoder(self._config))
        return self.encode_pages(pages)


def _coerce(enum_cls: Any, value: Any, field_name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Invalid {field_name}: {value!r}",
            detail={field_name: str(value), "known": [m.value for m in enum_cls]},
        ) from None


class EncoderBuilder:
    """
    Fluent construction of an Encoder on top of a preset:

        Encoder.builder("reports").budget(2048).dedup_window(3).build()

    Overrides are validated once, on build().
    """

    def __init__(self, preset: str | EncoderPreset = EncoderPreset.REPORTS) -> None:
        self._base = EncoderConfig.for_preset(preset)
        self._overrides: dict[str, Any] = {}

    def budget(self, tokens: int | None) -> "EncoderBuilder":
        self._overrides["budget"] = None if tokens is None else int(tokens)
        return self

    def drop_footers(self, enabled: bool) -> "EncoderBuilder":
        self._overrides["drop_footers"] = bool(enabled)
        return self

    def dedup_window(self, pages: int) -> "EncoderBuilder":
        self._overrides["dedup_window"] = int(pages)
        return self

    def hyphenation(self, mode: str | HyphenationMode) -> "EncoderBuilder":
        self._overrides["hyphenation"] = _coerce(HyphenationMode, mode, "hyphenation")
        return self

    def table_tolerance(self, px: int) -> "EncoderBuilder":
        self._overrides["table_tolerance_px"] = int(px)
        return self

    def importance_tuning(self, tuning: ImportanceTuning | None = None, **weights: float) -> "EncoderBuilder":
        if tuning is None:
            current = self._overrides.get("importance", self._base.importance)
            unknown = sorted(set(weights) - set(current.to_dict()))
            if unknown:
                raise ConfigurationError("Unknown importance weights", detail={"unknown": unknown})
            tuning = ImportanceTuning(**{**current.to_dict(), **weights})
        self._overrides["importance"] = tuning
        return self

    def tokenizer(self, kind: str | TokenizerKind) -> "EncoderBuilder":
        self._overrides["tokenizer"] = _coerce(TokenizerKind, kind, "tokenizer")
        return self

    def page_size(self, width_px: int, height_px: int) -> "EncoderBuilder":
        self._overrides["page_width_px"] = int(width_px)
        self._overrides["page_height_px"] = int(height_px)
        return self

    def config(self) -> EncoderConfig:
        return self._base.with_overrides(**self._overrides)

    def build(self) -> Encoder:
        return Encoder(self.config())
