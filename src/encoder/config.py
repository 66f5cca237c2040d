from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from contracts.errors import ConfigurationError
from numguard.config import NumGuardConfig

from .tokens import TokenizerKind


class HyphenationMode(str, Enum):
    PRESERVE = "preserve"
    MERGE = "merge"


@dataclass(frozen=True, slots=True)
class ImportanceTuning:
    """
    Multiplicative scoring weights.

    Boosts are >= 1 (they can only raise a score); `footer_penalty` is a
    factor in [0, 1] applied to footer cells only.
    """

    heading_boost: float = 1.25
    number_boost: float = 1.1
    footer_penalty: float = 0.5
    early_line_bonus: float = 1.15

    def validate(self) -> None:
        for name in ("heading_boost", "number_boost", "early_line_bonus"):
            v = getattr(self, name)
            if not (1.0 <= v <= 5.0):
                raise ConfigurationError(f"{name} must be within [1, 5]", detail={name: v})
        if not (0.0 <= self.footer_penalty <= 1.0):
            raise ConfigurationError(
                "footer_penalty must be within [0, 1]", detail={"footer_penalty": self.footer_penalty}
            )

    def __post_init__(self) -> None:
        self.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "heading_boost": self.heading_boost,
            "number_boost": self.number_boost,
            "footer_penalty": self.footer_penalty,
            "early_line_bonus": self.early_line_bonus,
        }


class EncoderPreset(str, Enum):
    REPORTS = "reports"
    SLIDES = "slides"
    NEWS = "news"
    SCANS = "scans"

    @staticmethod
    def from_name(name: str) -> "EncoderPreset":
        key = str(name).strip().lower()
        for p in EncoderPreset:
            if p.value == key:
                return p
        raise ConfigurationError(
            f"Unknown encoder preset: {name!r}",
            detail={"preset": name, "known": [p.value for p in EncoderPreset]},
        )


@dataclass(frozen=True, slots=True)
class EncoderConfig:
    """
    Encode-time configuration. Immutable; one instance may serve any number
    of encode calls, concurrently.
    """

    preset: EncoderPreset = EncoderPreset.REPORTS
    page_width_px: int = 1024
    page_height_px: int = 1400
    budget: int | None = None  # token budget; None => keep everything
    drop_footers: bool = True
    dedup_window: int = 5  # pages
    hyphenation: HyphenationMode = HyphenationMode.MERGE
    table_tolerance_px: int = 16

    # Classifier geometry.
    margin_band: float = 0.06  # fraction of page height at top/bottom treated as header/footer band
    heading_height_ratio: float = 0.018  # unit height / page height at or above which a short line reads as a heading
    heading_max_words: int = 12

    tokenizer: TokenizerKind = TokenizerKind.CHAR_RATIO
    importance: ImportanceTuning = field(default_factory=ImportanceTuning)
    numguard: NumGuardConfig = field(default_factory=NumGuardConfig)

    def validate(self) -> None:
        if not isinstance(self.preset, EncoderPreset):
            raise ConfigurationError("preset must be an EncoderPreset", detail={"preset": str(self.preset)})
        if not isinstance(self.hyphenation, HyphenationMode):
            raise ConfigurationError("hyphenation must be a HyphenationMode")
        if not isinstance(self.tokenizer, TokenizerKind):
            raise ConfigurationError("tokenizer must be a TokenizerKind")
        if self.page_width_px <= 0 or self.page_height_px <= 0:
            raise ConfigurationError("page dimensions must be positive")
        if self.budget is not None and self.budget <= 0:
            raise ConfigurationError("budget must be a positive token count or None")
        if self.dedup_window < 0:
            raise ConfigurationError("dedup_window must be >= 0")
        if self.table_tolerance_px < 0:
            raise ConfigurationError("table_tolerance_px must be >= 0")
        if not (0.0 < self.margin_band < 0.5):
            raise ConfigurationError("margin_band must be within (0, 0.5)")
        if not (0.0 < self.heading_height_ratio < 1.0):
            raise ConfigurationError("heading_height_ratio must be within (0, 1)")
        if self.heading_max_words < 1:
            raise ConfigurationError("heading_max_words must be >= 1")
        if not isinstance(self.importance, ImportanceTuning):
            raise ConfigurationError("importance must be an ImportanceTuning")
        self.importance.validate()
        self.numguard.validate()

    def __post_init__(self) -> None:
        self.validate()

    @staticmethod
    def for_preset(name: str | EncoderPreset) -> "EncoderConfig":
        preset = name if isinstance(name, EncoderPreset) else EncoderPreset.from_name(name)
        return _PRESETS[preset]

    def with_overrides(self, **overrides: Any) -> "EncoderConfig":
        # dataclasses.replace re-runs __post_init__, so overrides are validated here.
        return replace(self, **overrides)

    def summary(self) -> dict[str, Any]:
        return {
            "preset": self.preset.value,
            "page_width_px": self.page_width_px,
            "page_height_px": self.page_height_px,
            "budget": self.budget,
            "drop_footers": self.drop_footers,
            "dedup_window": self.dedup_window,
            "hyphenation": self.hyphenation.value,
            "table_tolerance_px": self.table_tolerance_px,
            "margin_band": self.margin_band,
            "heading_height_ratio": self.heading_height_ratio,
            "heading_max_words": self.heading_max_words,
            "tokenizer": self.tokenizer.value,
            "importance": self.importance.to_dict(),
            "numguard": self.numguard.to_dict(),
        }


_PRESETS: dict[EncoderPreset, EncoderConfig] = {
    EncoderPreset.REPORTS: EncoderConfig(
        preset=EncoderPreset.REPORTS,
        page_width_px=1024,
        page_height_px=1400,
        drop_footers=True,
        dedup_window=5,
        hyphenation=HyphenationMode.MERGE,
        table_tolerance_px=16,
    ),
    EncoderPreset.SLIDES: EncoderConfig(
        preset=EncoderPreset.SLIDES,
        page_width_px=1920,
        page_height_px=1080,
        drop_footers=True,
        dedup_window=3,
        hyphenation=HyphenationMode.PRESERVE,
        table_tolerance_px=24,
        margin_band=0.08,
        heading_height_ratio=0.035,
        heading_max_words=14,
        importance=ImportanceTuning(heading_boost=1.4, early_line_bonus=1.25),
    ),
    EncoderPreset.NEWS: EncoderConfig(
        preset=EncoderPreset.NEWS,
        page_width_px=1100,
        page_height_px=1600,
        drop_footers=True,
        dedup_window=2,
        hyphenation=HyphenationMode.MERGE,
        table_tolerance_px=12,
        margin_band=0.05,
        importance=ImportanceTuning(early_line_bonus=1.3),
    ),
    EncoderPreset.SCANS: EncoderConfig(
        preset=EncoderPreset.SCANS,
        page_width_px=1400,
        page_height_px=2000,
        drop_footers=False,
        dedup_window=5,
        hyphenation=HyphenationMode.MERGE,
        table_tolerance_px=28,
        margin_band=0.07,
        importance=ImportanceTuning(number_boost=1.05),
    ),
}
