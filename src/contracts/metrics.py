from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .numguard import NumGuardAlert


@dataclass(frozen=True, slots=True)
class Metrics:
    """
    Per-encode observability data, returned alongside the Document.

    `cells_kept` counts collapsed placements once: cells that are
    within-window repeats of an earlier kept cell do not add to it.
    """

    pages: int
    cells_total: int
    cells_kept: int
    dedup_ratio: float
    numguard_count: int
    alerts: list[NumGuardAlert] = field(default_factory=list)
    dedup_hits: int = 0
    dictionary_entries: int = 0
    footers_dropped: int = 0
    cells_trimmed: int = 0
    tokens_kept: int = 0
    warnings: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pages": self.pages,
            "cells_total": self.cells_total,
            "cells_kept": self.cells_kept,
            "dedup_ratio": self.dedup_ratio,
            "numguard_count": self.numguard_count,
            "alerts": [a.to_dict() for a in self.alerts],
            "dedup_hits": self.dedup_hits,
            "dictionary_entries": self.dictionary_entries,
            "footers_dropped": self.footers_dropped,
            "cells_trimmed": self.cells_trimmed,
            "tokens_kept": self.tokens_kept,
            "warnings": list(self.warnings),
        }

    def summary(self) -> dict[str, Any]:
        return {
            "pages": self.pages,
            "cells_total": self.cells_total,
            "cells_kept": self.cells_kept,
            "dedup_ratio": round(self.dedup_ratio, 4),
            "numguard_count": self.numguard_count,
        }
