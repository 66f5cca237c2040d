from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from contracts.errors import ConfigurationError
from encoder.tokens import TokenizerKind


class ChunkMode(str, Enum):
    CELLS = "cells"
    TOKENS = "tokens"


@dataclass(frozen=True, slots=True)
class ChunkConfig:
    mode: ChunkMode = ChunkMode.TOKENS
    cells_per_chunk: int = 200
    overlap_cells: int = 20
    max_tokens: int = 512
    overlap_tokens: int = 64
    tokenizer: TokenizerKind = TokenizerKind.CHAR_RATIO

    def validate(self) -> None:
        if not isinstance(self.mode, ChunkMode):
            raise ConfigurationError("mode must be a ChunkMode", detail={"mode": str(self.mode)})
        if not isinstance(self.tokenizer, TokenizerKind):
            raise ConfigurationError("tokenizer must be a TokenizerKind")
        if self.cells_per_chunk < 1:
            raise ConfigurationError("cells_per_chunk must be >= 1")
        if not (0 <= self.overlap_cells < self.cells_per_chunk):
            raise ConfigurationError(
                "overlap_cells must be within [0, cells_per_chunk)",
                detail={"overlap_cells": self.overlap_cells, "cells_per_chunk": self.cells_per_chunk},
            )
        if self.max_tokens < 1:
            raise ConfigurationError("max_tokens must be >= 1")
        if not (0 <= self.overlap_tokens < self.max_tokens):
            raise ConfigurationError(
                "overlap_tokens must be within [0, max_tokens)",
                detail={"overlap_tokens": self.overlap_tokens, "max_tokens": self.max_tokens},
            )

    def __post_init__(self) -> None:
        self.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "cells_per_chunk": self.cells_per_chunk,
            "overlap_cells": self.overlap_cells,
            "max_tokens": self.max_tokens,
            "overlap_tokens": self.overlap_tokens,
            "tokenizer": self.tokenizer.value,
        }
