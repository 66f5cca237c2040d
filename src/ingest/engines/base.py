from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from contracts.raw import RawPage

from ..contracts import IngestConfig


class IngestEngine(ABC):
    """
    Source adapter: turns one input file into raw pages.

    Engines must:
    - Return pages in ascending 1-indexed order, units in read order
    - Be deterministic for a given input + config
    - Perform NO classification, scoring or text normalization
    """

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def read_pages(self, *, path: Path, config: IngestConfig) -> list[RawPage]:
        raise NotImplementedError
