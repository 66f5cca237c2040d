from __future__ import annotations

from dataclasses import dataclass

from contracts.document import CellRecord, CellType, CodeHash
from contracts.raw import BBox


@dataclass(frozen=True, slots=True)
class PendingCell:
    """
    Encoder-internal cell between classification and finalization.

    `position` is the global read-order index at classification time and is
    the tie-breaker everywhere order matters. `group` is the dedup group id
    (-1 until the deduplicator has seen the cell).
    """

    cell_id: str
    position: int
    z: int
    cell_type: CellType
    bbox: BBox
    payload: str
    code_id: CodeHash
    importance: int
    group: int = -1
    dedup_hit: bool = False

    def to_record(self) -> CellRecord:
        return CellRecord(
            cell_id=self.cell_id,
            code_id=self.code_id,
            cell_type=self.cell_type,
            bbox=self.bbox,
            z=self.z,
            importance=self.importance,
        )
