from __future__ import annotations

from dataclasses import dataclass, replace

from contracts.document import CellType, CodeHash

from .buffer import PendingCell
from .dictionary import ContentDictionary


@dataclass(frozen=True, slots=True)
class DedupOutcome:
    cells: list[PendingCell]
    hits: int
    footers_dropped: int
    groups: int


class SlidingWindowDeduplicator:
    """
    Collapses payloads that recur within the last `window` pages.

    State is `code_id -> (last_seen_z, group)`, pruned lazily: an entry older
    than the window is simply treated as absent when next looked up. A hit
    reuses the existing dictionary key and joins the earlier cell's group;
    a stale match starts a new independent group.
    """

    def __init__(self, *, window: int, drop_footers: bool) -> None:
        self.window = int(window)
        self.drop_footers = bool(drop_footers)
        self._last_seen: dict[CodeHash, tuple[int, int]] = {}
        self._next_group = 0

    def _prune(self, z: int) -> None:
        # Lazy: called once per new page, removes everything the window can no longer reach.
        stale = [k for k, (seen_z, _) in self._last_seen.items() if z - seen_z > self.window]
        for k in stale:
            del self._last_seen[k]

    def run(self, cells: list[PendingCell], dictionary: ContentDictionary) -> DedupOutcome:
        out: list[PendingCell] = []
        hits = 0
        dropped = 0
        current_z: int | None = None

        for cell in cells:
            if cell.z != current_z:
                current_z = cell.z
                self._prune(cell.z)

            code_id = dictionary.insert(cell.payload)
            seen = self._last_seen.get(code_id)
            is_hit = seen is not None and cell.z - seen[0] <= self.window

            if is_hit:
                group = seen[1]
                hits += 1
            else:
                group = self._next_group
                self._next_group += 1
            self._last_seen[code_id] = (cell.z, group)

            if is_hit and self.drop_footers and cell.cell_type == CellType.FOOTER:
                dropped += 1
                continue

            out.append(replace(cell, code_id=code_id, group=group, dedup_hit=is_hit))

        return DedupOutcome(cells=out, hits=hits, footers_dropped=dropped, groups=self._next_group)
