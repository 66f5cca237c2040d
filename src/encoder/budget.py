from __future__ import annotations

from dataclasses import dataclass

from .buffer import PendingCell
from .tokens import TokenEstimator


@dataclass(frozen=True, slots=True)
class TrimOutcome:
    cells: list[PendingCell]
    trimmed: int
    tokens_kept: int


def trim_to_budget(cells: list[PendingCell], *, budget: int | None, estimate: TokenEstimator) -> TrimOutcome:
    """
    Keep the most important cells whose summed token cost fits `budget`.

    Cells are visited by descending importance (earlier position first on
    ties); selection stops at the first cell that would overflow the budget.
    The retained cells are returned in their original document order.
    """

    costs = [estimate(c.payload) for c in cells]
    if budget is None:
        return TrimOutcome(cells=list(cells), trimmed=0, tokens_kept=sum(costs))

    ranked = sorted(range(len(cells)), key=lambda i: (-cells[i].importance, cells[i].position))
    kept: list[int] = []
    total = 0
    for i in ranked:
        if total + costs[i] > budget:
            break
        kept.append(i)
        total += costs[i]

    kept.sort(key=lambda i: cells[i].position)
    return TrimOutcome(cells=[cells[i] for i in kept], trimmed=len(cells) - len(kept), tokens_kept=total)
