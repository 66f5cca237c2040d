from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NumGuardIssue(str, Enum):
    SUM_MISMATCH = "SUM_MISMATCH"
    MAGNITUDE_OUTLIER = "MAGNITUDE_OUTLIER"
    CROSS_OCCURRENCE_DRIFT = "CROSS_OCCURRENCE_DRIFT"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True, slots=True)
class NumGuardAlert:
    """
    Advisory numeric-consistency finding.

    Alerts never mutate the Document they were computed from; they travel in
    Metrics next to it.
    """

    issue: NumGuardIssue
    severity: Severity
    cell_ids: list[str]  # offending cells, document order
    pages: list[int]
    message: str
    detail: dict[str, Any] = field(default_factory=dict)

    def sort_key(self) -> tuple[int, str, str, str]:
        first_page = self.pages[0] if self.pages else 0
        first_cell = self.cell_ids[0] if self.cell_ids else ""
        return (first_page, first_cell, self.issue.value, self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "issue": self.issue.value,
            "severity": self.severity.value,
            "cell_ids": list(self.cell_ids),
            "pages": list(self.pages),
            "message": self.message,
            "detail": dict(self.detail),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "NumGuardAlert":
        return NumGuardAlert(
            issue=NumGuardIssue(str(d["issue"])),
            severity=Severity(str(d["severity"])),
            cell_ids=[str(x) for x in (d.get("cell_ids") or [])],
            pages=[int(x) for x in (d.get("pages") or [])],
            message=str(d.get("message", "")),
            detail=dict(d.get("detail") or {}),
        )
