from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from contracts.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class NumGuardConfig:
    """
    NumGuard thresholds.

    Tolerances are relative (fractions of the reference value). Defaults are
    explicit constants so that identical input always yields identical alerts.
    """

    sum_tolerance: float = 0.01
    outlier_factor: float = 1000.0
    outlier_min_group: int = 4
    drift_tolerance: float = 0.05
    min_label_chars: int = 3
    enabled: bool = True

    def validate(self) -> None:
        if not (0.0 <= self.sum_tolerance < 1.0):
            raise ConfigurationError("sum_tolerance must be within [0, 1)")
        if self.outlier_factor <= 1.0:
            raise ConfigurationError("outlier_factor must be > 1")
        if self.outlier_min_group < 2:
            raise ConfigurationError("outlier_min_group must be >= 2")
        if not (0.0 <= self.drift_tolerance < 1.0):
            raise ConfigurationError("drift_tolerance must be within [0, 1)")
        if self.min_label_chars < 1:
            raise ConfigurationError("min_label_chars must be >= 1")

    def __post_init__(self) -> None:
        self.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "sum_tolerance": self.sum_tolerance,
            "outlier_factor": self.outlier_factor,
            "outlier_min_group": self.outlier_min_group,
            "drift_tolerance": self.drift_tolerance,
            "min_label_chars": self.min_label_chars,
            "enabled": self.enabled,
        }
