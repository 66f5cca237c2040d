"""
numguard

Advisory numeric consistency checks over encoded documents:
- sum mismatches in table clusters
- magnitude outliers within comparable value groups
- the same label reported with drifting values across pages
"""

from .checks import (
    DEFAULT_CHECKS,
    NumGuardContext,
    check_cross_occurrence_drift,
    check_magnitude_outlier,
    check_sum_mismatch,
)
from .config import NumGuardConfig
from .extract import NumericRow, NumericToken, extract_rows, extract_tokens, table_clusters
from .module import NumGuard, run_numguard

__all__ = [
    "DEFAULT_CHECKS",
    "NumGuard",
    "NumGuardConfig",
    "NumGuardContext",
    "NumericRow",
    "NumericToken",
    "check_cross_occurrence_drift",
    "check_magnitude_outlier",
    "check_sum_mismatch",
    "extract_rows",
    "extract_tokens",
    "run_numguard",
    "table_clusters",
]
