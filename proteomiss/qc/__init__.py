"""Quality control: missingness analysis, filtering and the MCAR test."""

from .filtering import DEFAULT_THRESHOLD, filter_by_threshold, filter_proteins_missing
from .mcar import MCARResult, estimate_mvn_em, mcar_test
from .missing import (
    MissingValueReport,
    compute_missingness,
    compute_sample_missingness,
    count_missing_patterns,
    summarize_missingness,
)

__all__ = [
    "compute_missingness",
    "compute_sample_missingness",
    "count_missing_patterns",
    "summarize_missingness",
    "MissingValueReport",
    "DEFAULT_THRESHOLD",
    "filter_by_threshold",
    "filter_proteins_missing",
    "MCARResult",
    "mcar_test",
    "estimate_mvn_em",
]
