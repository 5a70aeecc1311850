"""proteomiss: sparsity analysis and multiple imputation for proteomics.

Works on a proteins x samples abundance matrix in which ``NaN`` marks values
that were not measured.

Key Features:
    - Missingness per protein and per sample, threshold filtering
    - Little's MCAR test with EM mean/covariance estimates
    - Multiple imputation by chained equations (random forest, CART, PMM, norm)
    - Selection or pooling of imputed matrices with per-sample normalization
    - NPZ persistence and a small command line interface

Quick Start:
    >>> from proteomiss import read_matrix, compute_missingness, filter_by_threshold
    >>> from proteomiss import mcar_test, impute, combine
    >>> raw = read_matrix("proteins.tsv")
    >>> filtered = filter_by_threshold(raw, compute_missingness(raw), 0.2)
    >>> statistic, df, p_value = mcar_test(filtered)
    >>> ensemble = impute(filtered, method="rf", m=3, max_iterations=5, seed=42)
    >>> completed = combine(ensemble, 0)
"""

from __future__ import annotations

from proteomiss._version import __version__
from proteomiss.config import PipelineConfig, load_config, save_config
from proteomiss.core import (
    AbundanceMatrix,
    CompletedMatrix,
    ImputationEnsemble,
    IndexOutOfRangeError,
    InsufficientDataError,
    InvalidConfigError,
    InvalidInputError,
    MaskCode,
    MissingnessVector,
    ProteomissError,
    ProvenanceLog,
)
from proteomiss.impute import combine, impute
from proteomiss.io import (
    IOFormatError,
    load_completed,
    load_ensemble,
    read_matrix,
    save_completed,
    save_ensemble,
    write_matrix,
)
from proteomiss.normalization import log_transform, normalize
from proteomiss.pipeline import PipelineResult, run_pipeline
from proteomiss.qc import (
    MCARResult,
    MissingValueReport,
    compute_missingness,
    compute_sample_missingness,
    filter_by_threshold,
    filter_proteins_missing,
    mcar_test,
    summarize_missingness,
)

__all__ = [
    "__version__",
    # Core structures
    "AbundanceMatrix",
    "MissingnessVector",
    "ImputationEnsemble",
    "CompletedMatrix",
    "MaskCode",
    "ProvenanceLog",
    # Exceptions
    "ProteomissError",
    "InvalidInputError",
    "InvalidConfigError",
    "InsufficientDataError",
    "IndexOutOfRangeError",
    "IOFormatError",
    # Core operations
    "compute_missingness",
    "filter_by_threshold",
    "mcar_test",
    "impute",
    "combine",
    # Quality control
    "compute_sample_missingness",
    "summarize_missingness",
    "filter_proteins_missing",
    "MissingValueReport",
    "MCARResult",
    # Normalization
    "normalize",
    "log_transform",
    # I/O
    "read_matrix",
    "write_matrix",
    "save_ensemble",
    "load_ensemble",
    "save_completed",
    "load_completed",
    # Pipeline
    "PipelineConfig",
    "load_config",
    "save_config",
    "PipelineResult",
    "run_pipeline",
]
