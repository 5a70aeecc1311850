from .exceptions import (
    IndexOutOfRangeError,
    InsufficientDataError,
    InvalidConfigError,
    InvalidInputError,
    ProteomissError,
)
from .structures import (
    AbundanceMatrix,
    CompletedMatrix,
    ImputationEnsemble,
    MaskCode,
    MissingnessVector,
    ProvenanceLog,
)

__all__ = [
    "AbundanceMatrix",
    "MissingnessVector",
    "ImputationEnsemble",
    "CompletedMatrix",
    "MaskCode",
    "ProvenanceLog",
    "ProteomissError",
    "InvalidInputError",
    "InvalidConfigError",
    "InsufficientDataError",
    "IndexOutOfRangeError",
]
