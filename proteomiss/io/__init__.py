"""Input/output collaborators.

- read_matrix / write_matrix: delimited text tables (polars)
- save_ensemble / load_ensemble, save_completed / load_completed: NPZ archives
"""

from .exceptions import IOFormatError
from .npz import load_completed, load_ensemble, save_completed, save_ensemble
from .tabular import read_matrix, write_matrix

__all__ = [
    "read_matrix",
    "write_matrix",
    "save_ensemble",
    "load_ensemble",
    "save_completed",
    "load_completed",
    "IOFormatError",
]
