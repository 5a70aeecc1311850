"""Delimited text I/O for abundance matrices.

Reading is delegated to polars; this module only maps the wide table (one
identifier column, one column per sample) to an :class:`AbundanceMatrix`.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl

from proteomiss.core.exceptions import InvalidInputError
from proteomiss.core.structures import AbundanceMatrix

__all__ = [
    "read_matrix",
    "write_matrix",
]

_TAB_SUFFIXES = {".tsv", ".tab", ".txt"}
_NULL_VALUES = ["", "NA", "NaN", "nan", "NULL", "null"]


def _separator_for(path: Path, separator: str | None) -> str:
    if separator is not None:
        return separator
    return "\t" if path.suffix.lower() in _TAB_SUFFIXES else ","


def read_matrix(
    path: str | Path,
    id_column: str | None = None,
    separator: str | None = None,
) -> AbundanceMatrix:
    """Load a proteins x samples table.

    Parameters
    ----------
    path : str | Path
        Delimited text file with a header row.
    id_column : str | None
        Column holding protein identifiers. Defaults to the first column.
    separator : str | None
        Field separator. Defaults to tab for ``.tsv``/``.tab``/``.txt`` files
        and comma otherwise.

    Returns
    -------
    AbundanceMatrix
        Empty cells and ``NA``/``NaN`` markers become missing values.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    InvalidInputError
        If the file cannot be parsed or a sample column is not numeric.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    try:
        df = pl.read_csv(
            path,
            separator=_separator_for(path, separator),
            null_values=_NULL_VALUES,
            infer_schema_length=None,
        )
    except (pl.exceptions.ComputeError, pl.exceptions.NoDataError) as e:
        raise InvalidInputError(f"Failed to parse {path}: {e}") from e

    matrix = AbundanceMatrix.from_polars(df, id_column=id_column)
    return matrix.log_operation(
        action="read_matrix",
        params={"path": str(path), "id_column": id_column or df.columns[0]},
        description=f"Loaded {matrix.n_proteins} proteins x {matrix.n_samples} samples.",
    )


def write_matrix(
    matrix: AbundanceMatrix,
    path: str | Path,
    separator: str | None = None,
    id_column: str = "protein_id",
) -> None:
    """Write a matrix as a delimited table; missing values are written as ``NA``."""
    path = Path(path)
    matrix.to_polars(id_column=id_column).write_csv(
        path,
        separator=_separator_for(path, separator),
        null_value="NA",
    )
