"""Core data structures.

The central object is :class:`AbundanceMatrix`, a read-only proteins x samples
table of abundances in which ``NaN`` marks a value that was not measured.
Every operation in the package takes matrices as input and returns new ones;
nothing is modified in place. Provenance travels with the data as a list of
:class:`ProvenanceLog` entries.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any

import numpy as np
import polars as pl

from proteomiss._version import __version__
from proteomiss.core.exceptions import InvalidInputError

__all__ = [
    "MaskCode",
    "ProvenanceLog",
    "AbundanceMatrix",
    "MissingnessVector",
    "ImputationEnsemble",
    "CompletedMatrix",
]


class MaskCode(IntEnum):
    """Status code of every cell in :attr:`AbundanceMatrix.M`."""

    VALID = 0  # Observed value
    MISSING = 1  # Not measured
    IMPUTED = 5  # Filled in by an imputation method


@dataclass
class ProvenanceLog:
    """Record of one operation that produced a matrix."""

    timestamp: str
    action: str
    params: dict[str, Any]
    software_version: str | None = None
    description: str | None = None


def _as_ids(ids: Sequence[Any], expected: int, kind: str) -> tuple[str, ...]:
    ids = tuple(str(i) for i in ids)
    if len(ids) != expected:
        raise InvalidInputError(f"Expected {expected} {kind} identifiers, got {len(ids)}.")
    if len(set(ids)) != len(ids):
        dupes = sorted(i for i, n in Counter(ids).items() if n > 1)
        raise InvalidInputError(f"Duplicate {kind} identifiers: {dupes[:5]}.")
    return ids


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, copy=True)
    a.setflags(write=False)
    return a


@dataclass
class AbundanceMatrix:
    """Proteins x samples abundance table.

    Attributes
    ----------
    X : np.ndarray
        Float64 values, shape (n_proteins, n_samples). ``NaN`` is missing.
    protein_ids : tuple[str, ...]
        Unique row identifiers.
    sample_ids : tuple[str, ...]
        Unique column identifiers.
    M : np.ndarray | None
        Int8 mask of :class:`MaskCode` values. Derived from ``X`` when omitted.
    history : list[ProvenanceLog]
        Operations that produced this matrix, oldest first.
    """

    X: np.ndarray
    protein_ids: tuple[str, ...]
    sample_ids: tuple[str, ...]
    M: np.ndarray | None = None
    history: list[ProvenanceLog] = field(default_factory=list)

    def __post_init__(self) -> None:
        X = np.asarray(self.X)
        if X.ndim != 2:
            raise InvalidInputError(f"Abundance matrix must be 2-D, got {X.ndim} dimension(s).")
        if not (np.issubdtype(X.dtype, np.number) or X.dtype == np.bool_):
            raise InvalidInputError(
                f"Abundance matrix must be numeric, got dtype '{X.dtype}'.",
                hint="Convert text columns to numbers before building the matrix.",
            )
        X = X.astype(np.float64)
        if np.isinf(X).any():
            raise InvalidInputError("Abundance matrix contains infinite values.")

        self.protein_ids = _as_ids(self.protein_ids, X.shape[0], "protein")
        self.sample_ids = _as_ids(self.sample_ids, X.shape[1], "sample")

        missing = np.isnan(X)
        if self.M is None:
            M = np.where(missing, MaskCode.MISSING, MaskCode.VALID).astype(np.int8)
        else:
            M = np.asarray(self.M)
            if M.shape != X.shape:
                raise InvalidInputError(f"Shape mismatch: X {X.shape} != M {M.shape}")
            valid_codes = [code.value for code in MaskCode]
            if not np.all(np.isin(M, valid_codes)):
                invalid = np.setdiff1d(np.unique(M), valid_codes)
                raise InvalidInputError(
                    f"Invalid mask codes found: {invalid}. Valid codes are: {valid_codes}"
                )
            M = M.astype(np.int8)
            if np.any(missing & (M != MaskCode.MISSING)):
                raise InvalidInputError("Missing values must carry the MISSING mask code.")

        self.X = _readonly(X)
        self.M = _readonly(M)
        self.history = list(self.history)

    @classmethod
    def from_numpy(
        cls,
        X: np.ndarray,  # noqa: N803
        protein_ids: Sequence[Any] | None = None,
        sample_ids: Sequence[Any] | None = None,
    ) -> AbundanceMatrix:
        """Build a matrix from an array, generating identifiers when omitted."""
        X = np.asarray(X)  # noqa: N806
        if X.ndim != 2:
            raise InvalidInputError(f"Abundance matrix must be 2-D, got {X.ndim} dimension(s).")
        if protein_ids is None:
            protein_ids = [f"protein_{i}" for i in range(X.shape[0])]
        if sample_ids is None:
            sample_ids = [f"sample_{j}" for j in range(X.shape[1])]
        return cls(X=X, protein_ids=tuple(protein_ids), sample_ids=tuple(sample_ids))

    @classmethod
    def from_polars(cls, df: pl.DataFrame, id_column: str | None = None) -> AbundanceMatrix:
        """Build a matrix from a wide DataFrame (one row per protein).

        Parameters
        ----------
        df : pl.DataFrame
            One identifier column plus one numeric column per sample.
        id_column : str | None
            Identifier column. Defaults to the first column.

        Raises
        ------
        InvalidInputError
            If the identifier column is absent or a sample column is not numeric.
        """
        if df.width == 0:
            raise InvalidInputError("DataFrame has no columns.")
        id_column = id_column or df.columns[0]
        if id_column not in df.columns:
            raise InvalidInputError(
                f"Identifier column '{id_column}' not found.",
                hint=f"Available columns: {', '.join(df.columns)}.",
            )
        sample_cols = [c for c in df.columns if c != id_column]
        non_numeric = [c for c in sample_cols if not df.schema[c].is_numeric()]
        if non_numeric:
            raise InvalidInputError(f"Non-numeric sample columns: {non_numeric}.")

        protein_ids = df[id_column].cast(pl.Utf8).to_list()
        if any(p is None for p in protein_ids):
            raise InvalidInputError(f"Identifier column '{id_column}' contains nulls.")
        if sample_cols:
            X = (  # noqa: N806
                df.select(pl.col(sample_cols).cast(pl.Float64))
                .fill_null(float("nan"))
                .to_numpy()
            )
        else:
            X = np.empty((df.height, 0), dtype=np.float64)  # noqa: N806
        return cls(X=X, protein_ids=tuple(protein_ids), sample_ids=tuple(sample_cols))

    def to_polars(self, id_column: str = "protein_id") -> pl.DataFrame:
        """Return the values as a wide DataFrame, missing values as null."""
        columns = [pl.Series(id_column, list(self.protein_ids), dtype=pl.Utf8)]
        for j, sample in enumerate(self.sample_ids):
            columns.append(pl.Series(sample, self.X[:, j], nan_to_null=True))
        return pl.DataFrame(columns)

    @property
    def shape(self) -> tuple[int, int]:
        return self.X.shape  # type: ignore[return-value]

    @property
    def n_proteins(self) -> int:
        return self.X.shape[0]

    @property
    def n_samples(self) -> int:
        return self.X.shape[1]

    @property
    def missing_mask(self) -> np.ndarray:
        return np.isnan(self.X)

    @property
    def n_missing(self) -> int:
        return int(self.missing_mask.sum())

    def subset_proteins(self, indices: np.ndarray | Sequence[int]) -> AbundanceMatrix:
        """Return a new matrix with only the given rows, in the given order."""
        idx = np.asarray(indices, dtype=np.intp)
        return AbundanceMatrix(
            X=self.X[idx],
            protein_ids=tuple(self.protein_ids[i] for i in idx),
            sample_ids=self.sample_ids,
            M=self.M[idx],
            history=self.history,
        )

    def with_values(
        self,
        X: np.ndarray,  # noqa: N803
        M: np.ndarray | None = None,  # noqa: N803
    ) -> AbundanceMatrix:
        """Return a matrix with new values but the same identifiers and history."""
        return AbundanceMatrix(
            X=X,
            protein_ids=self.protein_ids,
            sample_ids=self.sample_ids,
            M=M,
            history=self.history,
        )

    def log_operation(
        self,
        action: str,
        params: dict[str, Any],
        description: str | None = None,
    ) -> AbundanceMatrix:
        """Return a copy of this matrix with one more provenance entry."""
        log = ProvenanceLog(
            timestamp=datetime.now().isoformat(),
            action=action,
            params=params,
            software_version=__version__,
            description=description,
        )
        return AbundanceMatrix(
            X=self.X,
            protein_ids=self.protein_ids,
            sample_ids=self.sample_ids,
            M=self.M,
            history=[*self.history, log],
        )

    def copy(self) -> AbundanceMatrix:
        return AbundanceMatrix(
            X=self.X,
            protein_ids=self.protein_ids,
            sample_ids=self.sample_ids,
            M=self.M,
            history=self.history,
        )

    def __repr__(self) -> str:
        return (
            f"AbundanceMatrix(n_proteins={self.n_proteins}, n_samples={self.n_samples}, "
            f"n_missing={self.n_missing})"
        )


@dataclass
class MissingnessVector:
    """Per-protein fraction of missing entries."""

    values: np.ndarray
    protein_ids: tuple[str, ...]

    def __post_init__(self) -> None:
        self.values = _readonly(np.asarray(self.values, dtype=np.float64))
        self.protein_ids = tuple(self.protein_ids)
        if self.values.ndim != 1 or len(self.values) != len(self.protein_ids):
            raise InvalidInputError(
                f"Missingness vector has {self.values.size} value(s) "
                f"for {len(self.protein_ids)} protein(s)."
            )

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, i: int) -> float:
        return float(self.values[i])

    def to_frame(self) -> pl.DataFrame:
        return pl.DataFrame(
            {"protein_id": list(self.protein_ids), "missing_rate": self.values}
        )


@dataclass
class ImputationEnsemble:
    """Ordered set of completed matrices produced by one imputation call.

    Attributes
    ----------
    members : tuple[AbundanceMatrix, ...]
        Completed matrices, all with the shape and identifiers of the input.
    method : str
        Imputation method name.
    seed : int | None
        Base seed the members were derived from.
    max_iterations : int
        Upper bound on chained-equation iterations per member.
    n_iterations : tuple[int, ...]
        Iterations actually run per member.
    converged : tuple[bool, ...]
        Whether each member stopped on the tolerance criterion.
    chain_mean, chain_var : np.ndarray
        Shape (m, max_iterations, n_samples). Mean and variance of the imputed
        cells of each column after each iteration, NaN where nothing applies.
    """

    members: tuple[AbundanceMatrix, ...]
    method: str
    seed: int | None
    max_iterations: int
    n_iterations: tuple[int, ...] = ()
    converged: tuple[bool, ...] = ()
    chain_mean: np.ndarray | None = None
    chain_var: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.members = tuple(self.members)
        if not self.members:
            raise InvalidInputError("An imputation ensemble needs at least one member.")
        shape = self.members[0].shape
        for member in self.members[1:]:
            if member.shape != shape:
                raise InvalidInputError(
                    f"Ensemble members differ in shape: {shape} != {member.shape}"
                )

    @property
    def m(self) -> int:
        return len(self.members)

    def __len__(self) -> int:
        return len(self.members)

    def __getitem__(self, i: int) -> AbundanceMatrix:
        return self.members[i]

    def __iter__(self) -> Iterator[AbundanceMatrix]:
        return iter(self.members)


@dataclass
class CompletedMatrix:
    """One selected or pooled member of an ensemble after normalization."""

    matrix: AbundanceMatrix
    source: int | str
    normalization: str
    scale_factors: np.ndarray
    shifts: np.ndarray

    @property
    def X(self) -> np.ndarray:  # noqa: N802
        return self.matrix.X

    @property
    def shape(self) -> tuple[int, int]:
        return self.matrix.shape

    def to_polars(self) -> pl.DataFrame:
        return self.matrix.to_polars()
