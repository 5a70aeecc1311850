"""NPZ (numpy archive) persistence for ensembles and completed matrices.

Arrays are stored natively; identifiers as unicode arrays and everything else
(provenance, method, seed) as a JSON document, so archives load without
pickle.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np

from proteomiss._version import __version__
from proteomiss.core.structures import (
    AbundanceMatrix,
    CompletedMatrix,
    ImputationEnsemble,
    ProvenanceLog,
)
from proteomiss.io.exceptions import IOFormatError

__all__ = [
    "save_ensemble",
    "load_ensemble",
    "save_completed",
    "load_completed",
]

_METADATA_KEY = "_metadata"
_KIND_ENSEMBLE = "ensemble"
_KIND_COMPLETED = "completed"


def _history_to_list(history: list[ProvenanceLog]) -> list[dict[str, Any]]:
    return [
        {
            "timestamp": log.timestamp,
            "action": log.action,
            "params": log.params,
            "software_version": log.software_version,
            "description": log.description,
        }
        for log in history
    ]


def _history_from_list(items: list[dict[str, Any]]) -> list[ProvenanceLog]:
    return [ProvenanceLog(**item) for item in items]


def _json_default(obj: Any) -> Any:
    # numpy scalars and arrays keep their numeric type in the metadata
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    return str(obj)


def _write(path: str | Path, arrays: dict[str, np.ndarray], metadata: dict[str, Any]) -> None:
    metadata = {"format_version": __version__, **metadata}
    arrays[_METADATA_KEY] = np.array(json.dumps(metadata, default=_json_default))
    np.savez_compressed(Path(path), **arrays)


def _read(path: str | Path, kind: str) -> tuple[dict[str, np.ndarray], dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        with np.load(path, allow_pickle=False) as archive:
            arrays = {key: archive[key] for key in archive.files}
    except (OSError, ValueError) as e:
        raise IOFormatError(f"Not a readable numpy archive ({e})", path=str(path)) from e

    if _METADATA_KEY not in arrays:
        raise IOFormatError("Archive has no metadata record", path=str(path))
    try:
        metadata = json.loads(str(arrays.pop(_METADATA_KEY)))
    except json.JSONDecodeError as e:
        raise IOFormatError(f"Corrupt metadata ({e})", path=str(path)) from e
    if metadata.get("kind") != kind:
        raise IOFormatError(
            f"Expected a '{kind}' archive, found '{metadata.get('kind')}'", path=str(path)
        )
    return arrays, metadata


def _require(arrays: dict[str, np.ndarray], key: str, path: str | Path) -> np.ndarray:
    if key not in arrays:
        raise IOFormatError(f"Archive is missing array '{key}'", path=str(path))
    return arrays[key]


def save_ensemble(ensemble: ImputationEnsemble, path: str | Path) -> None:
    """Write an imputation ensemble to a compressed ``.npz`` archive."""
    first = ensemble[0]
    arrays: dict[str, np.ndarray] = {
        "protein_ids": np.array(first.protein_ids, dtype=str),
        "sample_ids": np.array(first.sample_ids, dtype=str),
    }
    for k, member in enumerate(ensemble):
        arrays[f"X_{k}"] = np.asarray(member.X)
        arrays[f"M_{k}"] = np.asarray(member.M)
    if ensemble.chain_mean is not None:
        arrays["chain_mean"] = ensemble.chain_mean
    if ensemble.chain_var is not None:
        arrays["chain_var"] = ensemble.chain_var

    _write(
        path,
        arrays,
        {
            "kind": _KIND_ENSEMBLE,
            "m": ensemble.m,
            "method": ensemble.method,
            "seed": ensemble.seed,
            "max_iterations": ensemble.max_iterations,
            "n_iterations": list(ensemble.n_iterations),
            "converged": list(ensemble.converged),
            "histories": [_history_to_list(member.history) for member in ensemble],
        },
    )


def load_ensemble(path: str | Path) -> ImputationEnsemble:
    """Read an archive written by :func:`save_ensemble`.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    IOFormatError
        If the file is not an ensemble archive or is incomplete.
    """
    arrays, metadata = _read(path, _KIND_ENSEMBLE)
    protein_ids = tuple(_require(arrays, "protein_ids", path).tolist())
    sample_ids = tuple(_require(arrays, "sample_ids", path).tolist())
    histories = metadata.get("histories", [])

    members = []
    for k in range(int(metadata["m"])):
        members.append(
            AbundanceMatrix(
                X=_require(arrays, f"X_{k}", path),
                protein_ids=protein_ids,
                sample_ids=sample_ids,
                M=_require(arrays, f"M_{k}", path),
                history=_history_from_list(histories[k]) if k < len(histories) else [],
            )
        )

    return ImputationEnsemble(
        members=tuple(members),
        method=metadata["method"],
        seed=metadata.get("seed"),
        max_iterations=int(metadata["max_iterations"]),
        n_iterations=tuple(metadata.get("n_iterations", ())),
        converged=tuple(metadata.get("converged", ())),
        chain_mean=arrays.get("chain_mean"),
        chain_var=arrays.get("chain_var"),
    )


def save_completed(completed: CompletedMatrix, path: str | Path) -> None:
    """Write a completed matrix to a compressed ``.npz`` archive."""
    matrix = completed.matrix
    _write(
        path,
        {
            "X": np.asarray(matrix.X),
            "M": np.asarray(matrix.M),
            "protein_ids": np.array(matrix.protein_ids, dtype=str),
            "sample_ids": np.array(matrix.sample_ids, dtype=str),
            "scale_factors": np.asarray(completed.scale_factors),
            "shifts": np.asarray(completed.shifts),
        },
        {
            "kind": _KIND_COMPLETED,
            "source": completed.source,
            "normalization": completed.normalization,
            "history": _history_to_list(matrix.history),
        },
    )


def load_completed(path: str | Path) -> CompletedMatrix:
    """Read an archive written by :func:`save_completed`."""
    arrays, metadata = _read(path, _KIND_COMPLETED)
    matrix = AbundanceMatrix(
        X=_require(arrays, "X", path),
        protein_ids=tuple(_require(arrays, "protein_ids", path).tolist()),
        sample_ids=tuple(_require(arrays, "sample_ids", path).tolist()),
        M=_require(arrays, "M", path),
        history=_history_from_list(metadata.get("history", [])),
    )
    return CompletedMatrix(
        matrix=matrix,
        source=metadata["source"],
        normalization=metadata["normalization"],
        scale_factors=_require(arrays, "scale_factors", path),
        shifts=_require(arrays, "shifts", path),
    )
