"""Pipeline configuration.

Provides YAML-based configuration loading with default values and a
dataclass holding every parameter of :func:`proteomiss.pipeline.run_pipeline`.

Example file::

    threshold: 0.2
    log_base: 2
    method: rf
    m: 3
    max_iterations: 5
    seed: 42
    select: 0
    normalization: scale
    method_params:
      n_estimators: 10
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from proteomiss.core.exceptions import InvalidConfigError

__all__ = [
    "PipelineConfig",
    "load_config",
    "save_config",
]


@dataclass(slots=True)
class PipelineConfig:
    """Parameters of the sparsity-analysis and imputation pipeline.

    Attributes
    ----------
    threshold : float
        Maximum missingness of a retained protein.
    log_base : float | None
        If set, abundances are log-transformed (``log_base(X + 1)``) first.
    method : str
        Imputation method name.
    m : int
        Number of imputed matrices.
    max_iterations : int
        Chained-equation iterations per imputed matrix.
    seed : int | None
        Base random seed.
    tol : float | None
        Optional early-stopping tolerance for the imputer.
    select : int | str
        Ensemble member index or pooling rule passed to ``combine``.
    normalization : str
        Per-sample normalization of the completed matrix.
    method_params : dict[str, Any]
        Extra parameters of the imputation method.
    """

    threshold: float = 0.20
    log_base: float | None = None
    method: str = "rf"
    m: int = 3
    max_iterations: int = 5
    seed: int | None = 42
    tol: float | None = None
    select: int | str = 0
    normalization: str = "scale"
    method_params: dict[str, Any] = field(default_factory=dict)


def load_config(config_path: str | Path) -> PipelineConfig:
    """Load a pipeline configuration from a YAML file.

    Keys missing from the file take their default values. If the file does
    not exist, the default configuration is returned.

    Raises
    ------
    InvalidConfigError
        If the YAML cannot be read or parsed, is not a mapping, or contains
        unknown keys.
    """
    path = Path(config_path)
    if not path.exists():
        return PipelineConfig()

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Failed to parse YAML config {path}: {e}") from e
    except OSError as e:
        raise InvalidConfigError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Config file {path} must contain a mapping at top level.")

    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidConfigError(
            f"Unknown configuration key(s) in {path}: {unknown}.",
            parameter=unknown[0],
            value=data[unknown[0]],
            hint=f"Known keys: {', '.join(sorted(known))}.",
        )
    if data.get("method_params") is None:
        data.pop("method_params", None)
    elif not isinstance(data["method_params"], dict):
        raise InvalidConfigError(
            "method_params must be a mapping.",
            parameter="method_params",
            value=data["method_params"],
        )

    return PipelineConfig(**data)


def save_config(config: PipelineConfig, config_path: str | Path) -> None:
    """Write a configuration as YAML."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(asdict(config), f, sort_keys=False)
