"""Conditional models used by the chained-equations imputer.

Each method receives the observed target values of one column, the predictor
rows where that column is observed and the predictor rows where it is
missing, and returns one draw per missing row. Draws are random (through the
generator passed in) so that independent chains give different plausible
completions, which is what multiple imputation needs.

Methods are registered with :func:`register_method` together with their
default parameters; :func:`get_method` resolves a name and validates
user-supplied parameters against those defaults.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import numpy as np
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import BayesianRidge
from sklearn.tree import DecisionTreeRegressor

from proteomiss.core.exceptions import InvalidConfigError

__all__ = [
    "IMPUTATION_METHODS",
    "register_method",
    "get_method",
    "list_methods",
]

MethodFunc = Callable[..., np.ndarray]

IMPUTATION_METHODS: dict[str, tuple[MethodFunc, dict[str, Any]]] = {}

_MAX_SEED = np.iinfo(np.int32).max


def register_method(name: str, **defaults: Any) -> Callable[[MethodFunc], MethodFunc]:
    """Decorator registering an imputation method under ``name``."""

    def decorator(func: MethodFunc) -> MethodFunc:
        IMPUTATION_METHODS[name] = (func, defaults)
        return func

    return decorator


def list_methods() -> list[str]:
    return sorted(IMPUTATION_METHODS)


def get_method(name: str, params: dict[str, Any] | None = None) -> tuple[MethodFunc, dict[str, Any]]:
    """Resolve a method and merge ``params`` over its defaults.

    Raises
    ------
    InvalidConfigError
        If the method is unknown or a parameter is not accepted by it.
    """
    if name not in IMPUTATION_METHODS:
        raise InvalidConfigError(
            f"Unknown imputation method '{name}'.",
            parameter="method",
            value=name,
            hint=f"Available methods: {', '.join(list_methods())}.",
        )
    func, defaults = IMPUTATION_METHODS[name]
    params = dict(params or {})
    unknown = sorted(set(params) - set(defaults))
    if unknown:
        raise InvalidConfigError(
            f"Method '{name}' does not accept parameter(s) {unknown}.",
            parameter=unknown[0],
            value=params[unknown[0]],
            hint=f"Accepted parameters: {', '.join(sorted(defaults)) or 'none'}.",
        )
    return func, {**defaults, **params}


def _random_state(rng: np.random.Generator) -> int:
    return int(rng.integers(_MAX_SEED))


def _leaf_donor_draw(
    model: RandomForestRegressor | DecisionTreeRegressor,
    y_obs: np.ndarray,
    X_obs: np.ndarray,  # noqa: N803
    X_mis: np.ndarray,  # noqa: N803
    rng: np.random.Generator,
) -> np.ndarray:
    # Every leaf holds at least one in-bag observed row, so the pool is never empty.
    leaves_obs = model.apply(X_obs).reshape(X_obs.shape[0], -1)
    leaves_mis = model.apply(X_mis).reshape(X_mis.shape[0], -1)

    draws = np.empty(X_mis.shape[0])
    for i, leaf_row in enumerate(leaves_mis):
        donor_rows = np.nonzero(leaves_obs == leaf_row)[0]
        draws[i] = y_obs[rng.choice(donor_rows)]
    return draws


@register_method("rf", n_estimators=10, min_samples_leaf=5, max_depth=None, n_jobs=None)
def impute_rf(
    y_obs: np.ndarray,
    X_obs: np.ndarray,  # noqa: N803
    X_mis: np.ndarray,  # noqa: N803
    rng: np.random.Generator,
    n_estimators: int = 10,
    min_samples_leaf: int = 5,
    max_depth: int | None = None,
    n_jobs: int | None = None,
) -> np.ndarray:
    """Random forest imputation.

    A forest is trained on the observed rows; each missing cell receives the
    observed value of a donor drawn at random from the rows that share its
    terminal node in any tree.
    """
    rf = RandomForestRegressor(
        n_estimators=n_estimators,
        min_samples_leaf=min_samples_leaf,
        max_depth=max_depth,
        n_jobs=n_jobs,
        random_state=_random_state(rng),
    )
    rf.fit(X_obs, y_obs)
    return _leaf_donor_draw(rf, y_obs, X_obs, X_mis, rng)


@register_method("cart", min_samples_leaf=5, max_depth=None)
def impute_cart(
    y_obs: np.ndarray,
    X_obs: np.ndarray,  # noqa: N803
    X_mis: np.ndarray,  # noqa: N803
    rng: np.random.Generator,
    min_samples_leaf: int = 5,
    max_depth: int | None = None,
) -> np.ndarray:
    """Single regression tree with random donor draw from the matching leaf."""
    tree = DecisionTreeRegressor(
        min_samples_leaf=min_samples_leaf,
        max_depth=max_depth,
        random_state=_random_state(rng),
    )
    tree.fit(X_obs, y_obs)
    return _leaf_donor_draw(tree, y_obs, X_obs, X_mis, rng)


def _posterior_coef(
    y_obs: np.ndarray,
    X_obs: np.ndarray,  # noqa: N803
    rng: np.random.Generator,
) -> tuple[BayesianRidge, np.ndarray]:
    model = BayesianRidge()
    model.fit(X_obs, y_obs)
    coef = rng.multivariate_normal(model.coef_, model.sigma_)
    return model, coef


def _predict_with(
    coef: np.ndarray,
    y_obs: np.ndarray,
    X_obs: np.ndarray,  # noqa: N803
    X: np.ndarray,  # noqa: N803
) -> np.ndarray:
    return y_obs.mean() + (X - X_obs.mean(axis=0)) @ coef


@register_method("pmm", donors=5)
def impute_pmm(
    y_obs: np.ndarray,
    X_obs: np.ndarray,  # noqa: N803
    X_mis: np.ndarray,  # noqa: N803
    rng: np.random.Generator,
    donors: int = 5,
) -> np.ndarray:
    """Predictive mean matching.

    Missing rows are predicted with regression coefficients drawn from the
    Bayesian ridge posterior, observed rows with the posterior mean. Each
    missing cell takes the observed value of one of the ``donors`` observed
    rows with the closest prediction.
    """
    if donors < 1:
        raise InvalidConfigError(f"donors must be >= 1, got {donors}.", parameter="donors", value=donors)
    model, coef = _posterior_coef(y_obs, X_obs, rng)
    pred_obs = model.predict(X_obs)
    pred_mis = _predict_with(coef, y_obs, X_obs, X_mis)

    k = min(donors, y_obs.size)
    draws = np.empty(X_mis.shape[0])
    for i, target in enumerate(pred_mis):
        distance = np.abs(pred_obs - target)
        nearest = np.argsort(distance, kind="stable")[:k]
        draws[i] = y_obs[rng.choice(nearest)]
    return draws


@register_method("norm")
def impute_norm(
    y_obs: np.ndarray,
    X_obs: np.ndarray,  # noqa: N803
    X_mis: np.ndarray,  # noqa: N803
    rng: np.random.Generator,
) -> np.ndarray:
    """Bayesian linear regression with Gaussian noise."""
    model, coef = _posterior_coef(y_obs, X_obs, rng)
    mean = _predict_with(coef, y_obs, X_obs, X_mis)
    noise_sd = np.sqrt(1.0 / model.alpha_)
    return mean + rng.normal(0.0, noise_sd, size=mean.shape)
