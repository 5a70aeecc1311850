"""Per-sample normalization methods.

- normalize_scale: common median absolute value (default for completed matrices)
- normalize_mad: common median and median absolute deviation
- normalize_none: identity
- log_transform: log_base(X + offset)
"""

from .scale import (
    NORMALIZATIONS,
    log_transform,
    normalize,
    normalize_mad,
    normalize_none,
    normalize_scale,
)

__all__ = [
    "NORMALIZATIONS",
    "normalize",
    "normalize_scale",
    "normalize_mad",
    "normalize_none",
    "log_transform",
]
