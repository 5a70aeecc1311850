"""Multiple imputation for proteomics abundance matrices.

- impute: chained-equations imputation producing an ensemble of completed matrices
- combine: select or pool one ensemble member and normalize it

Conditional models (``method=``):
- rf: random forest with leaf-donor draws (default)
- cart: single regression tree with leaf-donor draws
- pmm: predictive mean matching on Bayesian ridge regression
- norm: Bayesian ridge regression plus Gaussian noise
"""

from .chained import impute
from .combine import POOLING_RULES, combine
from .methods import IMPUTATION_METHODS, get_method, list_methods, register_method

__all__ = [
    "impute",
    "combine",
    "POOLING_RULES",
    "IMPUTATION_METHODS",
    "get_method",
    "list_methods",
    "register_method",
]
