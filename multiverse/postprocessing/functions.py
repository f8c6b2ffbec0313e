"""
Post-processing functions
-------------------------

Helpers available by name inside postprocess templates, e.g.

    bp.add_postprocess("skew", "residual_skewness(model)")

plus ``cronbach_alpha`` used by reliability groups. Each function takes a
fitted model (or item frame) and returns a scalar.
"""

from typing import Any, Callable, Dict

import numpy as np
import pandas as pd
from scipy import stats


def _residuals(model: Any) -> np.ndarray:
    resid = getattr(model, "resid", None)
    if resid is None:
        raise TypeError(f"{type(model).__name__} exposes no residuals")
    return np.asarray(resid, dtype=float)


def residual_skewness(model: Any) -> float:
    """Sample skewness of the model residuals."""
    return float(stats.skew(_residuals(model), nan_policy="omit"))


def residual_kurtosis(model: Any) -> float:
    """Excess (Fisher) kurtosis of the model residuals."""
    return float(stats.kurtosis(_residuals(model), fisher=True, nan_policy="omit"))


def residual_normality(model: Any) -> float:
    """Shapiro-Wilk p-value of the residuals."""
    return float(stats.shapiro(_residuals(model)).pvalue)


def r_squared(model: Any) -> float:
    value = getattr(model, "rsquared", None)
    if value is None:
        raise TypeError(f"{type(model).__name__} has no R-squared")
    return float(value)


def icc(model: Any) -> float:
    """
    Intraclass correlation of a random-intercept mixed model:
    between-group variance / (between-group variance + residual variance).
    """
    cov_re = getattr(model, "cov_re", None)
    if cov_re is None:
        raise TypeError("icc() requires a fitted mixed model")
    between = float(np.asarray(cov_re)[0, 0])
    within = float(model.scale)
    return between / (between + within)


def cronbach_alpha(items: pd.DataFrame) -> float:
    """
    Cronbach's alpha over item columns, listwise deletion of missing rows.

    Raises:
        ValueError: If fewer than two items or two complete rows remain.
    """
    items = items.dropna()
    n_items = items.shape[1]
    if n_items < 2:
        raise ValueError("cronbach_alpha needs at least two items")
    if len(items) < 2:
        raise ValueError("cronbach_alpha needs at least two complete rows")

    item_variances = items.var(axis=0, ddof=1).sum()
    total_variance = items.sum(axis=1).var(ddof=1)
    if total_variance == 0:
        return float("nan")
    return float(n_items / (n_items - 1) * (1 - item_variances / total_variance))


POSTPROCESS_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "residual_skewness": residual_skewness,
    "residual_kurtosis": residual_kurtosis,
    "residual_normality": residual_normality,
    "r_squared": r_squared,
    "icc": icc,
    "cronbach_alpha": cronbach_alpha,
}


def register_postprocess_function(name: str, func: Callable[..., Any]) -> None:
    """Expose ``func`` to postprocess templates under ``name``."""
    if not callable(func):
        raise ValueError("func must be a callable.")
    POSTPROCESS_FUNCTIONS[name] = func
