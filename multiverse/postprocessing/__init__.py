"""Pluggable post-processing and reliability functions."""

from .functions import (
    POSTPROCESS_FUNCTIONS,
    cronbach_alpha,
    icc,
    r_squared,
    register_postprocess_function,
    residual_kurtosis,
    residual_normality,
    residual_skewness,
)

__all__ = [
    "POSTPROCESS_FUNCTIONS",
    "cronbach_alpha",
    "icc",
    "r_squared",
    "register_postprocess_function",
    "residual_kurtosis",
    "residual_normality",
    "residual_skewness",
]
