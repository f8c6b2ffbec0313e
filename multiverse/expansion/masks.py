# multiverse/expansion/masks.py
"""Boolean row masks for filter predicates."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from multiverse.blueprint.templates import referenced_names
from multiverse.errors import PipelineExecutionError


def filter_mask(data: pd.DataFrame, predicate: str) -> pd.Series:
    """
    Evaluate ``predicate`` on ``data`` and return a boolean row mask.

    Missing values in the result count as "not kept".

    Raises:
        PipelineExecutionError: (stage ``filter``) if the predicate references
            a missing column, fails to evaluate, or is not boolean.
    """
    try:
        names = referenced_names(predicate)
    except SyntaxError as exc:
        raise PipelineExecutionError("filter", f"Cannot parse predicate '{predicate}': {exc.msg}") from exc

    missing = sorted(n for n in names if n not in data.columns)
    if missing:
        raise PipelineExecutionError(
            "filter",
            f"Predicate '{predicate}' references missing column(s): {missing}",
            reason="missing_column",
        )

    try:
        result = data.eval(predicate, engine="python")
    except Exception as exc:
        raise PipelineExecutionError("filter", f"Predicate '{predicate}' failed: {exc}") from exc

    if np.isscalar(result):
        result = pd.Series(bool(result), index=data.index)
    if not isinstance(result, pd.Series) or not (
        pd.api.types.is_bool_dtype(result) or result.dropna().isin([True, False]).all()
    ):
        raise PipelineExecutionError(
            "filter", f"Predicate '{predicate}' did not produce a boolean mask", reason="invalid_output"
        )

    return result.fillna(False).astype(bool)


def combined_mask(data: pd.DataFrame, predicates: Iterable[str]) -> pd.Series:
    """Intersection of all predicate masks, each evaluated on the unfiltered frame."""
    mask = pd.Series(True, index=data.index)
    for predicate in predicates:
        mask &= filter_mask(data, predicate)
    return mask
