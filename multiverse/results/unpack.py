# multiverse/results/unpack.py
"""
Result unpacker / aggregator.

Flattens ResultRecords into tidy DataFrames keyed by decision_id and joins
the decision labels back on. Records that did not succeed still produce one
row, with null statistics and their ``status``, so downstream aggregation
can count or exclude them explicitly.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union
import logging
import re

import numpy as np
import pandas as pd
from pandas.core.groupby import DataFrameGroupBy

from multiverse.execution.backends import (
    PARAMETER_COLUMNS,
    PERFORMANCE_COLUMNS,
    ModelBackend,
    get_backend,
)
from multiverse.execution.records import ResultRecord
from multiverse.monitoring.error_logging import ErrorComponent, ErrorLogger

logger = logging.getLogger(__name__)

ParameterSelector = Union[str, Sequence[str], Callable[[str], bool], None]
Reduction = Union[str, Callable[..., Any]]

UNPACK_MODES = ("wide", "long")
STATUS_COLUMNS = ["status", "failed_stage", "error"]
RELIABILITY_COLUMNS = ["reliability", "alpha", "n_items", "n_obs", "items", "reliability_error"]


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _check_mode(unpack_mode: str) -> None:
    if unpack_mode not in UNPACK_MODES:
        raise ValueError(f"unpack_mode must be one of {UNPACK_MODES}, got '{unpack_mode}'")


def _decision_columns(results: Sequence[ResultRecord]) -> List[str]:
    columns: List[str] = []
    for record in results:
        for column in record.decisions:
            if column not in columns:
                columns.append(column)
    return columns


def _base_row(record: ResultRecord) -> Dict[str, Any]:
    row: Dict[str, Any] = {"decision_id": record.decision_id}
    row.update(record.decisions)
    row["status"] = record.status.value
    row["failed_stage"] = record.failed_stage
    row["error"] = record.error
    return row


def _parameter_selected(name: str, selector: ParameterSelector) -> bool:
    if selector is None:
        return True
    if isinstance(selector, str):
        return re.search(selector, name) is not None
    if callable(selector):
        return bool(selector(name))
    return name in selector


def _finish(rows: List[Dict[str, Any]], columns: List[str], decision_cols: List[str], unpack_mode: str) -> pd.DataFrame:
    table = pd.DataFrame(rows, columns=["decision_id"] + decision_cols + STATUS_COLUMNS + columns)
    if unpack_mode == "wide":
        return table
    return _to_long(table, decision_cols)


def _to_long(table: pd.DataFrame, decision_cols: List[str]) -> pd.DataFrame:
    """One row per (result row, decision group) instead of one column per group."""
    id_vars = [c for c in table.columns if c not in decision_cols]
    if not decision_cols:
        long = table.assign(decision_kind=None, decision_group=None, decision_value=None)
    else:
        long = table.reset_index().melt(
            id_vars=["index"] + id_vars,
            value_vars=decision_cols,
            var_name="decision",
            value_name="decision_value",
        )
        # melt stacks decision columns in order; a stable sort keeps it per row
        long = long.sort_values("index", kind="stable")
        parts = long["decision"].str.split(":", n=1, expand=True)
        long = long.assign(decision_kind=parts[0], decision_group=parts[1])
        long = long.drop(columns=["index", "decision"]).reset_index(drop=True)
    front = ["decision_id", "decision_kind", "decision_group", "decision_value"]
    return long[front + [c for c in long.columns if c not in front]]


# ----------------------------------------------------------------------
# Reveal
# ----------------------------------------------------------------------

def reveal(
    results: Iterable[ResultRecord],
    unpack_mode: str = "wide",
    selector: ParameterSelector = None,
    which: str = "parameters",
    backend: Optional[ModelBackend] = None,
) -> pd.DataFrame:
    """
    Flatten fitted models into a tidy table.

    Args:
        results: ResultRecords from run_multiverse.
        unpack_mode: "wide" keeps one column per decision group; "long"
            gives one row per decision group with decision_kind,
            decision_group and decision_value.
        selector: Keep only matching parameters (regex, list of names or
            predicate). Null rows of unsuccessful records are always kept.
        which: "parameters" -> one row per (decision_id, parameter);
            "performance" -> one row per decision_id.
        backend: Backend used to unpack models (default: the record's own).

    Returns:
        pd.DataFrame
    """
    _check_mode(unpack_mode)
    if which not in ("parameters", "performance"):
        raise ValueError(f"which must be 'parameters' or 'performance', got '{which}'")

    results = list(results)
    decision_cols = _decision_columns(results)
    columns = PARAMETER_COLUMNS if which == "parameters" else PERFORMANCE_COLUMNS
    errors = ErrorLogger(component=ErrorComponent.UNPACKER)

    rows: List[Dict[str, Any]] = []
    for record in results:
        base = _base_row(record)
        if not record.succeeded or record.model is None:
            rows.append(base)
            continue

        model_backend = backend or record.backend or get_backend()
        try:
            if which == "performance":
                rows.append({**base, **model_backend.glance(record.model)})
                continue
            tidy = model_backend.tidy(record.model)
        except Exception as e:
            errors.log_error(
                "Could not unpack fitted model",
                exception=e,
                context={"decision_id": record.decision_id},
            )
            rows.append(base)
            continue

        for parameter_row in tidy.to_dict(orient="records"):
            if _parameter_selected(parameter_row["parameter"], selector):
                rows.append({**base, **parameter_row})

    logger.info(f"Revealed {which} for {len(results)} results ({len(rows)} rows, {unpack_mode})")
    return _finish(rows, columns, decision_cols, unpack_mode)


def reveal_postprocess(results: Iterable[ResultRecord], unpack_mode: str = "wide") -> pd.DataFrame:
    """One row per (decision_id, postprocess output) with its ``value``."""
    _check_mode(unpack_mode)
    results = list(results)
    decision_cols = _decision_columns(results)

    rows = []
    for record in results:
        base = _base_row(record)
        if not record.postprocess:
            rows.append(base)
        for name, value in record.postprocess.items():
            rows.append({**base, "postprocess": name, "value": value})
    return _finish(rows, ["postprocess", "value"], decision_cols, unpack_mode)


def reveal_reliabilities(results: Iterable[ResultRecord], unpack_mode: str = "wide") -> pd.DataFrame:
    """
    One row per (decision_id, reliability) with alpha, n_items, n_obs, items
    and reliability_error (null unless alpha could not be computed).
    Reliabilities are computed right after filtering, so records that failed
    in a later stage still report them.
    """
    _check_mode(unpack_mode)
    results = list(results)
    decision_cols = _decision_columns(results)

    rows = []
    for record in results:
        base = _base_row(record)
        if not record.reliabilities:
            rows.append(base)
        for name, values in record.reliabilities.items():
            values = dict(values)
            rows.append({**base, "reliability": name, "reliability_error": values.pop("error", None), **values})
    return _finish(rows, RELIABILITY_COLUMNS, decision_cols, unpack_mode)


# ----------------------------------------------------------------------
# Condense
# ----------------------------------------------------------------------

def _wrap(reduction: Reduction) -> Reduction:
    if isinstance(reduction, str):
        return reduction
    if not callable(reduction):
        raise TypeError(f"reduction must be a callable or a pandas reduction name, got {reduction!r}")

    def _reduce(values: pd.Series) -> Any:
        return reduction(values.dropna())

    return _reduce


def _reduce_series(values: pd.Series, reduction: Reduction) -> Any:
    if isinstance(reduction, str):
        return values.agg(reduction)
    return reduction(values)


def condense(
    table: Union[pd.DataFrame, DataFrameGroupBy],
    target_column: str,
    reduction: Union[Reduction, Mapping[str, Reduction]],
    by: Union[str, Sequence[str], None] = None,
) -> pd.DataFrame:
    """
    Reduce ``target_column`` per group.

    Grouping comes from ``table`` if it is already grouped, else from ``by``,
    else from the ``parameter`` column when present, else the whole table is
    one group. Callable reductions receive the non-null values.

    Args:
        table: Tidy results table or a DataFrameGroupBy over one.
        target_column: Column to reduce.
        reduction: Callable, pandas reduction name ("median", "mean", ...),
            or a mapping of output column -> reduction.
        by: Grouping column(s) for an ungrouped table.

    Returns:
        pd.DataFrame: one row per group. A single reduction is written to
        ``target_column``; a mapping writes one column per key.
    """
    if isinstance(reduction, Mapping):
        aggregations = {name: _wrap(func) for name, func in reduction.items()}
    else:
        aggregations = {target_column: _wrap(reduction)}

    if isinstance(table, DataFrameGroupBy):
        grouped = table
    else:
        if target_column not in table.columns:
            raise KeyError(f"Column '{target_column}' not in table")
        if by is None and "parameter" in table.columns:
            by = "parameter"
        if by is None:
            row = {name: _reduce_series(table[target_column], func) for name, func in aggregations.items()}
            return pd.DataFrame([row])
        grouped = table.groupby(by, sort=False)

    result = grouped[target_column].agg(**aggregations)
    if isinstance(result, pd.Series):
        result = result.to_frame()
    if not isinstance(result.index, pd.RangeIndex):
        result = result.reset_index()
    return result


def proportion_below(threshold: float) -> Callable[[pd.Series], float]:
    """Reduction factory: share of values strictly below ``threshold``."""

    def _proportion(values) -> float:
        values = np.asarray(values, dtype=float)
        if values.size == 0:
            return float("nan")
        return float(np.mean(values < threshold))

    _proportion.__name__ = f"proportion_below_{threshold}"
    return _proportion


def failure_summary(results: Iterable[ResultRecord]) -> pd.DataFrame:
    """Count records per (status, failed_stage, reason)."""
    frame = pd.DataFrame(
        [
            {"status": r.status.value, "failed_stage": r.failed_stage, "reason": r.reason}
            for r in results
        ],
        columns=["status", "failed_stage", "reason"],
    )
    if frame.empty:
        return frame.assign(count=pd.Series(dtype=int))
    return (
        frame.groupby(["status", "failed_stage", "reason"], dropna=False)
        .size()
        .reset_index(name="count")
    )
