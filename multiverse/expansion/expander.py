# multiverse/expansion/expander.py
"""
Expander
--------

Turns a Blueprint into the Cartesian product of fully resolved pipelines.

Factor order is fixed (filters in registration order, then variables,
preprocess, model, postprocess) and the product is taken with the last
factor varying fastest, so ``decision_id`` assignment is a pure function
of the blueprint. The grid is lazy: rows are generated on iteration or
decoded individually by id, never stored.
"""

from __future__ import annotations

import itertools
import math
import operator
from typing import Dict, Iterator, List, Optional, Sequence, Union
import logging

import pandas as pd

from multiverse.blueprint.blueprint import Blueprint
from multiverse.blueprint.decisions import (
    FILTER_APPLY,
    Alternative,
    DecisionGroup,
    GroupKind,
)
from multiverse.blueprint.templates import find_placeholders, substitute
from multiverse.errors import EmptyDecisionGroupError, TemplateBindingError
from multiverse.expansion.masks import filter_mask
from multiverse.expansion.pipeline import (
    CODE_STAGES,
    Choice,
    ResolvedModel,
    ResolvedPipeline,
    ResolvedReliability,
    ResolvedStep,
    Stage,
)
from multiverse.monitoring.error_logging import ErrorComponent, create_component_logger

logger = logging.getLogger(__name__)
error_logger = create_component_logger(ErrorComponent.EXPANDER)


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------

def _templates_of(alternative: Alternative) -> List[str]:
    templates = [alternative.code_template]
    for value in alternative.options.get("model_kwargs", {}).values():
        if isinstance(value, str):
            templates.append(value)
    return templates


def validate_blueprint(blueprint: Blueprint) -> None:
    """
    Structural checks run before any row is produced.

    Raises:
        EmptyDecisionGroupError: If a group has no alternatives.
        TemplateBindingError: If a template references a placeholder with
            no matching variable group.
    """
    for group in blueprint.groups:
        if group.arity == 0:
            error_logger.log_error(f"Empty decision group: {group.column}", severity="error")
            raise EmptyDecisionGroupError(group.group_kind.value, group.group_name)

    bound = set(blueprint.variable_names())
    for kind in (GroupKind.PREPROCESS, GroupKind.MODEL, GroupKind.POSTPROCESS):
        for group in blueprint.groups_of(kind):
            for alternative in group.alternatives:
                unbound = [
                    name
                    for template in _templates_of(alternative)
                    for name in find_placeholders(template)
                    if name not in bound
                ]
                if unbound:
                    error_logger.log_error(
                        f"Unbound placeholders {unbound}",
                        context={"group": group.column, "alternative": alternative.alternative_id},
                        severity="error",
                    )
                    raise TemplateBindingError(
                        f"{group.group_name}/{alternative.alternative_id}",
                        sorted(set(unbound)),
                    )


# ----------------------------------------------------------------------
# Grid
# ----------------------------------------------------------------------

class ExpandedGrid:
    """
    Lazy Cartesian product of one alternative per branching decision group.

    Usage:
        grid = expand(blueprint)
        len(grid)                 # total pipelines, no materialisation
        for pipeline in grid:     # generated on demand, decision_id 1..N
            ...
        grid.get(12).code["model"]
    """

    def __init__(self, blueprint: Blueprint) -> None:
        self.blueprint = blueprint
        self.factors: List[DecisionGroup] = blueprint.factor_groups()
        self.arities: List[int] = [g.arity for g in self.factors]
        self._reliabilities = tuple(
            ResolvedReliability(g.group_name, tuple(g.alternatives[0].options["items"]))
            for g in blueprint.groups_of(GroupKind.RELIABILITY)
        )

    @property
    def dataset(self) -> pd.DataFrame:
        return self.blueprint.dataset

    def __len__(self) -> int:
        return math.prod(self.arities)

    def __iter__(self) -> Iterator[ResolvedPipeline]:
        combos = itertools.product(*(g.alternatives for g in self.factors))
        for decision_id, combo in enumerate(combos, start=1):
            yield self._resolve(decision_id, combo)

    def get(self, decision_id: int) -> ResolvedPipeline:
        """Decode a single pipeline by id without generating its predecessors."""
        total = len(self)
        if isinstance(decision_id, bool):
            raise TypeError("decision_id must be an integer, got bool")
        # numpy integers from result tables are accepted
        decision_id = operator.index(decision_id)
        if not 1 <= decision_id <= total:
            raise IndexError(f"decision_id must be in 1..{total}, got {decision_id}")

        index = decision_id - 1
        digits: List[int] = []
        for arity in reversed(self.arities):
            index, digit = divmod(index, arity)
            digits.append(digit)
        digits.reverse()

        combo = [g.alternatives[d] for g, d in zip(self.factors, digits)]
        return self._resolve(decision_id, combo)

    def iter_chunks(self, size: int) -> Iterator[List[ResolvedPipeline]]:
        """Yield consecutive lists of at most ``size`` pipelines."""
        if size < 1:
            raise ValueError("chunk size must be >= 1")
        iterator = iter(self)
        while True:
            chunk = list(itertools.islice(iterator, size))
            if not chunk:
                return
            yield chunk

    def to_frame(self) -> pd.DataFrame:
        """Materialise the decision table: one row per pipeline, one column per decision."""
        rows = []
        for pipeline in self:
            row = {"decision_id": pipeline.decision_id}
            row.update(pipeline.decisions())
            rows.append(row)
        columns = ["decision_id"] + [g.column for g in self.factors]
        return pd.DataFrame(rows, columns=columns)

    def show_code(self, stage: Union[str, Stage], decision_id: int) -> str:
        """Exact resolved code string for one stage of one pipeline."""
        stage = Stage(stage) if isinstance(stage, str) else stage
        if stage not in CODE_STAGES:
            raise ValueError(f"Stage '{stage.value}' carries no code")
        return self.get(decision_id).code[stage.value]

    def _resolve(self, decision_id: int, combo: Sequence[Alternative]) -> ResolvedPipeline:
        bindings: Dict[str, str] = {
            group.group_name: alt.code_template
            for group, alt in zip(self.factors, combo)
            if group.group_kind is GroupKind.VARIABLE
        }

        choices: List[Choice] = []
        filters: List[str] = []
        preprocess: List[ResolvedStep] = []
        postprocess: List[ResolvedStep] = []
        model: Optional[ResolvedModel] = None

        for group, alt in zip(self.factors, combo):
            choices.append(Choice(group.group_kind, group.group_name, alt.alternative_id, alt.label))
            kind = group.group_kind

            if kind is GroupKind.FILTER:
                if alt.alternative_id == FILTER_APPLY:
                    filters.append(alt.code_template)
            elif kind is GroupKind.PREPROCESS:
                preprocess.append(
                    ResolvedStep(group.group_name, alt.alternative_id, substitute(alt.code_template, bindings))
                )
            elif kind is GroupKind.MODEL:
                model = ResolvedModel(
                    name=alt.alternative_id,
                    method=alt.options["method"],
                    formula=substitute(alt.code_template, bindings),
                    model_kwargs={
                        k: substitute(v, bindings) if isinstance(v, str) else v
                        for k, v in alt.options.get("model_kwargs", {}).items()
                    },
                    fit_kwargs=dict(alt.options.get("fit_kwargs", {})),
                )
            elif kind is GroupKind.POSTPROCESS:
                postprocess.append(
                    ResolvedStep(group.group_name, alt.alternative_id, substitute(alt.code_template, bindings))
                )

        return ResolvedPipeline(
            decision_id=decision_id,
            choices=tuple(choices),
            variables=bindings,
            filters=tuple(filters),
            preprocess=tuple(preprocess),
            model=model,
            postprocess=tuple(postprocess),
            reliabilities=self._reliabilities,
        )


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def expand(blueprint: Blueprint) -> ExpandedGrid:
    """
    Validate ``blueprint`` and return its lazy expanded grid.

    Raises:
        EmptyDecisionGroupError, TemplateBindingError
    """
    validate_blueprint(blueprint)
    grid = ExpandedGrid(blueprint)
    logger.info(
        "Expanded blueprint into %d pipelines (factors: %s)",
        len(grid),
        " x ".join(f"{g.column}={g.arity}" for g in grid.factors) or "none",
    )
    return grid


def total_count(blueprint: Blueprint) -> int:
    """Number of pipelines implied by ``blueprint`` (product of factor arities)."""
    return math.prod(g.arity for g in blueprint.factor_groups())


def filter_factor_count(blueprint: Blueprint) -> int:
    """Number of filter decision groups."""
    return len(blueprint.groups_of(GroupKind.FILTER))


def filter_exclusion_summary(
    blueprint: Blueprint, dataset: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """
    Rows each filter alternative would remove on its own from the unfiltered data.

    Args:
        blueprint: Blueprint whose filter groups are summarised.
        dataset: Data to evaluate against (defaults to the blueprint dataset).

    Returns:
        DataFrame with columns filter, alternative, label, rows_removed,
        rows_remaining, in registration order.
    """
    data = blueprint.dataset if dataset is None else dataset
    n_rows = len(data)

    rows = []
    for group in blueprint.groups_of(GroupKind.FILTER):
        for alt in group.alternatives:
            if alt.alternative_id == FILTER_APPLY:
                kept = int(filter_mask(data, alt.code_template).sum())
            else:
                kept = n_rows
            rows.append({
                "filter": group.group_name,
                "alternative": alt.alternative_id,
                "label": alt.label,
                "rows_removed": n_rows - kept,
                "rows_remaining": kept,
            })

    logger.info("Computed exclusion summary for %d filter(s)", filter_factor_count(blueprint))
    return pd.DataFrame(
        rows, columns=["filter", "alternative", "label", "rows_removed", "rows_remaining"]
    )


def show_code(grid: ExpandedGrid, stage: Union[str, Stage], decision_id: int) -> str:
    """Exact resolved code string for ``stage`` of pipeline ``decision_id``."""
    return grid.show_code(stage, decision_id)
