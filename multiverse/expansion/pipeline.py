# multiverse/expansion/pipeline.py
"""
Resolved pipeline types.

A ResolvedPipeline is one fully concrete combination of decisions: every
placeholder substituted, every stage reduced to the code it will run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from multiverse.blueprint.decisions import GroupKind


class Stage(Enum):
    """Execution stages of a resolved pipeline."""
    FILTER = "filter"
    RELIABILITY = "reliability"
    PREPROCESS = "preprocess"
    MODEL = "model"
    POSTPROCESS = "postprocess"


# Stages that carry resolved code.
CODE_STAGES = (Stage.FILTER, Stage.PREPROCESS, Stage.MODEL, Stage.POSTPROCESS)


@dataclass(frozen=True)
class Choice:
    """The alternative chosen for one decision group."""
    group_kind: GroupKind
    group_name: str
    alternative_id: str
    label: str

    @property
    def column(self) -> str:
        return f"{self.group_kind.value}:{self.group_name}"


@dataclass(frozen=True)
class ResolvedStep:
    """A preprocess or postprocess step with its substituted code."""
    group: str
    name: str
    code: str


@dataclass(frozen=True)
class ResolvedModel:
    name: str
    method: str
    formula: str
    model_kwargs: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    fit_kwargs: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def render(self) -> str:
        """Display form of the model call."""
        args = [repr(self.formula), "data=data"]
        args += [f"{k}={v!r}" for k, v in self.model_kwargs.items()]
        call = f"{self.method}({', '.join(args)})"
        if self.fit_kwargs:
            fit_args = ", ".join(f"{k}={v!r}" for k, v in self.fit_kwargs.items())
            return f"{call}.fit({fit_args})"
        return f"{call}.fit()"


@dataclass(frozen=True)
class ResolvedReliability:
    name: str
    items: Tuple[str, ...]


@dataclass(frozen=True)
class ResolvedPipeline:
    """
    One row of the expanded grid.

    Attributes:
        decision_id: Dense 1-based id, stable for a given blueprint.
        choices: One Choice per branching decision group, in factor order.
        variables: Placeholder bindings (variable group -> column).
        filters: Predicates applied by this pipeline.
        preprocess: Preprocessing steps in registration order.
        model: The model to fit, or None if no model was registered.
        postprocess: Post-processing steps in registration order.
        reliabilities: Auxiliary reliability computations.
    """
    decision_id: int
    choices: Tuple[Choice, ...]
    variables: Dict[str, str] = field(compare=False, hash=False)
    filters: Tuple[str, ...] = ()
    preprocess: Tuple[ResolvedStep, ...] = ()
    model: Optional[ResolvedModel] = None
    postprocess: Tuple[ResolvedStep, ...] = ()
    reliabilities: Tuple[ResolvedReliability, ...] = ()

    @property
    def code(self) -> Dict[str, str]:
        """Resolved code string per stage."""
        return {
            Stage.FILTER.value: " & ".join(f"({p})" for p in self.filters),
            Stage.PREPROCESS.value: "\n".join(f"data = {s.code}" for s in self.preprocess),
            Stage.MODEL.value: self.model.render() if self.model else "",
            Stage.POSTPROCESS.value: "\n".join(f"{s.name} = {s.code}" for s in self.postprocess),
        }

    def decisions(self) -> Dict[str, str]:
        """Decision column -> chosen label."""
        return {choice.column: choice.label for choice in self.choices}
