# multiverse/blueprint/decisions.py
"""
Decision types
--------------

A decision group is one analytic choice point; each of its alternatives is
one concrete, mutually exclusive option for that point.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class GroupKind(Enum):
    """Kinds of decision groups, in expansion factor order."""
    FILTER = "filter"
    VARIABLE = "variable"
    PREPROCESS = "preprocess"
    MODEL = "model"
    POSTPROCESS = "postprocess"
    RELIABILITY = "reliability"


# Factor order used by the expander. Reliabilities never branch.
FACTOR_ORDER: Tuple[GroupKind, ...] = (
    GroupKind.FILTER,
    GroupKind.VARIABLE,
    GroupKind.PREPROCESS,
    GroupKind.MODEL,
    GroupKind.POSTPROCESS,
)

FILTER_APPLY = "apply"
FILTER_SKIP = "skip"


@dataclass(frozen=True)
class Alternative:
    """
    One concrete choice within a decision group.

    Attributes:
        alternative_id: Unique within its group.
        label: Human-readable label (e.g. the filter predicate text).
        code_template: Parametrized expression, may contain ``{placeholder}`` tokens.
        options: Structured extras (model method and kwargs, reliability items).
    """
    alternative_id: str
    label: str
    code_template: str = ""
    options: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class DecisionGroup:
    """A named set of mutually exclusive alternatives for one choice point."""
    group_kind: GroupKind
    group_name: str
    alternatives: Tuple[Alternative, ...] = ()
    required: bool = False

    @property
    def arity(self) -> int:
        return len(self.alternatives)

    @property
    def column(self) -> str:
        """Key used for this group's decision column in result tables."""
        return f"{self.group_kind.value}:{self.group_name}"

    def alternative_ids(self) -> list[str]:
        return [alt.alternative_id for alt in self.alternatives]

    def with_alternative(self, alternative: Alternative) -> "DecisionGroup":
        """Return a copy of this group with one more alternative appended."""
        return DecisionGroup(
            group_kind=self.group_kind,
            group_name=self.group_name,
            alternatives=self.alternatives + (alternative,),
            required=self.required,
        )
