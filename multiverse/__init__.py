"""
Multiverse analysis engine.

Register analytic decisions on a Blueprint, expand it into every
combination of choices, run each resulting pipeline and compare the
results across the whole multiverse:

    from multiverse import Blueprint, expand, run_multiverse, reveal, condense

    bp = (Blueprint.from_dataset(df)
          .add_filters("age >= 18")
          .add_variables("iv", starts_with("iv"))
          .add_model("linear", "y ~ {iv}"))
    results = run_multiverse(expand(bp))
    condense(reveal(results), "coefficient", "median")
"""

from multiverse.blueprint import (
    Blueprint,
    contains,
    ends_with,
    load_blueprint,
    matches,
    one_of,
    starts_with,
)
from multiverse.errors import (
    EmptyDecisionGroupError,
    ModelTimeoutError,
    MultiverseError,
    PipelineExecutionError,
    TemplateBindingError,
    ValidationError,
)
from multiverse.execution import ResultRecord, Status, run_multiverse
from multiverse.expansion import (
    ExpandedGrid,
    expand,
    filter_exclusion_summary,
    filter_factor_count,
    show_code,
    total_count,
)
from multiverse.results import (
    condense,
    failure_summary,
    proportion_below,
    reveal,
    reveal_postprocess,
    reveal_reliabilities,
)

__version__ = "0.1.0"

__all__ = [
    "Blueprint",
    "contains",
    "ends_with",
    "load_blueprint",
    "matches",
    "one_of",
    "starts_with",
    "EmptyDecisionGroupError",
    "ModelTimeoutError",
    "MultiverseError",
    "PipelineExecutionError",
    "TemplateBindingError",
    "ValidationError",
    "ResultRecord",
    "Status",
    "run_multiverse",
    "ExpandedGrid",
    "expand",
    "filter_exclusion_summary",
    "filter_factor_count",
    "show_code",
    "total_count",
    "condense",
    "failure_summary",
    "proportion_below",
    "reveal",
    "reveal_postprocess",
    "reveal_reliabilities",
]
