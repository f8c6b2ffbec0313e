"""Expansion of blueprints into the grid of resolved pipelines."""

from .pipeline import Choice, ResolvedModel, ResolvedPipeline, ResolvedReliability, ResolvedStep, Stage
from .masks import combined_mask, filter_mask
from .expander import (
    ExpandedGrid,
    expand,
    filter_exclusion_summary,
    filter_factor_count,
    show_code,
    total_count,
    validate_blueprint,
)

__all__ = [
    "Choice",
    "ResolvedModel",
    "ResolvedPipeline",
    "ResolvedReliability",
    "ResolvedStep",
    "Stage",
    "combined_mask",
    "filter_mask",
    "ExpandedGrid",
    "expand",
    "filter_exclusion_summary",
    "filter_factor_count",
    "show_code",
    "total_count",
    "validate_blueprint",
]
