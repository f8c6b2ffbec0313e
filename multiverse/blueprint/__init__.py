"""Decision registry: blueprint builder, decision types and column selectors."""

from .decisions import Alternative, DecisionGroup, GroupKind, FILTER_APPLY, FILTER_SKIP
from .blueprint import Blueprint
from .schema import DatasetSchema
from .selectors import contains, ends_with, matches, one_of, select_columns, starts_with
from .loader import blueprint_from_dict, load_blueprint, parse_selector

__all__ = [
    "Alternative",
    "DecisionGroup",
    "GroupKind",
    "FILTER_APPLY",
    "FILTER_SKIP",
    "Blueprint",
    "DatasetSchema",
    "contains",
    "ends_with",
    "matches",
    "one_of",
    "select_columns",
    "starts_with",
    "blueprint_from_dict",
    "load_blueprint",
    "parse_selector",
]
