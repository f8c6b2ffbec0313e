# multiverse/blueprint/loader.py
"""
Build a Blueprint from a YAML description.

Example:

    filters:
      - "age >= 18"
      - predicate: "noise < 2"
        required: true
    variables:
      iv: {starts_with: "iv"}
    preprocess:
      - {name: raw, code: "data"}
    models:
      - {name: linear, formula: "y ~ {iv}", method: ols}
    postprocess:
      - {name: skew, code: "residual_skewness(model)"}
    reliabilities:
      scale: [item1, item2, item3]

Sections are applied in the order above; within a section, in file order.
"""

from typing import Any, Dict, List
import logging

import pandas as pd

from multiverse.blueprint.blueprint import Blueprint
from multiverse.blueprint.selectors import (
    ColumnSelector,
    contains,
    ends_with,
    matches,
    starts_with,
)
from multiverse.errors import ValidationError
from multiverse.utils.config import load_config

logger = logging.getLogger(__name__)

SECTIONS = ("filters", "variables", "preprocess", "models", "postprocess", "reliabilities")

SELECTOR_FACTORIES = {
    "starts_with": starts_with,
    "ends_with": ends_with,
    "contains": contains,
    "matches": matches,
}


def parse_selector(selector: Any) -> ColumnSelector:
    """
    Turn a YAML selector into a column selector.

    Accepts a regex string, a list of column names, or a one-key mapping
    such as ``{starts_with: "iv"}`` or ``{one_of: [a, b]}``.
    """
    if isinstance(selector, str):
        return selector
    if isinstance(selector, list):
        return [str(c) for c in selector]
    if isinstance(selector, dict) and len(selector) == 1:
        (kind, value), = selector.items()
        if kind == "one_of":
            return [str(c) for c in value]
        if kind in SELECTOR_FACTORIES:
            return SELECTOR_FACTORIES[kind](str(value))
    raise ValidationError(f"Unsupported column selector: {selector!r}")


def _entries(config: Dict[str, Any], section: str) -> List[Any]:
    entries = config.get(section) or []
    if not isinstance(entries, list):
        raise ValidationError(f"Blueprint section '{section}' must be a list")
    return entries


def _require(entry: Any, section: str, *keys: str) -> None:
    if not isinstance(entry, dict) or any(k not in entry for k in keys):
        raise ValidationError(f"Each '{section}' entry needs keys {list(keys)}, got {entry!r}")


def blueprint_from_dict(config: Dict[str, Any], dataset: pd.DataFrame) -> Blueprint:
    """Apply a parsed blueprint description to a fresh Blueprint over ``dataset``."""
    unknown = sorted(set(config) - set(SECTIONS))
    if unknown:
        raise ValidationError(f"Unknown blueprint section(s): {unknown}. Expected {list(SECTIONS)}")

    bp = Blueprint.from_dataset(dataset)

    for entry in _entries(config, "filters"):
        if isinstance(entry, str):
            bp = bp.add_filters(entry)
        else:
            _require(entry, "filters", "predicate")
            bp = bp.add_filters(entry["predicate"], required=bool(entry.get("required", False)))

    variables = config.get("variables") or {}
    if not isinstance(variables, dict):
        raise ValidationError("Blueprint section 'variables' must be a mapping")
    for group_name, selector in variables.items():
        bp = bp.add_variables(group_name, parse_selector(selector))

    for entry in _entries(config, "preprocess"):
        _require(entry, "preprocess", "name", "code")
        bp = bp.add_preprocess(entry["name"], entry["code"], group=entry.get("group", "preprocess"))

    for entry in _entries(config, "models"):
        _require(entry, "models", "name", "formula")
        bp = bp.add_model(
            entry["name"],
            entry["formula"],
            method=entry.get("method", "ols"),
            model_kwargs=entry.get("model_kwargs"),
            fit_kwargs=entry.get("fit_kwargs"),
        )

    for entry in _entries(config, "postprocess"):
        _require(entry, "postprocess", "name", "code")
        bp = bp.add_postprocess(entry["name"], entry["code"], group=entry.get("group", "postprocess"))

    reliabilities = config.get("reliabilities") or {}
    if not isinstance(reliabilities, dict):
        raise ValidationError("Blueprint section 'reliabilities' must be a mapping")
    for name, selector in reliabilities.items():
        bp = bp.add_reliabilities(name, parse_selector(selector))

    return bp


def load_blueprint(path: str, dataset: pd.DataFrame) -> Blueprint:
    """
    Load a YAML blueprint file and build it over ``dataset``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a YAML mapping.
        ValidationError: If the description is malformed.
    """
    config = load_config(path)
    bp = blueprint_from_dict(config, dataset)
    logger.info(f"Loaded blueprint from {path} with {len(bp)} decision groups")
    return bp
