# multiverse/blueprint/blueprint.py
"""
Blueprint
---------

The accumulating, still-abstract representation of an analysis pipeline:
an ordered composition of decision groups over one base dataset.

Blueprints are immutable values. Every ``add_*`` call returns a new
Blueprint, so partially built blueprints can be shared and branched:

    base = Blueprint.from_dataset(df).add_filters("noise < 2")
    a = base.add_model("linear", "y ~ x")
    b = base.add_model("linear", "y ~ x + z")   # base is unchanged

Registration validates what can be checked against the dataset schema
(filter columns, explicit variable lists). Placeholder bindings are checked
at expansion, so decisions may be added in any order.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

import pandas as pd

from multiverse.blueprint.decisions import (
    FACTOR_ORDER,
    FILTER_APPLY,
    FILTER_SKIP,
    Alternative,
    DecisionGroup,
    GroupKind,
)
from multiverse.blueprint.schema import DatasetSchema
from multiverse.blueprint.selectors import ColumnSelector, select_columns
from multiverse.errors import ValidationError
from multiverse.monitoring.error_logging import ErrorComponent, create_component_logger

logger = logging.getLogger(__name__)
error_logger = create_component_logger(ErrorComponent.REGISTRY)


@dataclass(frozen=True)
class Blueprint:
    """
    Ordered decision groups plus a reference to the base dataset.

    Usage:
        bp = (Blueprint.from_dataset(df)
              .add_filters("noise < 2", "age >= 18")
              .add_variables("iv", starts_with("iv"))
              .add_preprocess("center", "data.assign(x_c=data.x - data.x.mean())")
              .add_model("linear", "y ~ {iv} + x_c"))
    """

    dataset: pd.DataFrame = field(repr=False, compare=False)
    schema: DatasetSchema
    groups: Tuple[DecisionGroup, ...] = ()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dataset(cls, dataset: pd.DataFrame) -> "Blueprint":
        """Create an empty blueprint over ``dataset``."""
        if not isinstance(dataset, pd.DataFrame):
            raise ValidationError("Blueprint dataset must be a pandas DataFrame.")
        schema = DatasetSchema.from_frame(dataset)
        logger.info(
            "Blueprint created over dataset with %d rows and %d columns",
            schema.n_rows, len(schema.columns),
        )
        return cls(dataset=dataset, schema=schema)

    def _append(self, group: DecisionGroup) -> "Blueprint":
        if self.find_group(group.group_kind, group.group_name) is not None:
            msg = f"Decision group already registered: {group.column}"
            error_logger.log_error(msg, severity="error")
            raise ValidationError(msg)
        return replace(self, groups=self.groups + (group,))

    def _add_alternative(
        self, kind: GroupKind, group_name: str, alternative: Alternative
    ) -> "Blueprint":
        """Append ``alternative`` to the (kind, group_name) group, creating it if needed."""
        existing = self.find_group(kind, group_name)
        if existing is None:
            return self._append(DecisionGroup(kind, group_name, (alternative,)))

        if alternative.alternative_id in existing.alternative_ids():
            msg = (
                f"Alternative '{alternative.alternative_id}' already registered "
                f"in {existing.column}"
            )
            error_logger.log_error(msg, severity="error", context={"group": existing.column})
            raise ValidationError(msg)

        updated = existing.with_alternative(alternative)
        groups = tuple(updated if g is existing else g for g in self.groups)
        return replace(self, groups=groups)

    # ------------------------------------------------------------------
    # Registration API
    # ------------------------------------------------------------------

    def add_filters(self, *predicates: str, required: bool = False) -> "Blueprint":
        """
        Register each predicate as its own two-way decision (apply / skip).

        Args:
            *predicates: Boolean expressions over dataset columns, in
                ``DataFrame.eval`` syntax (backticks quote odd column names).
            required: If True the predicate is always applied (single alternative).

        Raises:
            ValidationError: If a predicate cannot be parsed or references
                a column missing from the dataset.
        """
        if not predicates:
            raise ValidationError("add_filters() needs at least one predicate.")

        blueprint = self
        for predicate in predicates:
            predicate = predicate.strip() if isinstance(predicate, str) else predicate
            columns = self.schema.validate_predicate(predicate)

            alternatives = [
                Alternative(FILTER_APPLY, predicate, predicate, {"columns": columns})
            ]
            if not required:
                alternatives.append(Alternative(FILTER_SKIP, FILTER_SKIP, ""))

            group = DecisionGroup(
                GroupKind.FILTER, predicate, tuple(alternatives), required=required
            )
            blueprint = blueprint._append(group)
            logger.info("Added filter decision: %s (required=%s)", predicate, required)
        return blueprint

    def add_variables(self, group_name: str, column_selector: ColumnSelector) -> "Blueprint":
        """
        Register a variable decision whose alternatives are the matched columns.

        ``group_name`` becomes a ``{group_name}`` placeholder usable in
        preprocess, model and postprocess templates.
        """
        if not isinstance(group_name, str) or not group_name.isidentifier():
            raise ValidationError(
                f"Variable group name must be a valid identifier, got {group_name!r}"
            )

        matched = select_columns(self.schema.columns, column_selector)
        alternatives = tuple(Alternative(col, col, col) for col in matched)
        if not matched:
            logger.warning("Variable group '%s' matched no columns", group_name)

        blueprint = self._append(DecisionGroup(GroupKind.VARIABLE, group_name, alternatives))
        logger.info("Added variable decision: %s -> %s", group_name, matched)
        return blueprint

    def add_preprocess(
        self, name: str, code_template: str, group: str = GroupKind.PREPROCESS.value
    ) -> "Blueprint":
        """
        Register a preprocessing alternative.

        ``code_template`` is a Python expression evaluated with ``data``
        (the pipeline-local frame), ``np`` and ``pd`` in scope; it must
        evaluate to a DataFrame.
        """
        self._check_template(name, code_template)
        alternative = Alternative(name, name, code_template)
        blueprint = self._add_alternative(GroupKind.PREPROCESS, group, alternative)
        logger.info("Added preprocess alternative: %s (group=%s)", name, group)
        return blueprint

    def add_model(
        self,
        name: str,
        formula: str,
        method: str = "ols",
        model_kwargs: Optional[Dict[str, Any]] = None,
        fit_kwargs: Optional[Dict[str, Any]] = None,
    ) -> "Blueprint":
        """
        Register a model alternative.

        Args:
            name: Alternative name, unique within its group.
            formula: Patsy-style formula template, e.g. ``"y ~ {iv} + age"``.
            method: Backend model method (``ols``, ``glm``, ``mixedlm`` ...).
            model_kwargs: Extra model constructor arguments. String values may
                contain placeholders (``{"groups": "{cluster}"}``).
            fit_kwargs: Arguments forwarded to ``fit()`` (e.g. ``maxiter``).
        """
        self._check_template(name, formula)
        if not isinstance(method, str) or not method:
            raise ValidationError(f"Model '{name}' needs a method name.")
        alternative = Alternative(
            name,
            name,
            formula,
            {
                "method": method,
                "model_kwargs": dict(model_kwargs or {}),
                "fit_kwargs": dict(fit_kwargs or {}),
            },
        )
        blueprint = self._add_alternative(GroupKind.MODEL, GroupKind.MODEL.value, alternative)
        logger.info("Added model alternative: %s [%s] %s", name, method, formula)
        return blueprint

    def add_postprocess(
        self, name: str, code_template: str, group: str = GroupKind.POSTPROCESS.value
    ) -> "Blueprint":
        """
        Register a post-processing alternative.

        ``code_template`` is a Python expression evaluated with ``model``
        (the fitted artifact), ``data`` and the post-processing helpers in
        scope; its value is recorded under ``name``.
        """
        self._check_template(name, code_template)
        alternative = Alternative(name, name, code_template)
        blueprint = self._add_alternative(GroupKind.POSTPROCESS, group, alternative)
        logger.info("Added postprocess alternative: %s (group=%s)", name, group)
        return blueprint

    def add_reliabilities(
        self, variable_group_name: str, columns_selector: ColumnSelector
    ) -> "Blueprint":
        """
        Register a non-branching internal-consistency computation over the
        selected item columns, reported under ``variable_group_name``.

        ``variable_group_name`` is a free label naming the scale in results.
        It does not have to match a variable group registered with
        ``add_variables``; the selected item columns alone define the scale,
        so alpha is computed once per pipeline whatever variables it chose.

        Raises:
            ValidationError: If fewer than two item columns are selected.
        """
        items = select_columns(self.schema.columns, columns_selector)
        if len(items) < 2:
            raise ValidationError(
                f"Reliability '{variable_group_name}' needs at least two item columns, got {items}"
            )
        alternative = Alternative(
            variable_group_name, variable_group_name, "", {"items": items}
        )
        blueprint = self._append(
            DecisionGroup(GroupKind.RELIABILITY, variable_group_name, (alternative,))
        )
        logger.info("Added reliability: %s over %s", variable_group_name, items)
        return blueprint

    @staticmethod
    def _check_template(name: str, template: str) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Decision name must be a non-empty string.")
        if not isinstance(template, str) or not template.strip():
            raise ValidationError(f"Decision '{name}' needs a non-empty code template.")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def find_group(self, kind: GroupKind, group_name: str) -> Optional[DecisionGroup]:
        for group in self.groups:
            if group.group_kind is kind and group.group_name == group_name:
                return group
        return None

    def groups_of(self, kind: GroupKind) -> List[DecisionGroup]:
        """Groups of one kind in registration order."""
        return [g for g in self.groups if g.group_kind is kind]

    def factor_groups(self) -> List[DecisionGroup]:
        """Branching groups in deterministic expansion order."""
        ordered: List[DecisionGroup] = []
        for kind in FACTOR_ORDER:
            ordered.extend(self.groups_of(kind))
        return ordered

    def variable_names(self) -> List[str]:
        return [g.group_name for g in self.groups_of(GroupKind.VARIABLE)]

    def __iter__(self) -> Iterable[DecisionGroup]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)
