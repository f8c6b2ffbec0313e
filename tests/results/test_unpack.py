"""Tests for result unpacking and aggregation."""

import numpy as np
import pandas as pd
import pytest

from multiverse.execution.records import ResultRecord, Status
from multiverse.execution.runner import run_multiverse
from multiverse.expansion.expander import expand
from multiverse.results.unpack import (
    condense,
    failure_summary,
    proportion_below,
    reveal,
    reveal_postprocess,
    reveal_reliabilities,
)


@pytest.fixture
def results(blueprint):
    """12 pipelines; the 'broken' model fails in every pipeline it appears in."""
    bp = (
        blueprint.add_filters("noise < 2")
        .add_variables("iv", "^iv")
        .add_model("linear", "y ~ {iv}")
        .add_model("broken", "y ~ {iv} + not_a_column")
        .add_postprocess("skew", "residual_skewness(model)")
        .add_reliabilities("scale", "^item")
    )
    return run_multiverse(expand(bp))


class TestReveal:
    """Test parameter and performance tables."""

    def test_wide_parameters(self, results):
        table = reveal(results)
        ok = table[table.status == "success"]
        assert len(ok) == 6 * 2
        assert set(ok["parameter"]) == {"Intercept", "iv1", "iv2", "iv3"}
        for column in ["coefficient", "std_error", "conf_low", "conf_high", "p_value"]:
            assert column in table.columns
        assert {"filter:noise < 2", "variable:iv", "model:model"} <= set(table.columns)

    def test_failed_records_give_null_rows(self, results):
        """Failed pipelines appear once with null statistics and their status."""
        table = reveal(results)
        failed = table[table.status == "failed"]
        assert len(failed) == 6
        assert failed["coefficient"].isna().all()
        assert (failed["failed_stage"] == "model").all()
        assert set(failed["decision_id"]) == {r.decision_id for r in results if r.failed}

    def test_selector(self, results):
        """Selectors filter parameters but keep null rows."""
        table = reveal(results, selector=["iv1"])
        assert set(table["parameter"].dropna()) == {"iv1"}
        regex = reveal(results, selector="^iv")
        assert "Intercept" not in set(regex["parameter"].dropna())
        assert (regex.status == "failed").sum() == 6

    def test_long_mode(self, results):
        """Long mode gives one row per decision group."""
        wide = reveal(results)
        long = reveal(results, unpack_mode="long")
        assert len(long) == len(wide) * 4
        assert list(long.columns[:4]) == ["decision_id", "decision_kind", "decision_group", "decision_value"]
        assert set(long["decision_kind"]) == {"filter", "variable", "model", "postprocess"}
        first = long[long.decision_id == 1].drop_duplicates("decision_group")
        assert first["decision_group"].tolist() == ["noise < 2", "iv", "model", "postprocess"]

    def test_performance(self, results):
        table = reveal(results, which="performance")
        assert len(table) == 12
        ok = table[table.status == "success"]
        assert ok["r_squared"].notna().all()
        assert ok["nobs"].max() == 500

    def test_invalid_arguments(self, results):
        with pytest.raises(ValueError):
            reveal(results, unpack_mode="diagonal")
        with pytest.raises(ValueError):
            reveal(results, which="everything")


class TestRevealAuxiliary:
    """Test postprocess and reliability tables."""

    def test_reveal_postprocess(self, results):
        table = reveal_postprocess(results)
        ok = table[table.status == "success"]
        assert len(ok) == 6
        assert (ok["postprocess"] == "skew").all()
        assert table[table.status == "failed"]["value"].isna().all()

    def test_reveal_reliabilities(self, results):
        """Reliabilities are reported for every pipeline that got past filtering."""
        table = reveal_reliabilities(results)
        assert len(table) == 12
        assert (table["reliability"] == "scale").all()
        assert (table["n_items"] == 4).all()
        skip_rows = table[table["filter:noise < 2"] == "skip"]
        assert (skip_rows["n_obs"] == 500).all()
        assert table["reliability_error"].isna().all()


class TestCondense:
    """Test condensing result tables."""

    def test_median_per_parameter(self, results):
        """One row per parameter present in the input."""
        table = reveal(results)
        condensed = condense(table, "coefficient", np.median)
        assert sorted(condensed["parameter"]) == ["Intercept", "iv1", "iv2", "iv3"]
        expected = table[table.parameter == "iv1"]["coefficient"].median()
        value = condensed.set_index("parameter").loc["iv1", "coefficient"]
        assert value == pytest.approx(expected)

    def test_absent_parameters_have_no_row(self, results):
        table = reveal(results, selector=["iv1", "iv2"])
        condensed = condense(table, "coefficient", "median")
        assert sorted(condensed["parameter"]) == ["iv1", "iv2"]

    def test_groupby_input(self, results):
        table = reveal(results)
        condensed = condense(table.groupby(["parameter", "filter:noise < 2"]), "p_value", "max")
        assert len(condensed) == 8
        assert {"parameter", "filter:noise < 2", "p_value"} <= set(condensed.columns)

    def test_mapping_of_reductions(self, results):
        table = reveal(results)
        condensed = condense(
            table,
            "p_value",
            {"median_p": "median", "share_significant": proportion_below(0.05)},
        )
        assert list(condensed.columns) == ["parameter", "median_p", "share_significant"]
        assert condensed.set_index("parameter").loc["iv1", "share_significant"] == 1.0

    def test_whole_table(self):
        table = pd.DataFrame({"value": [1.0, 2.0, 3.0, None]})
        condensed = condense(table, "value", np.mean)
        assert len(condensed) == 1
        assert condensed.loc[0, "value"] == pytest.approx(2.0)

    def test_by_argument(self, results):
        table = reveal(results, which="performance")
        condensed = condense(table, "r_squared", "mean", by="variable:iv")
        assert len(condensed) == 3

    def test_unknown_column(self):
        with pytest.raises(KeyError):
            condense(pd.DataFrame({"a": [1]}), "b", "mean")


def test_proportion_below():
    reduce = proportion_below(0.05)
    assert reduce(pd.Series([0.01, 0.2, 0.04, 0.5])) == 0.5
    assert np.isnan(reduce(pd.Series([], dtype=float)))
    assert reduce.__name__ == "proportion_below_0.05"


def test_failure_summary(results):
    summary = failure_summary(results)
    ok = summary[summary.status == "success"]
    failed = summary[summary.status == "failed"]
    assert ok["count"].sum() == 6
    assert failed["reason"].tolist() == ["exception"]
    assert sum(summary["count"]) == 12


def test_failure_summary_empty():
    assert failure_summary([]).empty


def test_reveal_cancelled_record():
    record = ResultRecord(decision_id=1, status=Status.CANCELLED, decisions={"model:model": "linear"})
    table = reveal([record])
    assert table.loc[0, "status"] == "cancelled"
    assert pd.isna(table.loc[0, "coefficient"])
