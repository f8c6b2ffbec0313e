"""Tests for placeholder templates, column selectors and the schema snapshot."""

import pandas as pd
import pytest

from multiverse.blueprint.schema import DatasetSchema
from multiverse.blueprint.selectors import (
    contains,
    ends_with,
    matches,
    one_of,
    select_columns,
    starts_with,
)
from multiverse.blueprint.templates import find_placeholders, referenced_names, substitute
from multiverse.errors import ValidationError

COLUMNS = ["y", "iv1", "iv2", "age", "item_a", "item_b"]


class TestTemplates:
    """Test placeholder parsing and substitution."""

    def test_find_placeholders_in_order(self):
        assert find_placeholders("y ~ {iv} + {cov} + {iv}") == ["iv", "cov"]

    def test_escaped_braces_are_not_placeholders(self):
        assert find_placeholders("{{literal}} ~ {iv}") == ["iv"]

    def test_substitute(self):
        """Placeholders are replaced and escapes unescaped."""
        assert substitute("y ~ {iv}", {"iv": "iv1"}) == "y ~ iv1"
        assert substitute("{{x}} {iv}", {"iv": "iv2"}) == "{x} iv2"

    def test_dict_literals_untouched(self):
        template = "data.rename(columns={'a': 'b'})"
        assert find_placeholders(template) == []
        assert substitute(template, {}) == template

    def test_nested_dict_literals_untouched(self):
        """Closing braces of nested dicts are kept next to placeholders."""
        template = "data.replace({'{iv}': {1: 1}}).assign(z={'g': {0: {}}})"
        assert find_placeholders(template) == ["iv"]
        assert substitute(template, {"iv": "iv1"}) == "data.replace({'iv1': {1: 1}}).assign(z={'g': {0: {}}})"

    def test_unbound_placeholder_raises(self):
        with pytest.raises(KeyError):
            substitute("y ~ {iv}", {})

    def test_referenced_names(self):
        """Columns are read; function names and attributes are not."""
        assert referenced_names("abs(noise) < 2 & age.between(18, 65)") == {"noise", "age"}

    def test_backtick_names(self):
        assert referenced_names("`my col` > 1") == {"my col"}

    def test_referenced_names_syntax_error(self):
        with pytest.raises(SyntaxError):
            referenced_names("age >")


class TestSelectors:
    """Test column selectors."""

    def test_helpers(self):
        assert select_columns(COLUMNS, starts_with("iv")) == ["iv1", "iv2"]
        assert select_columns(COLUMNS, ends_with("_b")) == ["item_b"]
        assert select_columns(COLUMNS, contains("tem")) == ["item_a", "item_b"]
        assert select_columns(COLUMNS, matches(r"\d$")) == ["iv1", "iv2"]

    def test_one_of_is_explicit_list(self):
        assert select_columns(COLUMNS, one_of("age", "y")) == ["age", "y"]

    def test_invalid_regex_raises(self):
        with pytest.raises(ValidationError):
            select_columns(COLUMNS, "iv[")

    def test_unsupported_selector_raises(self):
        with pytest.raises(ValidationError):
            select_columns(COLUMNS, 42)


class TestDatasetSchema:
    """Test the schema snapshot."""

    def test_from_frame(self):
        df = pd.DataFrame({"A": [1, 2, 3], "B": [0.1, 0.2, 0.3]})
        schema = DatasetSchema.from_frame(df)
        assert schema.columns == ("A", "B")
        assert schema.n_rows == 3
        assert schema.dtypes["B"] == "float64"

    def test_validate_column_existence_missing(self):
        """Column existence validation reports every missing column."""
        schema = DatasetSchema(columns=("A",))
        result = schema.validate_column_existence(["A", "B", "C"])
        assert result["valid"] is False
        assert result["missing_columns"] == ["B", "C"]

    def test_validate_predicate(self):
        schema = DatasetSchema(columns=("age", "noise"))
        assert schema.validate_predicate("age > 18 and noise < 2") == ["age", "noise"]
        with pytest.raises(ValidationError):
            schema.validate_predicate("")
