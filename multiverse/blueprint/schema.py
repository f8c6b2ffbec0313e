"""Dataset schema snapshot used for fail-fast decision validation."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
import logging

import pandas as pd

from multiverse.blueprint.templates import referenced_names
from multiverse.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetSchema:
    """Column names and dtypes of the base dataset at blueprint creation."""
    columns: Tuple[str, ...]
    dtypes: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    n_rows: int = 0

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "DatasetSchema":
        """Snapshot a DataFrame's schema.

        Args:
            df: Source dataset

        Returns:
            DatasetSchema for the frame
        """
        columns = tuple(str(c) for c in df.columns)
        dtypes = {str(c): str(t) for c, t in df.dtypes.items()}
        return cls(columns=columns, dtypes=dtypes, n_rows=len(df))

    def validate_column_existence(self, expected_columns: List[str]) -> Dict[str, Any]:
        """Check if all expected columns exist.

        Args:
            expected_columns: List of expected column names

        Returns:
            Dictionary with validation result
        """
        missing_columns = sorted(set(expected_columns) - set(self.columns))
        return {
            "valid": len(missing_columns) == 0,
            "missing_columns": missing_columns,
            "message": f"Missing columns: {missing_columns}" if missing_columns else "All columns present"
        }

    def validate_predicate(self, predicate: str) -> List[str]:
        """Validate that a filter predicate parses and reads only known columns.

        Args:
            predicate: Boolean expression over dataset columns

        Returns:
            Sorted list of referenced columns

        Raises:
            ValidationError: If the predicate is empty, cannot be parsed, or
                references unknown columns
        """
        if not isinstance(predicate, str) or not predicate.strip():
            raise ValidationError("Filter predicate must be a non-empty string.")

        try:
            names = referenced_names(predicate)
        except SyntaxError as exc:
            raise ValidationError(f"Filter predicate '{predicate}' is not a valid expression: {exc.msg}") from exc

        check = self.validate_column_existence(list(names))
        if not check["valid"]:
            logger.error(f"Filter predicate '{predicate}' rejected: {check['message']}")
            raise ValidationError(
                f"Filter predicate '{predicate}' references unknown column(s): {check['missing_columns']}",
                missing_columns=check["missing_columns"],
            )
        return sorted(names)
