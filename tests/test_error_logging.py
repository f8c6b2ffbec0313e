# tests/test_error_logging.py
"""
Tests for the structured failure logger.

Tests:
- Component and reason enums
- Pipeline failure and general error logging
- Error persistence to JSONL
- Error summary generation
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from multiverse.monitoring.error_logging import (
    ErrorComponent,
    ErrorLogger,
    FailureReason,
    create_component_logger,
)


class TestEnums:
    """Test enum values."""

    def test_runner_component(self):
        """Runner should be registered."""
        assert ErrorComponent.RUNNER.value == "runner"

    def test_timeout_reason(self):
        """Timeout should be a valid reason."""
        assert FailureReason.TIMEOUT.value == "timeout"

    def test_reason_lookup_by_value(self):
        """Reasons round-trip from the strings stored on result records."""
        assert FailureReason("missing_column") is FailureReason.MISSING_COLUMN


class TestErrorLogger:
    """Test ErrorLogger class."""

    def test_initialization(self):
        """ErrorLogger should initialize with component."""
        errors = ErrorLogger(component=ErrorComponent.EXECUTOR)
        assert errors.component == ErrorComponent.EXECUTOR
        assert errors.error_count == 0
        assert errors.failure_count == 0
        assert errors.error_history == []
        assert errors.error_log_path is None

    def test_log_failure(self, caplog):
        """log_failure should record the pipeline failure and warn."""
        errors = ErrorLogger(component=ErrorComponent.RUNNER)

        with caplog.at_level("WARNING"):
            errors.log_failure(
                decision_id=7,
                stage="model",
                reason=FailureReason.TIMEOUT,
                message="Model fit exceeded 5 seconds.",
                context={"model:model": "linear"},
            )

        assert errors.failure_count == 1
        record = errors.error_history[0]
        assert record["decision_id"] == 7
        assert record["reason"] == "timeout"
        assert record["context"]["model:model"] == "linear"
        assert "Pipeline 7 failed at stage 'model'" in caplog.text

    def test_reason_counts(self):
        errors = ErrorLogger(component=ErrorComponent.RUNNER)
        errors.log_failure(1, "model", FailureReason.TIMEOUT)
        errors.log_failure(2, "model", FailureReason.TIMEOUT)
        errors.log_failure(3, "filter", FailureReason.MISSING_COLUMN)
        assert errors.reason_counts == {"timeout": 2, "missing_column": 1}

    def test_log_error_with_exception(self):
        """log_error should capture exception details."""
        errors = ErrorLogger(component=ErrorComponent.UNPACKER)

        errors.log_error(
            error_msg="Could not unpack fitted model",
            exception=RuntimeError("bad model"),
            severity="error",
        )

        assert errors.error_count == 1
        record = errors.error_history[0]
        assert record["exception_type"] == "RuntimeError"
        assert record["severity"] == "error"

    def test_get_error_summary(self):
        """get_error_summary should return statistics."""
        errors = ErrorLogger(component=ErrorComponent.RUNNER)

        errors.log_error("Error 1")
        errors.log_failure(1, "preprocess", FailureReason.EXCEPTION)
        errors.log_error("Error 2")

        summary = errors.get_error_summary()
        assert summary["component"] == "runner"
        assert summary["total_errors"] == 2
        assert summary["total_failures"] == 1
        assert summary["by_reason"] == {"exception": 1}
        assert len(summary["recent_errors"]) == 3

    def test_error_history_limited_to_10(self):
        """get_error_summary should return only last 10 errors."""
        errors = ErrorLogger(component=ErrorComponent.EXECUTOR)

        for i in range(15):
            errors.log_error(f"Error {i}")

        summary = errors.get_error_summary()
        assert len(summary["recent_errors"]) == 10
        assert "Error 14" in summary["recent_errors"][-1]["message"]

    def test_clear_history(self):
        """clear_history should empty error history and reset counters."""
        errors = ErrorLogger(component=ErrorComponent.EXECUTOR)
        errors.log_failure(1, "model", FailureReason.NON_CONVERGENCE)
        errors.log_error("Reliability could not be computed")
        errors.clear_history()
        assert errors.error_history == []
        assert errors.reason_counts == {}
        summary = errors.get_error_summary()
        assert summary["total_errors"] == 0
        assert summary["total_failures"] == 0

    def test_string_reason(self):
        """Backend-specific reasons are counted under their own name."""
        errors = ErrorLogger(component=ErrorComponent.RUNNER)
        errors.log_failure(1, "model", "singular")
        errors.log_failure(2, "model", FailureReason.TIMEOUT)
        assert errors.get_error_summary()["by_reason"] == {"singular": 1, "timeout": 1}
        assert errors.error_history[0]["reason"] == "singular"

    def test_persist_to_jsonl(self, tmp_path):
        """Failures are appended to the configured JSONL file."""
        path = tmp_path / "logs" / "failed.jsonl"
        errors = ErrorLogger(component=ErrorComponent.RUNNER, log_path=str(path))

        errors.log_failure(1, "model", FailureReason.TIMEOUT)
        errors.log_failure(2, "filter", FailureReason.MISSING_COLUMN)

        lines = path.read_text().splitlines()
        assert [json.loads(line)["decision_id"] for line in lines] == [1, 2]

    @patch("builtins.open", create=True)
    def test_persist_error_uses_append_mode(self, mock_open, tmp_path):
        """_persist_error should open the file in append mode."""
        errors = ErrorLogger(component=ErrorComponent.RUNNER, log_path=str(tmp_path / "e.jsonl"))

        mock_file = MagicMock()
        mock_open.return_value.__enter__.return_value = mock_file

        errors._persist_error({"component": "runner", "message": "Test error"})

        assert mock_open.call_args[0][1] == "a"
        written_json = mock_file.write.call_args[0][0]
        assert json.loads(written_json)["component"] == "runner"

    def test_no_file_without_path(self, tmp_path, monkeypatch):
        """Nothing is written when no log path is configured."""
        monkeypatch.chdir(tmp_path)
        errors = ErrorLogger(component=ErrorComponent.RUNNER)
        errors.log_failure(1, "model", FailureReason.TIMEOUT)
        assert list(tmp_path.iterdir()) == []


class TestCreateComponentLogger:
    """Test create_component_logger factory function."""

    def test_creates_error_logger_with_component(self):
        errors = create_component_logger(ErrorComponent.EXPANDER)
        assert isinstance(errors, ErrorLogger)
        assert errors.component == ErrorComponent.EXPANDER

    def test_multiple_loggers_independent(self):
        """Multiple loggers should be independent."""
        first = create_component_logger(ErrorComponent.RUNNER)
        second = create_component_logger(ErrorComponent.UNPACKER)

        first.log_error("Error 1")
        second.log_error("Error 2")

        assert first.error_count == 1
        assert second.error_count == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
