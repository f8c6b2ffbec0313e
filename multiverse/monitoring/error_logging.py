# multiverse/monitoring/error_logging.py
"""
Error Logging Framework for multiverse runs.

Failed pipelines are contained, never raised, so they must be reported
explicitly. ErrorLogger keeps a tagged, structured history of failures per
component and can persist it as JSONL next to a run's other outputs.
"""

import logging
from typing import Dict, Any, Optional, Union
from datetime import datetime, timezone
from pathlib import Path
import json
from enum import Enum


class ErrorComponent(Enum):
    """Component identifiers for error tracking and monitoring."""
    REGISTRY = "registry"
    EXPANDER = "expander"
    EXECUTOR = "executor"
    RUNNER = "runner"
    UNPACKER = "unpacker"


class FailureReason(Enum):
    """Why a pipeline did not produce a result."""
    MISSING_COLUMN = "missing_column"
    EXCEPTION = "exception"
    TIMEOUT = "timeout"
    NON_CONVERGENCE = "non_convergence"
    INVALID_OUTPUT = "invalid_output"
    CANCELLED = "cancelled"


class ErrorLogger:
    """
    Structured error logging with component tagging.

    Usage:
        errors = ErrorLogger(component=ErrorComponent.RUNNER)
        errors.log_failure(
            decision_id=12,
            stage="model",
            reason=FailureReason.TIMEOUT,
            message="Model fit exceeded 5 seconds.",
        )
        errors.get_error_summary()
    """

    def __init__(
        self,
        component: ErrorComponent,
        base_logger: Optional[logging.Logger] = None,
        log_path: Optional[str] = None,
    ):
        """
        Initialize error logger for a specific component.

        Args:
            component: ErrorComponent enum identifying the component
            base_logger: Optional logging.Logger to use (creates default if None)
            log_path: Optional JSONL file to append failure records to
        """
        self.component = component
        self.logger = base_logger or logging.getLogger(f"multiverse.errors.{component.value}")

        # Error statistics
        self.error_count = 0
        self.failure_count = 0
        self.error_history: list[Dict[str, Any]] = []
        self.reason_counts: Dict[str, int] = {}

        self.error_log_path = Path(log_path) if log_path else None
        if self.error_log_path is not None:
            self.error_log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_failure(
        self,
        decision_id: int,
        stage: Optional[str],
        reason: Union[FailureReason, str],
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log one failed pipeline.

        Args:
            decision_id: Id of the failed pipeline
            stage: Stage that failed (filter, preprocess, model, ...)
            reason: FailureReason, or a backend-specific reason string
            message: Error message captured from the stage
            context: Optional context dict (decision labels, row counts, ...)
        """
        reason = reason.value if isinstance(reason, FailureReason) else str(reason)
        self.failure_count += 1
        self.reason_counts[reason] = self.reason_counts.get(reason, 0) + 1

        error_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "component": self.component.value,
            "decision_id": decision_id,
            "stage": stage,
            "reason": reason,
            "message": message,
            "context": context or {},
        }
        self.error_history.append(error_record)

        self.logger.warning(
            f"[{self.component.value.upper()}] Pipeline {decision_id} failed "
            f"at stage '{stage}' ({reason}): {message}"
        )
        self._persist_error(error_record)

    def log_error(
        self,
        error_msg: str,
        exception: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
        severity: str = "warning",
    ) -> None:
        """
        Log a general error that is not tied to a single pipeline.

        Args:
            error_msg: Description of the error
            exception: Optional exception object
            context: Optional context dict
            severity: 'debug', 'info', 'warning', 'error', 'critical'
        """
        self.error_count += 1

        error_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "component": self.component.value,
            "message": error_msg,
            "exception_type": type(exception).__name__ if exception else None,
            "exception_message": str(exception) if exception else None,
            "context": context or {},
            "severity": severity,
        }
        self.error_history.append(error_record)

        log_func = getattr(self.logger, severity, self.logger.warning)
        context_str = ", ".join(f"{k}={v}" for k, v in (context or {}).items())
        log_func(f"[{self.component.value.upper()}] {error_msg} | Context: {context_str}")

        self._persist_error(error_record)

    def _persist_error(self, error_record: Dict[str, Any]) -> None:
        """Append error record to the JSONL error log, if one is configured."""
        if self.error_log_path is None:
            return
        try:
            with open(self.error_log_path, "a") as f:
                f.write(json.dumps(error_record, default=str) + "\n")
        except OSError as e:
            self.logger.error(f"Failed to write error log: {e}")

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary statistics of errors logged by this component."""
        return {
            "component": self.component.value,
            "total_errors": self.error_count,
            "total_failures": self.failure_count,
            "by_reason": dict(self.reason_counts),
            "recent_errors": self.error_history[-10:] if self.error_history else [],
        }

    def clear_history(self) -> None:
        """Clear in-memory error history and counters."""
        self.error_history.clear()
        self.reason_counts.clear()
        self.error_count = 0
        self.failure_count = 0


def create_component_logger(component: ErrorComponent, log_path: Optional[str] = None) -> ErrorLogger:
    """Create a component-specific error logger."""
    return ErrorLogger(component=component, log_path=log_path)
