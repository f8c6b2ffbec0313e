"""Structured failure tracking for multiverse runs."""

from .error_logging import ErrorComponent, ErrorLogger, FailureReason, create_component_logger

__all__ = [
    "ErrorComponent",
    "ErrorLogger",
    "FailureReason",
    "create_component_logger",
]
