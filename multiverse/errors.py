# multiverse/errors.py
"""
Custom Exceptions for Multiverse Analysis
-----------------------------------------

Structural errors (registration and expansion) abort the whole operation.
Execution errors are contained per pipeline by the executor and reported
through failed result records.
"""


class MultiverseError(Exception):
    """
    Base exception for all multiverse-related errors.
    """
    pass


class ValidationError(MultiverseError):
    """
    Raised when a decision registration is malformed or references
    columns that are not present in the dataset.
    """

    def __init__(self, message: str, missing_columns: list[str] | None = None):
        self.missing_columns = missing_columns or []
        super().__init__(message)


class TemplateBindingError(MultiverseError):
    """
    Raised at expansion time when a template references a placeholder
    with no matching variable group.
    """

    def __init__(self, group_name: str, placeholders: list[str]):
        self.group_name = group_name
        self.placeholders = placeholders
        message = (
            f"Decision group '{group_name}' references undefined "
            f"placeholder(s): {placeholders}"
        )
        super().__init__(message)


class EmptyDecisionGroupError(MultiverseError):
    """
    Raised at expansion time when a decision group has no alternatives.
    """

    def __init__(self, group_kind: str, group_name: str):
        self.group_kind = group_kind
        self.group_name = group_name
        super().__init__(
            f"Decision group '{group_name}' ({group_kind}) has no alternatives."
        )


class PipelineExecutionError(MultiverseError):
    """
    Raised when a stage of a single resolved pipeline fails.
    Caught by the executor and turned into a failed ResultRecord.
    """

    def __init__(self, stage: str, message: str = "", reason: str = "exception"):
        self.stage = stage
        self.reason = reason
        self.message = message or f"Stage '{stage}' failed."
        super().__init__(self.message)


class ModelTimeoutError(PipelineExecutionError, TimeoutError):
    """
    Raised when a model fit exceeds the configured wall-clock budget.
    """

    def __init__(self, timeout_sec: float):
        self.timeout_sec = timeout_sec
        super().__init__("model", f"Model fit exceeded {timeout_sec} seconds.", reason="timeout")
