# multiverse/execution/records.py
"""Result records produced by the executor, one per resolved pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class Status(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ResultRecord:
    """
    Outcome of running one resolved pipeline.

    Attributes:
        decision_id: Id of the pipeline this record belongs to.
        status: success, failed or cancelled.
        decisions: Decision column -> chosen label, for joining results back.
        n_rows: Row count after filtering (None if filtering never completed).
        model: Fitted model artifact, opaque to the engine.
        postprocess: Postprocess name -> output.
        reliabilities: Reliability name -> {alpha, n_items, n_obs, items}.
        failed_stage: Stage that failed, for failed/cancelled records.
        reason: Failure reason (timeout, missing_column, exception ...).
        error: Captured error message.
        duration_sec: Wall-clock time spent on the pipeline.
        backend: Backend that produced ``model``; used to unpack it.
    """
    decision_id: int
    status: Status
    decisions: Dict[str, str] = field(default_factory=dict)
    n_rows: Optional[int] = None
    model: Any = field(default=None, repr=False)
    postprocess: Dict[str, Any] = field(default_factory=dict)
    reliabilities: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    failed_stage: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    duration_sec: float = 0.0
    backend: Any = field(default=None, repr=False, compare=False)

    @property
    def succeeded(self) -> bool:
        return self.status is Status.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status is Status.FAILED
