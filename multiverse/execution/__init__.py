from .backends import (
    BACKENDS,
    PARAMETER_COLUMNS,
    PERFORMANCE_COLUMNS,
    ModelBackend,
    StatsmodelsBackend,
    get_backend,
    register_backend,
)
from .executor import PipelineExecutor, run_pipeline
from .records import ResultRecord, Status
from .runner import run_multiverse

__all__ = [
    "BACKENDS",
    "PARAMETER_COLUMNS",
    "PERFORMANCE_COLUMNS",
    "ModelBackend",
    "StatsmodelsBackend",
    "get_backend",
    "register_backend",
    "PipelineExecutor",
    "run_pipeline",
    "ResultRecord",
    "Status",
    "run_multiverse",
]
