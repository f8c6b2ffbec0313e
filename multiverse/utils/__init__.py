from .config import load_config
from .config_loader import ExecutionConfig, LoggingConfig, MultiverseConfig, load_typed_config
from .logger import configure_logging, get_logger

__all__ = [
    "load_config",
    "ExecutionConfig",
    "LoggingConfig",
    "MultiverseConfig",
    "load_typed_config",
    "configure_logging",
    "get_logger",
]
