# multiverse/utils/config_loader.py

from pydantic import BaseModel, Field
from typing import Optional
from multiverse.utils.config import load_config


# -------------------
# Pydantic Configs
# -------------------
class ExecutionConfig(BaseModel):
    n_workers: int = Field(default=1, ge=1)
    model_timeout_sec: Optional[float] = Field(default=None, gt=0)
    chunk_size: int = Field(default=50, ge=1)
    backend: str = "statsmodels"

class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None
    error_log: Optional[str] = None

class MultiverseConfig(BaseModel):
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# -------------------
# Functions
# -------------------
def load_typed_config(config_path: Optional[str] = None) -> MultiverseConfig:
    """
    Load and validate the run config as a typed Pydantic model.

    Args:
        config_path (str, optional): Path to YAML config file. If None,
            defaults are returned.

    Returns:
        MultiverseConfig: Typed configuration object.
    """
    if config_path is None:
        return MultiverseConfig()
    raw_config = load_config(config_path)
    return MultiverseConfig(**raw_config)
