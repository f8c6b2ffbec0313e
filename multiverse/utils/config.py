import yaml
from typing import Any, Dict, Union
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML file whose top level is a mapping.

    Used for both run configs and blueprint descriptions.

    Args:
        config_path (str | Path): Path to the YAML file. ``~`` is expanded.

    Returns:
        Dict[str, Any]: Parsed mapping (empty dict for an empty file).

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If YAML parsing fails.
        ValueError: If the document is not a mapping.
    """
    path = Path(config_path).expanduser()
    if not path.is_file():
        logger.error(f"Config file not found: {config_path}")
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path, "r") as file:
            content = yaml.safe_load(file)
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file {path}: {e}")
        raise

    if content is None:
        content = {}
    if not isinstance(content, dict):
        raise ValueError(f"{path} must contain a mapping at top level, got {type(content).__name__}")

    logger.info(f"Loaded {len(content)} top-level key(s) from {path}")
    return content
