import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from filegate.errors import ConfigError
from filegate.schemas import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"


def load_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Read and validate the JSON config file. Any problem is a ConfigError."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Failed to load {path}: {exc}") from exc

    try:
        config = AppConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc

    logger.info("Loaded config from %s", path)
    return config
