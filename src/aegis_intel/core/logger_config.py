"""
Logging setup for Aegis Intel.

A 'logging.yaml' dictConfig file takes precedence when present (its path can
be overridden with LOG_CFG). Otherwise structured JSON records are written to
stderr, keeping stdout free for command output.
"""

import logging
import logging.config
import os
import sys
from typing import Optional, Union

import yaml
from pythonjsonlogger import jsonlogger

JSON_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[str, int] = logging.INFO,
    config_path: Optional[str] = None,
    env_key: str = "LOG_CFG",
) -> None:
    """
    Configures the root logger.

    Args:
        level: Level name or number used by the fallback JSON configuration.
        config_path: dictConfig YAML file; defaults to $LOG_CFG or 'logging.yaml'.
        env_key: Environment variable naming the YAML file.
    """
    path = config_path or os.getenv(env_key, "logging.yaml")
    if os.path.exists(path):
        with open(path, "rt", encoding="utf-8") as f:
            logging.config.dictConfig(yaml.safe_load(f.read()))
        logging.getLogger(__name__).debug("Logging configured from %s", path)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        jsonlogger.JsonFormatter(JSON_LOG_FORMAT, rename_fields={"levelname": "level"})
    )
    logging.basicConfig(level=_resolve_level(level), handlers=[handler], force=True)
    logging.getLogger(__name__).debug("Using basic logging configuration with JSON output.")
