"""Logging configuration utilities."""

import logging
import logging.config
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional, Union

import yaml

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_CONFIG_ENV_KEY = "DIRCONFIG_LOG_CFG"


def setup_logging(
    config_path: Optional[Union[str, Path]] = None,
    default_level: Union[int, str] = logging.INFO,
    env_key: str = LOG_CONFIG_ENV_KEY,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Setup logging configuration.

    A YAML ``dictConfig`` file is used when one is given or named by the
    ``env_key`` environment variable; otherwise a console handler (and an
    optional rotating file handler) is installed on the root logger.

    Args:
        config_path: Path to a YAML logging configuration file
        default_level: Level for the default configuration
        env_key: Environment variable naming a logging configuration file
        log_file: Optional log file for the default configuration
    """
    if isinstance(default_level, str):
        default_level = getattr(logging, default_level.upper(), logging.INFO)

    if config_path is None:
        config_path = os.getenv(env_key)

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as config_file:
                    config = yaml.safe_load(config_file)
                logging.config.dictConfig(config)
                return
            except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
                print(
                    f"Error loading logging configuration from {config_path}: {e}",
                    file=sys.stderr,
                )
                print("Using default logging configuration", file=sys.stderr)
        else:
            print(
                f"Logging config file {config_path} not found. Using default configuration.",
                file=sys.stderr,
            )

    _setup_default_logging(default_level, log_file)


def _setup_default_logging(level: int, log_file: Optional[Union[str, Path]]) -> None:
    formatter = logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
