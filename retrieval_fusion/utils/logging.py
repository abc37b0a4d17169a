"""Logging configuration for the retrieval fusion core."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from ..config.settings import get_logging_config


APP_LOGGER_NAME = "retrieval_fusion"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_SIZE_UNITS = {"KB": 1024, "MB": 1024 ** 2, "GB": 1024 ** 3}


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    logger_name: Optional[str] = None,
    file_logging: Optional[bool] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the application logger from the ``logging`` config section.

    Explicit arguments override configuration. Module loggers created with
    ``logging.getLogger(__name__)`` inside the package inherit these handlers.

    Args:
        level: Log level name, case-insensitive
        format_string: Log format string
        logger_name: Logger to configure (defaults to 'retrieval_fusion')
        file_logging: Also write to a rotating log file
        log_file: Path of the rotating log file

    Returns:
        Configured logger instance
    """
    log_config = get_logging_config()

    log_level = getattr(logging, (level or log_config.get("level", "INFO")).upper())
    formatter = logging.Formatter(format_string or log_config.get("format", DEFAULT_FORMAT))
    if file_logging is None:
        file_logging = log_config.get("file_logging", False)

    logger = logging.getLogger(logger_name or APP_LOGGER_NAME)
    logger.setLevel(log_level)

    # Reconfiguring replaces earlier handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handlers = _build_handlers(
        log_config, file_logging, log_file or log_config.get("log_file", "logs/retrieval_fusion.log")
    )
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def _build_handlers(log_config: Dict[str, Any], file_logging: bool, log_file: str) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if file_logging:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=_parse_size(str(log_config.get("max_file_size", "10MB"))),
            backupCount=int(log_config.get("backup_count", 5))
        ))
    return handlers


def _parse_size(size_str: str) -> int:
    """Parse size string like '10MB' to bytes."""
    size_str = size_str.strip().upper()
    for suffix, multiplier in _SIZE_UNITS.items():
        if size_str.endswith(suffix):
            return int(size_str[:-len(suffix)]) * multiplier
    return int(size_str)


def get_logger(name: str) -> logging.Logger:
    """Logger nested under the application logger (``retrieval_fusion.<name>``)."""
    if name == APP_LOGGER_NAME or name.startswith(f"{APP_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


# Create default application logger
app_logger = setup_logging()


class LoggerMixin:
    """Gives a class a ``logger`` named after it."""

    @property
    def logger(self) -> logging.Logger:
        return get_logger(self.__class__.__name__)
