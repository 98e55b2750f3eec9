"""Centralized logging configuration for docsearch."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from logging.handlers import RotatingFileHandler


# Third-party loggers that are excessively noisy at INFO level.
_NOISY_LOGGERS: tuple[str, ...] = (
    "duckdb",
    "urllib3",
)


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "INFO"
    file_enabled: bool = True
    file_path: str = "~/.docsearch/logs/docsearch.log"
    file_max_bytes: int = 10485760  # 10MB
    file_backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    use_rich_console: bool = True
    quiet_third_party: bool = True


def setup_logging(config: LogConfig) -> None:
    """
    Configure logging with file rotation and optional Rich console output.

    Args:
        config: Logging configuration
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))

    # Remove existing handlers
    root_logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    if config.file_enabled:
        log_path = Path(config.file_path).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if config.use_rich_console:
        from rich.logging import RichHandler

        console_handler: logging.Handler = RichHandler(rich_tracebacks=True)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)

    if config.quiet_third_party:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
