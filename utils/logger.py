"""
Logger Configuration
Unified logging setup
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler
from rich.console import Console


# Shared console instance
console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

ROOT_LOGGER_NAME = "run_completer"


def setup_logger(
    name: Optional[str] = None,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Configure a logger.

    Called once by the CLI with ``name=None`` so that every module-level
    ``logging.getLogger(__name__)`` logger inherits the handlers.

    Args:
        name: logger name (None configures the root logger)
        level: log level
        log_file: optional path of a plain-text log file
        use_rich: render console output with Rich

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid stacking handlers on repeated setup
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    if use_rich:
        console_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger, configuring it with defaults on first use.

    Args:
        name: logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers and not logging.getLogger().handlers:
        return setup_logger(name)

    return logger
