"""Logging configuration for page discovery."""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# HTTP and browser libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = (
    'httpx',
    'httpcore',
    'urllib3',
    'asyncio',
    'rebrowser_playwright',
)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    library_level: str = "WARNING",
    noisy_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure logging for a discovery run.

    Console output goes to stderr; discovery and link reports own stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path; parent directories are created
        format_string: Optional custom format string
        library_level: Level applied to ``noisy_loggers``
        noisy_loggers: Third-party loggers to quiet
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=numeric_level,
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    quiet_level = getattr(logging, library_level.upper(), logging.WARNING)
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(quiet_level)
