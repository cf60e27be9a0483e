"""Logging configuration with Rich formatting.

setup_logging() is called once by each entry point (API, scripts). Module
loggers come from get_logger() and live under the "site_report" namespace.
"""

import logging
from typing import Optional
from rich.logging import RichHandler
from .config import get_settings

ROOT_LOGGER = "site_report"

# Libraries that log every request or image decode at INFO/DEBUG
_NOISY = ("httpx", "openai", "PIL", "multipart", "langfuse")

def setup_logging(level: Optional[str] = None):
    settings = get_settings()
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)]
    )

    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)

def get_logger(name: str) -> logging.Logger:
    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
