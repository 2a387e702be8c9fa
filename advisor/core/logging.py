"""
logging.py — Application-Wide Logging Configuration

Purpose:
- One pipe-separated format for the ingestion core and scripts:
  timestamp | level | module | message
- Keep HTTP library chatter (urllib3 connection-pool lines) out of INFO runs
  so per-filing progress stays readable; `--log-level DEBUG` lets it through.
"""

import logging
from typing import Iterable

# -----------------------------------------------------------------------------
# Log Format
# -----------------------------------------------------------------------------

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

NOISY_LOGGERS = ("urllib3", "charset_normalizer")

# -----------------------------------------------------------------------------
# Root Logger Initialization
# -----------------------------------------------------------------------------

def resolve_level(level: str) -> int:
    """Map a level name ("debug", "INFO", ...) to its number; unknown names mean INFO."""
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: str = "INFO", quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """
    Configure root logging settings.

    Parameters:
        level (str): "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
        quiet: loggers held at WARNING unless `level` is DEBUG

    Should be called ONCE, typically from a script's `main()`.
    """
    numeric = resolve_level(level)
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)

    library_level = numeric if numeric <= logging.DEBUG else max(numeric, logging.WARNING)
    for name in quiet:
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(__name__).info("Logging initialized with level %s", logging.getLevelName(numeric))

# -----------------------------------------------------------------------------
# Logger Access Helper
# -----------------------------------------------------------------------------

def get_logger(name: str) -> logging.Logger:
    """
    Return a logger instance to be used in any module.

        from advisor.core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)
