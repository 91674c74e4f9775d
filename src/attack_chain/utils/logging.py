"""Logging setup for the attack chain engine."""

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "attack_chain"

_COLORS = {
    logging.DEBUG: "\033[36m",      # cyan
    logging.INFO: "\033[32m",       # green
    logging.WARNING: "\033[33m",    # yellow
    logging.ERROR: "\033[31m",      # red
    logging.CRITICAL: "\033[1;31m", # bold red
}
_RESET = "\033[0m"

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class ColorFormatter(logging.Formatter):
    """Wraps the level name in an ANSI colour code."""

    def format(self, record: logging.LogRecord) -> str:
        color = _COLORS.get(record.levelno)
        if not color:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{color}{original}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    level: str | int = "INFO",
    log_file: Path | None = None,
    enable_color: bool = True,
) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: Log level name or number.
        log_file: Optional file that receives an uncoloured copy of the log.
        enable_color: Colour the level name on the console handler.

    Returns:
        The configured ``attack_chain`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level if isinstance(level, int) else level.upper())

    # Re-running setup replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    if enable_color and sys.stderr.isatty():
        console.setFormatter(ColorFormatter(LOG_FORMAT))
    else:
        console.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    logger.debug("Logging configured: level=%s file=%s color=%s", level, log_file, enable_color)
    return logger
