"""
Logging setup for the ExamGuard service

Console output is coloured by default; an optional rotating file keeps
plain-text history for post-exam review.
"""
import logging
import logging.handlers
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from .logging import ColoredFormatter

LOG_DIR = Path(__file__).resolve().parents[2] / "logs"

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(
    service_name: str = "examguard",
    level: str = "INFO",
    log_to_file: bool = False,
    log_dir: Optional[Path] = None,
    colored: bool = True,
) -> logging.Logger:
    """
    Configure the root logger for the service.

    Args:
        service_name: Logger name and log file prefix
        level: DEBUG, INFO, WARNING or ERROR
        log_to_file: Also write <service>_<date>.log (10MB x 5 rotation)
        log_dir: Where log files go (defaults to LOG_DIR)
        colored: ANSI colours on the console

    Returns:
        The service logger
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter() if colored else logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
    root.addHandler(console)

    log_file = None
    if log_to_file:
        directory = log_dir or LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / f"{service_name}_{date.today():%Y-%m-%d}.log"

        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        rotating.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
        root.addHandler(rotating)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(service_name)
    logger.info(f"Logging configured (level={level.upper()}, file={log_file or 'off'})")
    return logger
