"""Loguru logging configuration.

Call setup_logging() once at application startup to configure sinks.
All other modules simply do `from loguru import logger` and log normally.
"""

import sys
from pathlib import Path

from loguru import logger

from posflow.config import PROJECT_ROOT

LOG_DIR = PROJECT_ROOT / "logs"


def setup_logging(level: str = "INFO", log_dir: Path | None = LOG_DIR) -> None:
    """Configure loguru with a stderr sink and, optionally, a rotating file sink.

    Args:
        level: Minimum log level.
        log_dir: Directory for checkout.log; None disables the file sink.
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> {extra}",
    )

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_dir / "checkout.log",
        level=level,
        rotation="1 day",
        retention="7 days",
        serialize=True,
    )
