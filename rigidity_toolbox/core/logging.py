from __future__ import annotations
import sys
from loguru import logger
from .paths import logs_dir

def configure_logging(level: str = "INFO") -> None:
    """Application sinks: rotating file under the user data dir, console on stderr."""
    logger.remove()
    log_path = logs_dir() / "toolbox.log"
    logger.add(str(log_path), level="DEBUG", rotation="5 MB", retention=10, enqueue=True, backtrace=False, diagnose=False)
    logger.add(sys.stderr, level=level.upper())
