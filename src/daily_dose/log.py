"""loguru sink setup for the console app."""
import sys
from typing import Optional

from loguru import logger


def configure_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """Replace loguru's default sink with stderr at ``level`` and an optional file."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{function} - {message}",
    )
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="1 MB", retention=5, encoding="utf-8")
