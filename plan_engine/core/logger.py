"""Logger configuration for the plan engine.

Engine events are logged as a snake_case message plus keyword fields,
which loguru binds into ``record["extra"]``. Both sinks render them at the
end of the line.
"""

import sys
from pathlib import Path

from loguru import logger

_CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level> {extra}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message} {extra}"


def setup_logger(level: str = "INFO", log_file: str | None = None) -> None:
    """Replace loguru's default handler with the engine sinks.

    Args:
        level: Minimum level for every sink
        log_file: Optional file path; rotated at 10 MB
    """
    logger.remove()
    logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_path, format=_FILE_FORMAT, level=level, rotation="10 MB")
