"""
Logging setup for the service process.

One console handler and one rotating file handler are shared by every
service logger, so ``logstats.*`` module loggers and the ``backend`` HTTP
logger end up in the same ``logs/logstats.log``.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Iterable, List, Optional

from .config import config
from .exceptions import ConfigurationError

SERVICE_LOGGERS = ("logstats", "backend")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _build_handlers(level: str, log_file: Path) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    rotating = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    for handler in (console, rotating):
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return [console, rotating]


def setup_logging(
    level: Optional[str] = None,
    logger_names: Iterable[str] = SERVICE_LOGGERS,
    logs_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Attach console and rotating file output to the service loggers.

    Calling it again is a no-op for loggers that already have handlers.

    Args:
        level: Log level name (default: config.log_level)
        logger_names: Top-level logger names to configure
        logs_dir: Directory for logstats.log (default: config.logs_dir)

    Returns:
        The first configured logger

    Raises:
        ConfigurationError: If the level name is not a logging level
    """
    level = (level or config.log_level).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"Unknown log level: {level}")

    logs_dir = Path(logs_dir or config.logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    names = list(logger_names)
    pending = [logging.getLogger(name) for name in names if not logging.getLogger(name).handlers]
    if pending:
        handlers = _build_handlers(level, logs_dir / "logstats.log")
        for logger in pending:
            logger.setLevel(level)
            for handler in handlers:
                logger.addHandler(handler)
            logger.propagate = False

    return logging.getLogger(names[0])
