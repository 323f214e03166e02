import logging
from pathlib import Path
from typing import Iterable

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
PACKAGE_LOGGERS = ("Remote", "Tools")


def configure_logging(
    log_path: Path | str,
    level: str | int = logging.INFO,
    logger_names: Iterable[str] = PACKAGE_LOGGERS,
) -> None:
    """Attach a file handler to the project loggers (once per process)."""
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    for name in logger_names:
        logger = logging.getLogger(name)
        if not logger.handlers:
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)
        logger.setLevel(level)
