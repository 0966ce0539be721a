from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Configure the package logger once per process.

    Subsequent calls only adjust the level, so app factories used by tests
    do not stack duplicate handlers.
    """

    logger = logging.getLogger("salon_attendance")
    logger.setLevel(level if isinstance(level, int) else str(level).upper())

    if not any(getattr(h, "_salon_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._salon_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
