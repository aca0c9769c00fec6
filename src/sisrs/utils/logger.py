# src/sisrs/utils/logger.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

_LOGGER_NAME = "sisrs"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{_LOGGER_NAME}.{name}")
    return logging.getLogger(_LOGGER_NAME)


def setup_logger(debug: bool = False, log_file: Optional[Path] = Path("sisrs.log")) -> logging.Logger:
    """
    Configure the root 'sisrs' logger:
      - INFO to console (DEBUG with debug=True)
      - DEBUG to file (sisrs.log), unless log_file is None
    Idempotent: a second call only adjusts the console level.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    console_level = logging.DEBUG if debug else logging.INFO

    console = getattr(setup_logger, "_console", None)
    if console is not None:
        console.setLevel(console_level)
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Remove any pre-existing handlers (only for our logger)
    for h in list(logger.handlers):
        logger.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    setup_logger._console = ch  # type: ignore[attr-defined]
    return logger
