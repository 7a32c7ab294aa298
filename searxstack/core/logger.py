from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: Optional[str] = "logs", *, log_file: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure the `searxstack` logger: rotating file under log_dir, console stream,
    and optionally an extra append-only file (deploy.log). log_dir=None skips the rotating file.
    """
    logger = logging.getLogger("searxstack")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    if log_dir is not None and not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        os.makedirs(log_dir, exist_ok=True)
        text_path = os.path.join(log_dir, "searxstack.log")
        h = RotatingFileHandler(text_path, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        h.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(h)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(sh)

    if log_file:
        target = os.path.abspath(log_file)
        if not any(isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target for h in logger.handlers):
            os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
            fh = logging.FileHandler(target, mode="a", encoding="utf-8")
            fh.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
            logger.addHandler(fh)

    return logger
