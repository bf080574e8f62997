"""Operational logging for build runs."""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime


def configure_stdio_utf8() -> None:
    """Force stdout/stderr to UTF-8 so progress messages never crash on Windows consoles."""
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    except Exception:
        # If reconfigure is unavailable, continue with defaults.
        pass


def setup_build_logger(log_dir: str | None, build_id: str) -> tuple[logging.Logger, str | None]:
    """
    Configure a logger that writes an operational log for the build.
    Logs go to stdout and, when `log_dir` is given, to a UTF-8 file under it.
    """
    logger_name = f"appdist.{build_id}"
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_file = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{build_id}_build.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    logger.info("Operational logging initialized for build %s", build_id)
    if log_file:
        logger.debug("Operational log file: %s", log_file)

    return logger, log_file


def generate_build_id(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"build_{stamp}"
