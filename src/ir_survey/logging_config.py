"""Shared logging configuration for the IR survey tool.

Call ``configure_logging()`` once at the CLI entry point. The function is
idempotent: if the root logger already has handlers, it does nothing.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.INFO, log_dir: Optional[str] = "logs") -> Optional[str]:
    """Configure root logger with console + per-run file handler.

    Returns the log file path, or None when logging is console-only.
    """
    root = logging.getLogger()
    if root.handlers:
        return None

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)
    root.setLevel(level)

    if not log_dir:
        return None

    # File handler (skipped if the directory cannot be created)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    log_path = os.path.join(log_dir, f"{stamp}_ir_survey.log")
    try:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)
    except OSError:
        return None

    return log_path
