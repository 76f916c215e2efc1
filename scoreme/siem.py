"""Application logging and SIEM-compatible audit events.

Standard logging goes to a size-rotated log file (and stderr). Index
builds, scoring runs and operator authentication additionally emit one
JSON object per line to a separate event log, suitable for shipping to
Splunk, ELK or QRadar. Rotated event logs are gzip-compressed.
"""

import gzip
import json
import logging
import os
import shutil
from datetime import datetime
from logging.handlers import RotatingFileHandler
from threading import Lock
from typing import Optional

from scoreme.config import (
    APP_LOG_FILE,
    LOG_BACKUP_COUNT,
    LOG_DIR,
    LOG_MAX_BYTES,
    SIEM_LOG_FILE,
)


EVENT_SOURCE = "scoreme"

# Module-level state
_logging_configured = False
_event_logger: Optional[logging.Logger] = None
_setup_lock = Lock()


def ensure_log_dir() -> None:
    """Create the log directory if it doesn't exist (mode 0700 on Unix)."""
    if os.name != "nt":
        os.makedirs(LOG_DIR, mode=0o700, exist_ok=True)
    else:
        os.makedirs(LOG_DIR, exist_ok=True)


def _gzip_namer(name: str) -> str:
    return name + ".gz"


def _gzip_rotator(source: str, dest: str) -> None:
    """Compress a rotated log file using gzip."""
    with open(source, "rb") as f_in:
        with gzip.open(dest, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


def configure_logging(debug: bool = False) -> None:
    """Configure standard logging with rotation on first use.

    Args:
        debug: Log DEBUG records (per-shard flushes, comparisons) as well
    """
    global _logging_configured
    with _setup_lock:
        logger = logging.getLogger("scoreme")
        logger.setLevel(logging.DEBUG if debug else logging.INFO)
        if _logging_configured:
            return

        ensure_log_dir()

        file_handler = RotatingFileHandler(
            APP_LOG_FILE,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

        logger.addHandler(file_handler)
        logger.addHandler(console)

        _logging_configured = True


def _get_event_logger() -> logging.Logger:
    """Dedicated logger writing raw JSON lines to the SIEM event file."""
    global _event_logger
    with _setup_lock:
        if _event_logger is None:
            ensure_log_dir()
            handler = RotatingFileHandler(
                SIEM_LOG_FILE,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
            )
            handler.namer = _gzip_namer
            handler.rotator = _gzip_rotator
            handler.setFormatter(logging.Formatter("%(message)s"))

            event_logger = logging.getLogger("scoreme.siem.events")
            event_logger.setLevel(logging.INFO)
            event_logger.propagate = False
            event_logger.addHandler(handler)
            _event_logger = event_logger
        return _event_logger


def log_siem_event(
    event_type: str,
    status: str,
    details: Optional[dict] = None
) -> None:
    """Log event in JSON format suitable for SIEM tools.

    Args:
        event_type: Type of event (e.g., 'index_build', 'score_run', 'operator_auth')
        status: Event status (e.g., 'SUCCESS', 'FAILURE', 'PARTIAL')
        details: Optional additional event details
    """
    event = {
        "timestamp": datetime.now().isoformat(),
        "event_type": event_type,
        "status": status,
        "source": EVENT_SOURCE,
    }

    if details:
        event["details"] = details

    _get_event_logger().info(json.dumps(event))


def get_siem_events(limit: int = 100) -> list[dict]:
    """Read and parse SIEM log events.

    Args:
        limit: Maximum number of events to return

    Returns:
        List of parsed event dictionaries, oldest first
    """
    if not os.path.exists(SIEM_LOG_FILE):
        return []

    events = []
    with open(SIEM_LOG_FILE, "r", encoding="utf-8") as f:
        for line in f:
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue

    return events[-limit:]
