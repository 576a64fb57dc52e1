"""
Monitor Logger - Logs attention, playback, quota and proctoring events
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Any, Optional, Union

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request client logs would repeat every heartbeat post
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Configure the engagement_monitor logger tree.

    Args:
        level: Level for engagement_monitor loggers
        log_file: Optional path of a rotating log file
        log_to_console: Also log to stdout

    Returns:
        The package logger
    """
    package_logger = logging.getLogger("engagement_monitor")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=10*1024*1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return package_logger


def log_monitor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a monitoring event.

    Args:
        session_id: Lesson view or assessment session ID
        event_type: Type of event (session_start, fast_forward, violation, ...)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[MONITOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, kind: str, subject_id: str):
    """Log session start event"""
    log_monitor_event(
        session_id=session_id,
        event_type="session_start",
        details={
            "kind": kind,
            "subject": subject_id
        }
    )


def log_session_end(session_id: str, kind: str, details: Optional[Dict[str, Any]] = None):
    """Log session end event"""
    log_monitor_event(
        session_id=session_id,
        event_type="session_end",
        details={"kind": kind, **(details or {})}
    )


def log_policy_violation(session_id: str, violation: str, count: int, limit: float):
    """Log when a policy threshold is crossed or a violation is recorded"""
    log_monitor_event(
        session_id=session_id,
        event_type="policy_violation",
        details={
            "violation": violation,
            "count": count,
            "limit": limit
        },
        level="warning"
    )


def log_delivery_failure(session_id: str, target: str, error: Exception):
    """Log a failed upstream delivery (not retried)"""
    log_monitor_event(
        session_id=session_id,
        event_type="delivery_failed",
        details={
            "target": target,
            "error": type(error).__name__,
            "message": str(error)
        },
        level="error"
    )
