# src/basil/core/logger.py
"""
LOGGING SYSTEM FOR AUDIT TRAILS AND DEBUGGING
"""

import logging
import logging.handlers
import sys
import json
from pathlib import Path
from typing import Optional, Dict, Any

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_dir: Optional[Path] = None, level: str = "INFO"):
    """
    Setup logging for the service.

    Args:
        log_dir: Directory to store log files (console only when None)
        level: Root log level name
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Drop handlers from a previous setup
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    if log_dir is None:
        return

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Log directory {log_dir} not writable, using console only: {e}")
        return

    file_format = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Main application log (daily rotation)
    app_log_handler = logging.handlers.TimedRotatingFileHandler(
        log_dir / "app.log",
        when="midnight",
        interval=1,
        backupCount=30
    )
    app_log_handler.setLevel(logging.INFO)
    app_log_handler.setFormatter(file_format)
    logger.addHandler(app_log_handler)

    # Error log
    error_handler = logging.FileHandler(log_dir / "errors.log")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_format)
    logger.addHandler(error_handler)

    # Audit log handler
    audit_handler = logging.FileHandler(log_dir / "audit.log")
    audit_handler.setLevel(logging.INFO)
    audit_handler.setFormatter(logging.Formatter('%(asctime)s - AUDIT - %(message)s'))
    audit_handler.addFilter(lambda record: record.name == 'audit')
    logger.addHandler(audit_handler)


def audit_log(user: Optional[str], action: str, details: Optional[Dict[str, Any]] = None,
              store_id: Optional[str] = None):
    """
    Write an audit trail line.

    Args:
        user: Caller identity (token subject) or None for anonymous
        action: Action performed
        details: Extra values for the entry
        store_id: Store affected
    """
    audit_logger = logging.getLogger('audit')
    audit_logger.info(
        f"User:{user or 'Anonymous'} | "
        f"Action:{action} | "
        f"Store:{store_id or 'N/A'} | "
        f"Details:{json.dumps(details, default=str) if details else '{}'}"
    )
