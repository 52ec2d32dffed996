"""
Webserver Logging
One rotating log file per concern, all under LOG_DIR.

    access.log     one line per HTTP request
    biometric.log  enroll / capture / verify / delete / import / export outcomes,
                   plus the core package's own loggers (fpgallery.*)
    error.log      unhandled exceptions and webserver component messages
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from .config import LOG_DIR, LOG_MAX_BYTES, LOG_BACKUP_COUNT, VERBOSE


LOG_DIR.mkdir(parents=True, exist_ok=True)

ACCESS_LOG = LOG_DIR / "access.log"
BIOMETRIC_LOG = LOG_DIR / "biometric.log"
ERROR_LOG = LOG_DIR / "error.log"

LINE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
BANNER = "=" * 70


def _file_handler(path: Path) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8')
    handler.setFormatter(logging.Formatter(LINE_FORMAT))
    return handler


def _channel(name: str, path: Path, level: int = logging.INFO) -> logging.Logger:
    """Logger writing to its own file (and the console when VERBOSE).

    Handlers are attached once; later calls return the same configured logger.
    """
    channel = logging.getLogger(name)
    if channel.handlers:
        return channel

    channel.setLevel(level)
    channel.propagate = False
    channel.addHandler(_file_handler(path))

    if VERBOSE:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LINE_FORMAT))
        channel.addHandler(console)

    return channel


access_logger = _channel("fpgallery.access", ACCESS_LOG)
biometric_logger = _channel("fpgallery.biometric", BIOMETRIC_LOG)
error_logger = _channel("fpgallery.error", ERROR_LOG, level=logging.ERROR)


def configure_core_logging(level: int = logging.INFO):
    """Send fpgallery.capture, fpgallery.matching, ... to biometric.log."""
    core = logging.getLogger("fpgallery")
    if not core.handlers:
        core.setLevel(level)
        core.addHandler(_file_handler(BIOMETRIC_LOG))


# ============================================================================
# HELPERS
# ============================================================================

def log_access(ip: str, method: str, endpoint: str, status_code: int, duration_ms: float):
    access_logger.info(f"{method} {endpoint} -> {status_code} in {duration_ms:.1f}ms (client {ip})")


def log_biometric(
    operation: str,
    subject: Optional[str],
    result: str,
    details: Optional[Dict[str, Any]] = None
):
    """
    Record the outcome of a gallery operation.

    Args:
        operation: ENROLL, CAPTURE, VERIFY, DELETE, CLEAR, IMPORT or EXPORT
        subject: Identity id or name concerned, None when there is none
        result: SUCCESS, FAILURE, MATCH, NO_MATCH, NOOP, ...
        details: Extra key/value pairs (score, quality, reason, ...)
    """
    fields = [f"subject={subject or '-'}"]
    fields += [f"{key}={value}" for key, value in (details or {}).items()]
    biometric_logger.info(f"[{operation}] {result} " + " ".join(fields))


def log_error(error: Exception, context: Optional[str] = None):
    """Write an exception with its traceback to error.log."""
    where = f" during {context}" if context else ""
    error_logger.error(f"{type(error).__name__}{where}: {error}", exc_info=error)


def log_startup(info: Dict[str, Any]):
    """Write the startup banner followed by one line per setting."""
    access_logger.info(BANNER)
    access_logger.info("FINGERPRINT GALLERY STARTING")
    for key in sorted(info):
        access_logger.info(f"  {key} = {info[key]}")
    access_logger.info(BANNER)


def log_shutdown():
    access_logger.info(BANNER)
    access_logger.info("FINGERPRINT GALLERY STOPPED")
    access_logger.info(BANNER)


def get_logger(name: str) -> logging.Logger:
    """Component logger for the webserver (fpgallery.webserver.<name>), written to error.log."""
    return _channel(f"fpgallery.webserver.{name}", ERROR_LOG)
