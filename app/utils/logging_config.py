"""
Centralized Logging Configuration for the Co-founder Match API

Every module logs through ``get_logger(__name__)`` so all records sit under
the ``cofounder_match`` namespace. ``configure_for_environment`` picks the
level and handlers from ``ENVIRONMENT`` / ``LOG_LEVEL`` and runs on import.
"""
import functools
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

LOG_FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-45s | %(funcName)-22s:%(lineno)-4d | %(message)s",
}

# level, console, file, format
ENVIRONMENT_PROFILES = {
    "production": (None, True, True, "detailed"),
    "development": ("DEBUG", True, True, "detailed"),
    "testing": ("WARNING", True, False, "simple"),
}

# third-party loggers that drown out our own at DEBUG
QUIET_LOGGERS = {
    "pdfminer": "ERROR",
    "pymongo": "WARNING",
    "urllib3": "WARNING",
    "multipart": "WARNING",
}

_ROTATION = {"maxBytes": 10485760, "backupCount": 5, "encoding": "utf8"}  # 10MB


def _file_handler(filename: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(filename),
        **_ROTATION
    }


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Apply the logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (defaults to $LOG_DIR/cofounder_match_<date>.log)
        enable_console: Log to stdout
        enable_file: Log to rotating files, plus a separate errors-only file
        format_style: 'simple' or 'detailed'
    """
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    today = datetime.now().strftime('%Y%m%d')
    if log_file is None:
        log_file = log_dir / f"cofounder_match_{today}.log"

    handlers: Dict[str, Any] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style if format_style in LOG_FORMATS else "detailed",
            "stream": "ext://sys.stdout"
        }
    if enable_file:
        log_dir.mkdir(exist_ok=True)
        handlers["file"] = _file_handler(log_file, level)
        handlers["error_file"] = _file_handler(log_dir / f"cofounder_match_errors_{today}.log", "ERROR")

    server_handlers = [name for name in ("console", "file") if name in handlers]
    loggers: Dict[str, Any] = {
        "": {"level": level, "handlers": list(handlers), "propagate": False},
        "uvicorn": {"level": "INFO", "handlers": server_handlers, "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": server_handlers[:1], "propagate": False},
    }
    for name, quiet_level in QUIET_LOGGERS.items():
        loggers[name] = {"level": quiet_level, "handlers": [], "propagate": True}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"} for name, fmt in LOG_FORMATS.items()
        },
        "handlers": handlers,
        "loggers": loggers,
    })

    logger = logging.getLogger("cofounder_match.logging")
    logger.info(f"Logging configured - Level: {level}, Console: {enable_console}, File: {enable_file}")
    if enable_file:
        logger.info(f"Log file: {log_file}")


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``cofounder_match`` namespace (pass ``__name__``)"""
    return logging.getLogger(f"cofounder_match.{name}")


def log_api_call(operation: str):
    """
    Decorator for slow or side-effecting endpoints: logs start, duration and failure
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(f"api.{func.__module__}")
            start_time = time.time()
            user_id = kwargs.get("user_id")
            logger.info(f"API {operation} started for user {user_id}")

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                execution_time = time.time() - start_time
                logger.error(f"API {operation} failed after {execution_time:.3f}s: {e}",
                             extra={"execution_time": execution_time, "user_id": user_id})
                raise

            execution_time = time.time() - start_time
            logger.info(f"API {operation} completed in {execution_time:.3f}s",
                        extra={"execution_time": execution_time, "user_id": user_id})
            return result

        return wrapper
    return decorator


def configure_for_environment():
    """Configure logging from ENVIRONMENT (production, development, testing) and LOG_LEVEL"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    if environment not in ENVIRONMENT_PROFILES:
        setup_logging(level=log_level)
        return

    level, console, to_file, style = ENVIRONMENT_PROFILES[environment]
    setup_logging(level=level or log_level, enable_console=console, enable_file=to_file, format_style=style)


class PerformanceMonitor:
    """Context manager that logs how long an engine stage took"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = (time.time() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {elapsed_ms:.2f}ms: {exc_val}")
        elif elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} took {elapsed_ms:.2f}ms (threshold {self.threshold_ms}ms)")
        else:
            self.logger.info(f"{self.operation_name} completed in {elapsed_ms:.2f}ms")


# Initialize logging on module import
if __name__ != "__main__":
    configure_for_environment()
