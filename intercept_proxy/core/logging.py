# Centralized logging configuration for the intercept_proxy package.

import logging
import sys
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from intercept_proxy.settings import Settings

# Recommended format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Event log lines carry their own timestamp
EVENT_LOG_FORMAT = "%(levelname)s - %(message)s"

# Default level if LOG_LEVEL env var is not set
DEFAULT_LOG_LEVEL = "INFO"

# Valid log levels
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Libraries known to be noisy that we might want to quiet down
NOISY_LIBRARIES = ["httpx", "httpcore"]

# Logger that the event log writes through
EVENT_LOGGER_NAME = "intercept_proxy.events"


def _get_file_handler(path: str, level: int) -> logging.FileHandler:
    handler = logging.FileHandler(path, encoding="utf-8", delay=True)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(EVENT_LOG_FORMAT))
    return handler


def setup_event_log_handlers(request_log_path: Optional[str], error_log_path: Optional[str]) -> None:
    """
    Attaches the request and error log files to the event logger.

    The request log receives every event at INFO and above, the error log only
    ERROR and above. Passing None for a path leaves that file out.
    """
    event_logger = logging.getLogger(EVENT_LOGGER_NAME)
    event_logger.setLevel(logging.INFO)

    for handler in list(event_logger.handlers):
        event_logger.removeHandler(handler)
        handler.close()

    if request_log_path:
        event_logger.addHandler(_get_file_handler(request_log_path, logging.INFO))
    if error_log_path:
        event_logger.addHandler(_get_file_handler(error_log_path, logging.ERROR))


def setup_logging():
    """
    Configures logging for the application.

    Reads the desired log level from the LOG_LEVEL environment variable.
    Defaults to INFO if not set or invalid.
    Sets a standard format and directs logs to stderr.
    Sets louder libraries to WARNING level.
    Attaches the request/error event log files configured in settings.
    """
    settings = Settings()
    log_level_name = settings.get_log_level(default=DEFAULT_LOG_LEVEL)

    if log_level_name not in VALID_LOG_LEVELS:
        print(
            f"WARNING: Invalid LOG_LEVEL '{log_level_name}'. "
            f"Defaulting to {DEFAULT_LOG_LEVEL}. "
            f"Valid levels are: {', '.join(VALID_LOG_LEVELS)}",
            file=sys.stderr,
        )
        log_level_name = DEFAULT_LOG_LEVEL

    log_level = logging.getLevelName(log_level_name)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    setup_event_log_handlers(settings.get_request_log_path(), settings.get_error_log_path())

    # Quiet down noisy libraries
    for lib_name in NOISY_LIBRARIES:
        logging.getLogger(lib_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured with level {log_level_name}.")


def log_policy_execution(
    transaction_id: str,
    policy_name: str,
    status: str,
    duration: Optional[float] = None,
    error: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Log policy execution details."""
    logger = logging.getLogger("intercept_proxy.proxy.policy")
    log_data = {
        "transaction_id": transaction_id,
        "policy_name": policy_name,
        "status": status,
    }

    if duration is not None:
        log_data["duration_seconds"] = str(duration)

    if error:
        log_data["error"] = error

    if details:
        log_data.update(details)

    if status == "error":
        logger.error(f"[{transaction_id}] Policy {policy_name} failed", extra=log_data)
    else:
        logger.info(f"[{transaction_id}] Policy {policy_name} {status}", extra=log_data)


def create_debug_response(
    status_code: int,
    message: str,
    transaction_id: str,
    details: Optional[Dict[str, Any]] = None,
    include_debug_info: bool = True,
) -> Dict[str, Any]:
    """Create a detailed error response for debugging."""
    response = {
        "detail": message,
        "transaction_id": transaction_id,
    }

    if include_debug_info and details:
        response["debug"] = str({"timestamp": datetime.now(UTC).isoformat(), "status_code": status_code, **details})

    return response
