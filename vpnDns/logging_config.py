"""
Centralized logging configuration for vpnDns.

Provides structured JSONL logging with rotation, request-id injection
and component-specific loggers (api, claimant, provider, reconciler).
Configured from environment variables with sensible defaults.

Request ID Propagation:
    The API middleware calls `set_request_id()` for every incoming claim.
    Any log emitted while that claim is handled (including from the
    reconciler and provider client) carries the same "request_id" field.

    Example:
        token = set_request_id(str(uuid.uuid4()))
        try:
            logger.info("Reconciling", extra={"ip": "203.0.113.7"})
        finally:
            reset_request_id(token)
"""
import contextvars
import json
import logging
import logging.handlers
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default=""
)


def set_request_id(request_id: str) -> contextvars.Token:
    """Set the current request ID for this async context."""
    return _request_id_var.set(request_id)


def get_request_id() -> str:
    """Return the current request ID, or an empty string if none is set."""
    return _request_id_var.get()


def reset_request_id(token: contextvars.Token) -> None:
    """Reset the request ID context variable to its previous state."""
    _request_id_var.reset(token)


class JSONLFormatter(logging.Formatter):
    """
    Formatter that emits one JSON object per line.

    Standard fields are always present; the request id is pulled from
    the context variable, and a fixed set of domain attributes passed
    through ``extra=`` is copied onto the line when present.
    """

    EXTRA_ATTRS = (
        "request_id", "ip", "record_id", "record_name", "domain",
        "dns_action", "operation", "duration", "status_code", "outcome",
        "state", "error_type", "reason", "url", "path", "attempt", "records",
        "method", "client_host",
    )

    def __init__(self, component: str = "vpndns"):
        super().__init__()
        self.component = component
        self.hostname = os.getenv("HOSTNAME", os.getenv("COMPUTERNAME", "unknown"))

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "process_id": record.process,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for attr in self.EXTRA_ATTRS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        return json.dumps(log_data, default=str)


def setup_logging(
    component: str = "vpndns",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: int = 5,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Set up logging for a vpnDns component.

    Args:
        component: Component name (api, claimant, provider, reconciler, ...)
        log_level: Logging level name; defaults to VPNDNS_LOG_LEVEL or INFO
        log_file: JSONL output path; defaults to VPNDNS_LOG_FILE or logs/vpndns.jsonl
        max_bytes: Rotation size; defaults to VPNDNS_LOG_MAX_BYTES or 10MB
        backup_count: Number of rotated files to keep
        enable_console: Also log human-readable lines to stdout

    Returns:
        Configured logger instance
    """
    log_level = (log_level or os.getenv("VPNDNS_LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("VPNDNS_LOG_FILE", "logs/vpndns.jsonl")
    max_bytes = max_bytes or int(os.getenv("VPNDNS_LOG_MAX_BYTES", str(10 * 1024 * 1024)))

    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(f"vpndns.{component}")
    logger.setLevel(numeric_level)
    logger.propagate = False
    logger.handlers.clear()

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JSONLFormatter(component=component))
        logger.addHandler(file_handler)
    except (IOError, OSError) as e:
        sys.stderr.write(f"Failed to set up file logging to {log_file}: {e}\n")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

    logger.debug(
        "Logging configured",
        extra={"state": "configured", "outcome": "success"},
    )
    return logger


def get_logger(component: str) -> logging.Logger:
    """Get the logger for a component, configuring it on first use."""
    logger = logging.getLogger(f"vpndns.{component}")
    if not logger.handlers:
        logger = setup_logging(component)
    return logger


def sanitize_log_data(data: Dict[str, Any], sensitive_keys: Optional[list] = None) -> Dict[str, Any]:
    """
    Return a copy of ``data`` with secret-looking values redacted.

    Keys are matched case-insensitively by substring, and nested
    dictionaries are sanitized recursively.
    """
    sensitive_keys = sensitive_keys or [
        "password", "token", "secret", "api_key", "authorization",
    ]

    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value, sensitive_keys)
        else:
            sanitized[key] = value
    return sanitized
