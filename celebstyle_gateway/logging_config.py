"""
Structured logging configuration with request tracking and rotation.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict, Processor


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to all log entries."""
    event_dict["app"] = "celebstyle-gateway"
    return event_dict


def mask_api_key(api_key: Optional[str]) -> str:
    """Keep only the first characters of a key for log output."""
    if not api_key:
        return "***"
    return f"{api_key[:8]}..." if len(api_key) > 8 else "***"


def mask_email(email: Optional[str]) -> str:
    if not email or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    log_max_bytes: int = 10485760,  # 10MB
    log_backup_count: int = 5,
) -> None:
    """
    Configure structured logging with rotation.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ('json' or 'console')
        log_file: Optional log file path
        log_max_bytes: Max log file size before rotation
        log_backup_count: Number of backup files to keep
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=log_max_bytes,
            backupCount=log_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        logging.getLogger().addHandler(file_handler)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


def log_request_start(
    method: str,
    path: str,
    request_id: str,
    client_ip: Optional[str] = None,
    **kwargs
) -> None:
    """
    Log incoming API request.

    Args:
        method: HTTP method
        path: Request path
        request_id: Unique request ID
        client_ip: Client IP address
        **kwargs: Additional context
    """
    logger = get_logger("api")
    logger.info(
        "request_start",
        method=method,
        path=path,
        request_id=request_id,
        client_ip=client_ip,
        **kwargs
    )


def log_request_end(
    method: str,
    path: str,
    request_id: str,
    status_code: int,
    duration_ms: float,
    **kwargs
) -> None:
    """
    Log completed API request.

    Args:
        method: HTTP method
        path: Request path
        request_id: Unique request ID
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
        **kwargs: Additional context
    """
    logger = get_logger("api")
    logger.info(
        "request_end",
        method=method,
        path=path,
        request_id=request_id,
        status_code=status_code,
        duration_ms=duration_ms,
        **kwargs
    )


def log_key_issued(owner_email: str, api_key: str, reason: str, **kwargs) -> None:
    """
    Log a newly minted key (registration or regeneration).

    Args:
        owner_email: Key holder (partially masked)
        api_key: Raw key (masked)
        reason: 'register' or 'regenerate'
        **kwargs: Additional context
    """
    logger = get_logger("api_keys")
    logger.info(
        "api_key_issued",
        owner_email=mask_email(owner_email),
        api_key=mask_api_key(api_key),
        reason=reason,
        **kwargs
    )


def log_quota_rejected(
    api_key: str,
    plan: str,
    limit_value: int,
    current_count: int,
    **kwargs
) -> None:
    """
    Log a request rejected because the key's quota is spent.

    Args:
        api_key: Raw key (masked)
        plan: Plan tier of the key
        limit_value: Usage ceiling of the period
        current_count: Usage at the time of rejection
        **kwargs: Additional context
    """
    logger = get_logger("gateway")
    logger.warning(
        "quota_exceeded",
        api_key=mask_api_key(api_key),
        plan=plan,
        limit_value=limit_value,
        current_count=current_count,
        **kwargs
    )


def log_plan_expired(api_key: str, plan: str, valid_until: Any, **kwargs) -> None:
    logger = get_logger("gateway")
    logger.warning(
        "plan_expired",
        api_key=mask_api_key(api_key),
        expired_plan=plan,
        valid_until=str(valid_until),
        **kwargs
    )


def log_plan_upgraded(api_key: str, plan: str, price_paid: int, **kwargs) -> None:
    logger = get_logger("api_keys")
    logger.info(
        "plan_upgraded",
        api_key=mask_api_key(api_key),
        plan=plan,
        price_paid=price_paid,
        **kwargs
    )


def log_exception(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    **kwargs
) -> None:
    """
    Log exception with full context.

    Args:
        exception: Exception instance
        context: Additional context dictionary
        **kwargs: Additional context
    """
    logger = get_logger("exception")

    log_data = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        **(context or {}),
        **kwargs
    }

    logger.error(
        "exception_occurred",
        exc_info=exception,
        **log_data
    )
