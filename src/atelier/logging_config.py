"""
Structured logging for atelier.

Both entry points (the Streamlit app and the deletion endpoint) call
``configure_structured_logging`` once at start-up. Modules then take a
logger with ``get_logger(__name__)`` and log event names with keyword context.
"""

import logging
import os
import sys
from typing import Any

import structlog

# Context keys whose values must never reach the log output
SENSITIVE_KEYS = frozenset({"access_token", "authorization", "password", "api_secret", "signature", "token"})

DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "local")

_configured = False


def get_log_level(default: str = "INFO") -> int:
    """Resolve LOG_LEVEL (a level name such as ``DEBUG``) to a logging constant."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", default).upper())
    return level if isinstance(level, int) else logging.INFO


def is_development_environment() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() in DEVELOPMENT_ENVIRONMENTS


def redact_sensitive_values(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor that masks bearer tokens, passwords and host secrets."""
    for key in event_dict.keys() & SENSITIVE_KEYS:
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def configure_structured_logging(force: bool = False) -> None:
    """
    Configure structlog and the standard library root logger.

    Development renders readable console lines; every other environment
    emits one JSON object per line. Repeated calls are ignored unless
    ``force`` is set, because Streamlit re-runs the entry script on every
    interaction.
    """
    global _configured
    if _configured and not force:
        return

    log_level = get_log_level()
    is_dev = is_development_environment()

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr, force=force)
    logging.getLogger().setLevel(log_level)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()) if is_dev else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True

    get_logger("atelier.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        renderer="console" if is_dev else "json",
    )


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger; modules pass ``__name__``."""
    return structlog.get_logger(name or "atelier")


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """Record how long an upload, host call or query took."""
    get_logger("atelier.performance").info(
        "performance_metric", operation=operation, duration_seconds=round(duration, 4), **context
    )


def log_user_action(user_id: str, action: str, **context: Any) -> None:
    """Audit trail for administrator actions such as uploads and deletions."""
    get_logger("atelier.user_actions").info("user_action", user_id=user_id, action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log an exception with its type, message and traceback.

    Args:
        error: Exception that occurred
        context: Extra fields (operation, photo id, file name...)
    """
    fields = {"error_type": type(error).__name__, "error_message": str(error), **(context or {})}
    get_logger("atelier.errors").error("error_occurred", **fields, exc_info=error)


def log_security_event(event_type: str, user_id: str | None = None, **context: Any) -> None:
    """Rejected sign-ins, invalid bearer tokens and similar events."""
    get_logger("atelier.security").warning("security_event", event_type=event_type, user_id=user_id, **context)
