"""
Structured Logging Configuration

Sets up structured logging using structlog on top of the standard
logging library. Logs are JSON in production and colored console output
in development.

Design Decisions:
- Use structlog for structured, contextual logging
- Never log sensitive data (installation tokens, JWTs, private keys)
- Credentials embedded in clone URLs are masked as well
"""

import logging
import re
import sys
from typing import Any, Dict

import structlog
from structlog.types import EventDict, WrappedLogger

from digger_github import __version__
from digger_github.config import get_settings

SENSITIVE_KEYS = {
    "token", "access_token", "secret", "password", "private_key",
    "authorization", "auth", "credential", "jwt", "bearer"
}

TOKEN_PREFIXES = ("ghs_", "ghp_", "gho_", "ghu_", "github_pat_")

# user:password@ section of a URL
URL_CREDENTIALS_RE = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]+@", re.IGNORECASE)


def redact_value(value: str) -> str:
    """Mask token-looking strings and credentials embedded in URLs."""
    if value.startswith(TOKEN_PREFIXES):
        return "[REDACTED]"
    return URL_CREDENTIALS_RE.sub(r"\g<scheme>***@", value)


def filter_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor to filter out sensitive data from logs.

    Keys that name a credential are dropped to a placeholder; string values
    are scanned for GitHub token prefixes and URL credentials.
    """

    def redact_dict(d: Dict[str, Any]) -> Dict[str, Any]:
        result = {}
        for key, value in d.items():
            key_lower = key.lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
                result[key] = "[REDACTED]"
            elif isinstance(value, dict):
                result[key] = redact_dict(value)
            elif isinstance(value, str):
                result[key] = redact_value(value)
            else:
                result[key] = value
        return result

    return redact_dict(event_dict)


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to every log entry."""
    event_dict["app"] = "digger-github"
    event_dict["version"] = __version__
    return event_dict


def setup_logging() -> None:
    """
    Configure structured logging.

    Call once at process startup from the code that embeds this library.
    """
    settings = get_settings()

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_app_context,
        filter_sensitive_data,
    ]

    if settings.log_json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level))

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("git").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance with the given name.

    Usage:
        logger = get_logger(__name__)
        logger.info("Setting PR status", pr_number=12, context="infra/plan")
    """
    return structlog.get_logger(name)
