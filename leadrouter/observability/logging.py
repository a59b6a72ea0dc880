"""structlog setup for leadrouter.

Events are snake_case names with keyword fields
(``logger.info("lead_dispatched", lead_id=..., outcome=...)``).
Request-scoped fields such as ``request_id`` are merged in from
structlog contextvars. Lead contact details never reach the output when
redaction is on.
"""

import logging
import re
import sys
from collections.abc import Iterable, Mapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Field names whose values are dropped whatever they hold
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "email",
    "lead_email",
    "phone",
    "lead_phone",
    "lead_name",
    "password",
    "secret",
    "token",
    "access_token",
    "api_key",
    "authorization",
    "bearer",
    "credentials",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"\+?[\d\s\-\(\)]{10,}")

REDACTED = "[REDACTED]"


class PIIRedactor:
    """Drops contact details from an event before it is rendered.

    Values under a sensitive key are replaced with ``[REDACTED]``. Free
    text anywhere else, nested dicts and lists included, has e-mail
    addresses and phone numbers masked. Non-string scalars pass through.
    """

    def __init__(self, extra_keys: Iterable[str] = ()) -> None:
        self._keys = SENSITIVE_KEYS | {key.lower() for key in extra_keys}

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._scrub(event_dict))

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {
                key: REDACTED if str(key).lower() in self._keys else self._scrub(item)
                for key, item in value.items()
            }
        if isinstance(value, list | tuple):
            return [self._scrub(item) for item in value]
        if isinstance(value, str):
            return PHONE_PATTERN.sub("[PHONE]", EMAIL_PATTERN.sub("[EMAIL]", value))
        return value


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level name; unknown names fall back to INFO
        format: "json" for production, "console" for development
        redact_pii: Mask lead contact details
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    # Before the timestamp, which the phone pattern would otherwise eat
    if redact_pii:
        processors.append(PIIRedactor())
    processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors.append(
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    level_number = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_number),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
