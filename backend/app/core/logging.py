"""Logging setup for stdlib loggers and structlog.

Services log through ``logging.getLogger(__name__)``; the HTTP layer and the
provider adapters emit structlog events. Both end up on stderr at the
configured level.
"""

import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog at the given level.

    Safe to call more than once (later calls replace the handlers).

    Args:
        level: Level name such as "INFO" or "DEBUG".
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )


def redact_token(token: str | None) -> str:
    """Shorten a token for log output.

    Args:
        token: Full token value (may be None).

    Returns:
        First eight characters followed by an ellipsis, or "<none>".
    """
    if not token:
        return "<none>"
    return f"{token[:8]}…"
