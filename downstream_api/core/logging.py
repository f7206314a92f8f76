"""Structured logging setup for downstream API calls."""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog


if TYPE_CHECKING:
    from downstream_api.config.logging import LoggingSettings


_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def _resolve_renderer(fmt: str) -> Any:
    if fmt == "auto":
        fmt = "rich" if sys.stderr.isatty() else "json"
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=fmt == "rich")


def setup_logging(settings: "LoggingSettings | None" = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Logging settings, defaults are used when omitted
    """
    if settings is None:
        from downstream_api.config.logging import LoggingSettings

        settings = LoggingSettings()

    level = getattr(logging, settings.level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if settings.show_time:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    if settings.show_path or settings.level == "DEBUG":
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )
    processors.extend(
        [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _resolve_renderer(settings.format),
        ]
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(level=level, format="%(message)s", force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger bound to the given module name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)
