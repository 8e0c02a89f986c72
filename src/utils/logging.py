"""Structured logging setup for Shelfwise using structlog.

Every event is stamped with the service name and deployment environment
(``app.name`` / ``app.env`` in ``config/config.yaml``, or ``APP_NAME`` /
``APP_ENV``), so records from several deployments can share one sink.
The environment also picks the renderer: JSON in production, a console
renderer everywhere else.

Standard-library records (uvicorn, httpx, aiosqlite, the provider SDKs)
are rendered by the same processor chain.  The chattier of those
libraries are held at WARNING unless the service itself runs at DEBUG.
"""

import logging
import sys

import structlog

_JSON_ENVIRONMENTS = frozenset({"production"})
_CHATTY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "openai", "anthropic")


def add_service_context(service: str, env: str) -> structlog.types.Processor:
    """Return a processor that stamps ``service`` and ``env`` on each event."""

    def _stamp(
        _logger: object, _method_name: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("env", env)
        return event_dict

    return _stamp


def configure_logging(
    log_level: str = "INFO",
    app_env: str = "development",
    service: str = "shelfwise",
    json_output: bool | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger for *app_env*.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        app_env: Deployment environment; ``production`` renders JSON.
        service: Service name stamped on every event.
        json_output: Force JSON (``True``) or console (``False``) output
                     regardless of *app_env*.

    Returns:
        A configured structlog BoundLogger.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    use_json = app_env in _JSON_ENVIRONMENTS if json_output is None else json_output

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context(service, app_env),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer: structlog.types.Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    chatty_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to *name*.

    Falls back to :func:`configure_logging` defaults when the application
    has not configured logging yet (library use, tests).
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
