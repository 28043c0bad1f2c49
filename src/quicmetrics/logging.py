"""Structured logging for the metrics layer.

quicmetrics logs in two places: at startup (backend chosen, metrics
registered, enabled flags) and, sampled at debug level, when an expensive
observation is dropped. Every record is an event name plus key/value
fields, and carries ``component="quicmetrics"`` and the configured metric
namespace so it can be told apart from the transport's own logs.

    setup_logging(config)           JSON (or console) records on stderr
    setup_logging(config, handler)  same records, caller-owned handler

``config.log_formatter`` picks how records are structured:

    structlog  processor chain rendered through structlog's ProcessorFormatter
    stdlib     plain logging with a JSON formatter

Handlers attach to the ``quicmetrics`` logger only. The root logger and any
handlers the application installed are left alone.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from quicmetrics.config import MetricsConfig

LOGGER_NAME = "quicmetrics"
COMPONENT = "quicmetrics"


@runtime_checkable
class LogFormatter(Protocol):
    """How metrics-layer records are structured.

    setup() returns the logging.Formatter for the handler; get_logger()
    returns a logger accepting ``logger.info("event", key=value)``.
    """

    def setup(self, config: MetricsConfig) -> logging.Formatter: ...

    def get_logger(self, name: str, **context: Any) -> Any: ...


def _context(config: MetricsConfig) -> dict[str, Any]:
    return {"component": COMPONENT, "namespace": config.namespace or None}


class StructlogFormatter:
    """structlog processor chain bridged to the stdlib handler."""

    def __init__(self) -> None:
        self._context: dict[str, Any] = {"component": COMPONENT}

    def setup(self, config: MetricsConfig) -> logging.Formatter:
        import structlog

        self._context = _context(config)

        if config.log_format == "console":
            renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
        else:
            renderer = structlog.processors.JSONRenderer()

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        return structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )

    def get_logger(self, name: str, **context: Any) -> Any:
        import structlog

        return structlog.get_logger(name).bind(**self._context, **context)


class StdlibFormatter:
    """No structlog: stdlib records rendered as one JSON object per line."""

    def __init__(self) -> None:
        self._context: dict[str, Any] = {"component": COMPONENT}

    def setup(self, config: MetricsConfig) -> logging.Formatter:
        self._context = _context(config)
        if config.log_format == "console":
            return logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        return _JsonFormatter()

    def get_logger(self, name: str, **context: Any) -> Any:
        return _KeyValueLogger(logging.getLogger(name), {**self._context, **context})


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        d: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        d.update(getattr(record, "fields", {}))
        if record.exc_info and record.exc_info[1]:
            d["exception"] = self.formatException(record.exc_info)
        return json.dumps(d, default=str)


class _KeyValueLogger:
    """stdlib logger with the ``event, **fields`` calling convention.

    Fields ride on the record as ``record.fields``; the message is the
    event name alone, so an address passed as a field never reaches it.
    """

    def __init__(self, logger: logging.Logger, context: dict[str, Any]) -> None:
        self._logger = logger
        self._context = context

    def _log(self, level: int, event: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, event, extra={"fields": {**self._context, **fields}})

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, fields)


_FORMATTERS: dict[str, type] = {
    "structlog": StructlogFormatter,
    "stdlib": StdlibFormatter,
}

_active_formatter: LogFormatter | None = None
_active_handler: logging.Handler | None = None


def setup_logging(config: MetricsConfig, handler: logging.Handler | None = None) -> None:
    """Attach one handler to the ``quicmetrics`` logger, replacing our previous one.

    ``handler`` defaults to a stderr stream handler; its formatter is
    replaced by the one ``config.log_formatter`` names.
    """
    global _active_formatter, _active_handler

    formatter_cls = _FORMATTERS.get(config.log_formatter)
    if formatter_cls is None:
        raise ValueError(
            f"Unknown log formatter: {config.log_formatter!r}. "
            f"Available: {list(_FORMATTERS)}."
        )

    formatter = formatter_cls()
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter.setup(config))

    logger = logging.getLogger(LOGGER_NAME)
    if _active_handler is not None:
        logger.removeHandler(_active_handler)
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    _active_formatter = formatter
    _active_handler = handler


def get_logger(name: str = LOGGER_NAME, **context: Any) -> Any:
    """Key/value logger from the active formatter.

    Before setup_logging() this is a plain stdlib-backed logger, so
    ``log.info("event", key=value)`` works at any point.
    """
    if _active_formatter is not None:
        return _active_formatter.get_logger(name, **context)
    return _KeyValueLogger(logging.getLogger(name), {"component": COMPONENT, **context})


def shutdown_logging() -> None:
    """Detach and close our handler. Call on process exit."""
    global _active_formatter, _active_handler
    if _active_handler is not None:
        logging.getLogger(LOGGER_NAME).removeHandler(_active_handler)
        _active_handler.close()
    _active_formatter = None
    _active_handler = None
