"""Structured logging for the watcher, routed away from the terminal.

The dashboard owns the screen while it runs, so records normally go to a
file. structlog sits on top of stdlib logging via ProcessorFormatter, which
lets records from ccxt and asyncio share the same output and format.
"""

import logging
import os

import structlog

# Third-party loggers that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("ccxt", "asyncio", "urllib3", "aiohttp")


def _renderer(log_format: str, colors: bool) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=colors)


def _handler(log_file: str | None) -> logging.Handler:
    if log_file:
        return logging.FileHandler(log_file, encoding="utf-8")
    return logging.StreamHandler()


def setup_logging(log_level: str = "INFO", log_file: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Root level name, e.g. "INFO" or "DEBUG".
        log_file: Append records to this file. When None, records go to
            stderr, which is only safe when no live display is running.

    The LOG_FORMAT environment variable selects "json" or "console"
    (default) rendering. Context bound with structlog.contextvars, such as a
    fetch cycle id, is merged into every record emitted inside that task.
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()
    level = logging.getLevelNamesMapping()[log_level.upper()]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = _handler(log_file)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format, colors=log_file is None),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
