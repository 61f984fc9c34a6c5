"""Logging helpers for :mod:`modresolve`."""

from __future__ import annotations

import gzip
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
import shutil
from typing import Any, Iterable

from rich.console import Console
from rich.logging import RichHandler
import structlog

Logger = structlog.stdlib.BoundLogger

_CONSOLE_PROCESSOR = structlog.dev.ConsoleRenderer(colors=False)
_FILE_PROCESSOR = structlog.processors.JSONRenderer(sort_keys=True)
_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)

_ROTATION_BACKUP_COUNT = 7
_DEFAULT_LOG_FILENAME = "modresolve.log"
_DEBUG_SCOPE_ROOT = "modresolve"


def _normalize_level(level: str) -> int:
    """Return the logging module level constant for ``level``.

    Raises:
        ValueError: If the level name is not recognized.
    """

    normalized = level.strip().upper()
    value = logging.getLevelName(normalized)
    if isinstance(value, str):  # ``getLevelName`` echoes unknown names.
        raise ValueError(f"Unsupported log level: {level!r}")
    return value


def _scope_logger_name(scope: str) -> str:
    """Map a debug scope like ``resolver.alias`` to its logger name.

    Example:
        >>> _scope_logger_name("resolver")
        'modresolve.resolver'
        >>> _scope_logger_name("*")
        'modresolve'
    """

    cleaned = scope.strip().strip(".")
    if cleaned in {"", "*"}:
        return _DEBUG_SCOPE_ROOT
    if cleaned.startswith(f"{_DEBUG_SCOPE_ROOT}."):
        return cleaned
    return f"{_DEBUG_SCOPE_ROOT}.{cleaned}"


def _reset_root_logger(
    root: logging.Logger,
    handlers: Iterable[logging.Handler],
) -> None:
    """Replace root handlers with the provided ones."""

    for handler in list(root.handlers):
        root.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # pragma: no cover
            pass
    for handler in handlers:
        root.addHandler(handler)


def _configure_structlog() -> None:
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _TIMESTAMPER,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _gzip_rotator(source: str, dest: str) -> None:
    """Compress rotated log file ``source`` into ``dest`` using gzip."""

    with open(source, "rb") as src, gzip.open(dest, "wb") as target:
        shutil.copyfileobj(src, target)
    Path(source).unlink(missing_ok=True)


def _build_file_handler(log_file: Path) -> TimedRotatingFileHandler:
    """Return a rotating JSON handler that compresses archived log files."""

    handler = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        backupCount=_ROTATION_BACKUP_COUNT,
        utc=True,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(logging.NOTSET)
    handler.suffix = "%Y-%m-%d"
    handler.namer = lambda name: f"{name}.gz"
    handler.rotator = _gzip_rotator

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_FILE_PROCESSOR,
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            _TIMESTAMPER,
        ],
    )
    handler.setFormatter(formatter)
    return handler


def _build_console_handler(console: Console | None = None) -> RichHandler:
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        enable_link_path=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler.setLevel(logging.NOTSET)
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_CONSOLE_PROCESSOR,
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            _TIMESTAMPER,
        ],
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    *,
    level: str = "WARNING",
    log_dir: str | Path | None = None,
    debug_scopes: Iterable[str] = (),
    console: Console | None = None,
) -> None:
    """Configure structlog alongside stdlib logging.

    Args:
        level: Log level name applied to the root logger (case-insensitive).
        log_dir: Optional directory receiving ``modresolve.log`` as JSON lines.
        debug_scopes: Logger scopes (``"resolver"``, ``"resolver.alias"`` or
            ``"*"``) forced to ``DEBUG`` regardless of ``level``.
        console: Optional Rich console override, primarily for testing.

    Raises:
        ValueError: If ``level`` is not a recognized log level name.

    Example:
        >>> configure_logging(level="info", debug_scopes=["resolver"])
        >>> logging.getLogger("modresolve.resolver").level == logging.DEBUG
        True
    """

    log_level = _normalize_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for name, existing in list(logging.root.manager.loggerDict.items()):
        if name.split(".")[0] != _DEBUG_SCOPE_ROOT:
            continue
        if isinstance(existing, logging.Logger):
            existing.setLevel(logging.NOTSET)
    for scope in debug_scopes:
        logging.getLogger(_scope_logger_name(scope)).setLevel(logging.DEBUG)

    _configure_structlog()

    handlers: list[logging.Handler] = [_build_console_handler(console)]

    if log_dir is not None:
        directory = Path(log_dir).expanduser().resolve(strict=False)
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(_build_file_handler(directory / _DEFAULT_LOG_FILENAME))

    _reset_root_logger(root_logger, handlers)

    logging.captureWarnings(True)


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a structured logger bound to an optional context.

    Example:
        >>> logger = get_logger(__name__, component="resolver")
        >>> hasattr(logger, "debug")
        True
    """

    return structlog.get_logger(name).bind(**initial_context)


# Until configure_logging runs, events go to stdlib loggers without handlers.
if not structlog.is_configured():
    _configure_structlog()


__all__ = ["Logger", "configure_logging", "get_logger"]
