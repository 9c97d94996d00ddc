from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, cast

import structlog
from loguru import logger as loguru_logger
from structlog.exceptions import DropEvent
from structlog.stdlib import BoundLogger
from structlog.typing import EventDict, Processor, WrappedLogger

from cloudpc_manager.config.settings import ENV_PREFIX, log_dir


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message} | {extra}"
DEFAULT_LOG_FILENAME = "cloudpc-manager.log"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class LoggingOptions:
    level: LogLevel = "INFO"
    debug: bool = False
    rotation: str = "10 MB"
    retention: str = "14 days"
    log_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "LoggingOptions":
        """Build options from ``CLOUDPC_MANAGER_LOG_LEVEL``/``_DEBUG``."""

        raw_level = (os.getenv(f"{ENV_PREFIX}LOG_LEVEL") or "INFO").upper()
        level = cast(LogLevel, raw_level if raw_level in _LEVELS else "INFO")
        debug = (os.getenv(f"{ENV_PREFIX}DEBUG") or "").lower() in _TRUTHY
        return cls(level=level, debug=debug)

    @property
    def effective_level(self) -> str:
        return "DEBUG" if self.debug else self.level


_configured_log_path: Optional[Path] = None


def configure_logging(options: LoggingOptions | None = None) -> Path:
    """Route structlog events into loguru's stderr and rotating file sinks."""

    global _configured_log_path

    opts = options or LoggingOptions.from_env()
    log_path = opts.log_path or (log_dir() / DEFAULT_LOG_FILENAME)

    _install_sinks(opts, log_path)
    structlog.configure(
        processors=_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, opts.effective_level)
        ),
        cache_logger_on_first_use=True,
    )

    _configured_log_path = log_path
    return log_path


def _install_sinks(opts: LoggingOptions, log_path: Path) -> None:
    loguru_logger.remove()
    loguru_logger.add(
        sys.stderr,
        level=opts.effective_level,
        colorize=True,
        backtrace=opts.debug,
        diagnose=opts.debug,
        format=LOG_FORMAT,
    )
    # The file always keeps debug detail for support requests.
    loguru_logger.add(
        log_path,
        level="DEBUG",
        rotation=opts.rotation,
        retention=opts.retention,
        encoding="utf-8",
        format=LOG_FORMAT,
    )


def _processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _forward_to_loguru,
    ]


def _forward_to_loguru(
    _: WrappedLogger,
    __: str,
    event_dict: EventDict,
) -> EventDict:
    level = str(event_dict.pop("level", "INFO")).upper()
    message = str(event_dict.pop("event", ""))
    timestamp = event_dict.pop("timestamp", None)
    exception = event_dict.pop("exception", None)
    event_dict.pop("stack", None)
    if exception:
        message = f"{message}\n{exception}"
    bound = loguru_logger.bind(**event_dict)
    if timestamp:
        bound = bound.bind(timestamp=timestamp)
    bound.opt(depth=6).log(level, message)
    raise DropEvent


def get_logger(*initial_values: object, **initial_kw: object) -> BoundLogger:
    if _configured_log_path is None:
        configure_logging()
    return cast(BoundLogger, structlog.get_logger(*initial_values, **initial_kw))


def log_file_path() -> Path:
    if _configured_log_path is None:
        return configure_logging()
    return _configured_log_path


__all__ = ["LoggingOptions", "configure_logging", "get_logger", "log_file_path"]
