# ruff: noqa: A005
"""Structured logging for the notifier.

Every module logs through `get_logger(__name__)`. The returned
`StructuredLogger` takes an event message plus keyword fields, drops records
below the configured threshold, scrubs provider credentials and oversized
messages, then hands the record to structlog for rendering.

Note: This module name intentionally shadows the standard library 'logging'
module inside the `notifier.core` package.
"""

import logging
import re
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars

from notifier.core.enums import Environment, LogFormat, LogLevel
from notifier.core.errors import ConfigurationError

MIN_MESSAGE_LENGTH = 1000

# Provider credential field names: SMTP_PASS, RESEND_API_KEY, PUSHER_SECRET,
# ONESIGNAL auth headers and the like.
SENSITIVE_FIELD = re.compile(
    r"pass(word|wd)?|token|secret|api_?key|credential|authorization", re.IGNORECASE
)

# Client libraries that log every request at INFO.
CHATTY_LOGGERS = ("httpx", "aiosmtplib", "sqlalchemy.engine")


@dataclass
class LogConfig:
    """
    Logging settings, built from `Settings.get_log_config()`.

    The environment overrides whatever level and format were passed in:
    development gets colored console output with call sites, tests only see
    warnings and above, production always renders JSON with secrets masked.
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    environment: Environment = Environment.DEVELOPMENT

    enable_timestamps: bool = True
    enable_caller_info: bool = False
    enable_exception_info: bool = True

    enable_sensitive_data_filtering: bool = True
    truncate_long_messages: bool = True
    max_message_length: int = 10000

    def __post_init__(self):
        if self.max_message_length < MIN_MESSAGE_LENGTH:
            raise ConfigurationError(
                f"max_message_length must be at least {MIN_MESSAGE_LENGTH}, "
                f"got {self.max_message_length}",
                config_key="max_message_length",
            )

        match self.environment:
            case Environment.DEVELOPMENT:
                self.format = LogFormat.CONSOLE
                self.enable_caller_info = True
            case Environment.TESTING:
                self.level = LogLevel.WARNING
                self.format = LogFormat.PLAIN
            case Environment.PRODUCTION:
                self.format = LogFormat.JSON
                self.enable_caller_info = False
                self.enable_sensitive_data_filtering = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "format": self.format.value,
            "environment": self.environment.value,
            "enable_timestamps": self.enable_timestamps,
            "enable_caller_info": self.enable_caller_info,
            "enable_sensitive_data_filtering": self.enable_sensitive_data_filtering,
            "max_message_length": self.max_message_length,
        }


class LogFilter(ABC):
    """Transforms a log record (message plus fields) before it is emitted."""

    @abstractmethod
    def filter(self, record: dict[str, Any]) -> dict[str, Any]:
        pass


class SensitiveDataFilter(LogFilter):
    """
    Masks values whose field name looks like a credential.

    Nested dicts, and dicts inside lists, are scrubbed too, so a logged
    provider config or request header map never leaks a key.
    """

    def __init__(self, mask_char: str = "*", preserve_length: bool = False):
        self.mask_char = mask_char
        self.preserve_length = preserve_length

    def filter(self, record: dict[str, Any]) -> dict[str, Any]:
        return {
            key: self._mask(value) if SENSITIVE_FIELD.search(key) else self._scrub(value)
            for key, value in record.items()
        }

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.filter(value)
        if isinstance(value, list):
            return [self._scrub(item) for item in value]
        return value

    def _mask(self, value: Any) -> str | None:
        if value is None:
            return None
        if self.preserve_length:
            return self.mask_char * len(str(value))
        return self.mask_char * 3 + "[MASKED]"


class MessageLengthFilter(LogFilter):
    """Cuts the message down to `max_length`, suffix included."""

    def __init__(self, max_length: int = 10000, truncation_suffix: str = "... [TRUNCATED]"):
        self.max_length = max_length
        self.truncation_suffix = truncation_suffix

    def filter(self, record: dict[str, Any]) -> dict[str, Any]:
        message = record.get("message")
        if not isinstance(message, str) or len(message) <= self.max_length:
            return record

        keep = self.max_length - len(self.truncation_suffix)
        return {
            **record,
            "message": message[:keep] + self.truncation_suffix,
            "message_truncated": True,
        }


def build_filters(config: LogConfig) -> list[LogFilter]:
    filters: list[LogFilter] = []
    if config.enable_sensitive_data_filtering:
        filters.append(SensitiveDataFilter())
    if config.truncate_long_messages:
        filters.append(MessageLengthFilter(config.max_message_length))
    return filters


class StructuredLogger:
    """
    Logger handed out by `get_logger`.

    Usage Example:
        logger = get_logger(__name__)
        logger.info("Dispatch succeeded", channel="EMAIL", external_id="msg-1")
    """

    def __init__(self, name: str, config: LogConfig):
        self.name = name
        self.config = config
        self.filters = build_filters(config)
        self._logger = structlog.get_logger(name)

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.ERROR, message, fields)

    def critical(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.CRITICAL, message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback attached."""
        self._emit(LogLevel.ERROR, message, {**fields, "exc_info": True})

    def _emit(self, level: LogLevel, message: str, fields: dict[str, Any]) -> None:
        if level.numeric < self.config.level.numeric:
            return

        record = {"message": message, **fields}
        for log_filter in self.filters:
            record = log_filter.filter(record)

        event = record.pop("message")
        getattr(self._logger, level.method_name)(event, **record)


def build_processors(config: LogConfig) -> list[Any]:
    """Assemble the structlog processor chain for `config`."""
    processors: list[Any] = [
        merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    if config.enable_timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if config.enable_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )
    if config.enable_exception_info:
        processors += [structlog.processors.StackInfoRenderer(), structlog.processors.format_exc_info]

    processors.append(structlog.processors.UnicodeDecoder())
    match config.format:
        case LogFormat.JSON:
            processors.append(structlog.processors.JSONRenderer(sort_keys=True))
        case LogFormat.CONSOLE:
            processors.append(structlog.dev.ConsoleRenderer(colors=True))
        case LogFormat.PLAIN:
            processors.append(structlog.processors.KeyValueRenderer(key_order=["event"]))
    return processors


class LoggerFactory:
    """Owns one `LogConfig`, configures structlog from it, and caches loggers by name."""

    def __init__(self, config: LogConfig):
        self.config = config
        self._loggers: dict[str, StructuredLogger] = {}
        self._configured = False

    def configure_logging(self) -> None:
        if self._configured:
            return

        structlog.configure(
            processors=build_processors(self.config),
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(format="%(message)s", stream=sys.stdout, level=self.config.level.numeric)

        if self.config.environment.is_production:
            for name in CHATTY_LOGGERS:
                logging.getLogger(name).setLevel(logging.WARNING)

        self._configured = True

    def get_logger(self, name: str) -> StructuredLogger:
        self.configure_logging()
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, self.config)
        return self._loggers[name]


_logger_factory: LoggerFactory | None = None


def configure_logging(config: LogConfig | None = None) -> None:
    """Replace the process-wide logger factory; called once at bootstrap."""
    global _logger_factory  # noqa: PLW0603 - Required to initialize global factory

    _logger_factory = LoggerFactory(config or LogConfig())
    _logger_factory.configure_logging()


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger, usually `get_logger(__name__)`.

    Loggers created before `configure_logging` runs use the default config.
    """
    if _logger_factory is None:
        configure_logging()
    return _logger_factory.get_logger(name)


__all__ = [
    "LogConfig",
    "LogFilter",
    "LoggerFactory",
    "MessageLengthFilter",
    "SensitiveDataFilter",
    "StructuredLogger",
    "build_filters",
    "build_processors",
    "configure_logging",
    "get_logger",
]
