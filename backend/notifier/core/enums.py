"""Shared enums for the notifier application."""

import logging
from enum import Enum


class Environment(Enum):
    """Deployment the notifier runs in, as set by ENVIRONMENT."""

    DEVELOPMENT = "dev"
    TESTING = "test"
    STAGING = "staging"
    PRODUCTION = "prod"

    @property
    def is_production(self) -> bool:
        return self == Environment.PRODUCTION


class LogLevel(Enum):
    """Log threshold, named after the stdlib level it maps to."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def numeric(self) -> int:
        return logging.getLevelName(self.value)

    @property
    def method_name(self) -> str:
        """Name of the logger method that emits at this level."""
        return self.value.lower()


class LogFormat(Enum):
    """Renderer used for log output."""

    JSON = "json"
    CONSOLE = "console"
    PLAIN = "plain"
