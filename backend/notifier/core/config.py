"""Application configuration management.

Configuration is read from environment variables (optionally seeded from a
`.env` file), converted and validated, and exposed through typed dataclass
sections hanging off a single `Settings` object.

Architecture:
- EnvironmentLoader: Environment variable loading with type conversion
- EmailProviderConfig: SMTP and managed email API credentials
- PushProviderConfig: OneSignal credentials
- RealtimeProviderConfig: Pusher / Soketi credentials
- ChannelRateLimitConfig / RateLimitConfig: Per-channel delivery limits
- RetryPolicyConfig: Exponential backoff policy for failed dispatches
- QueueConfig: Worker pool and job retry settings
- Settings: Main configuration class with all application settings
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any

from notifier.core.enums import Environment, LogLevel
from notifier.core.errors import ConfigurationError
from notifier.core.logging import LogConfig

# =====================================================================================
# VALUE VALIDATION
# =====================================================================================

_TRUE_VALUES = ("true", "1", "yes", "on")


def validate_string(value: Any, key: str, required: bool = False) -> str | None:
    if value is None or value == "":
        if required:
            raise ConfigurationError(f"{key} is required", config_key=key)
        return None
    return str(value)


def validate_integer(
    value: Any,
    key: str,
    required: bool = False,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int | None:
    if value is None or value == "":
        if required:
            raise ConfigurationError(f"{key} is required", config_key=key)
        return None
    try:
        val = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be an integer", config_key=key) from e
    if min_value is not None and val < min_value:
        raise ConfigurationError(f"{key} must be >= {min_value}", config_key=key)
    if max_value is not None and val > max_value:
        raise ConfigurationError(f"{key} must be <= {max_value}", config_key=key)
    return val


def validate_float(
    value: Any,
    key: str,
    required: bool = False,
    min_value: float | None = None,
) -> float | None:
    if value is None or value == "":
        if required:
            raise ConfigurationError(f"{key} is required", config_key=key)
        return None
    try:
        val = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be a number", config_key=key) from e
    if min_value is not None and val < min_value:
        raise ConfigurationError(f"{key} must be >= {min_value}", config_key=key)
    return val


def validate_boolean(value: Any, key: str, required: bool = False) -> bool | None:
    if value is None or value == "":
        if required:
            raise ConfigurationError(f"{key} is required", config_key=key)
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def validate_enum(
    value: Any, enum_class: type[Enum], key: str, required: bool = False
) -> Enum | None:
    if value is None or value == "":
        if required:
            raise ConfigurationError(f"{key} is required", config_key=key)
        return None
    if isinstance(value, enum_class):
        return value
    for member in enum_class:
        if str(value).lower() in (str(member.value).lower(), member.name.lower()):
            return member
    raise ConfigurationError(
        f"{key} must be one of {[m.name for m in enum_class]}", config_key=key
    )


# =====================================================================================
# ENVIRONMENT LOADER
# =====================================================================================


class EnvironmentLoader:
    """
    Environment variable loader with type conversion and validation.

    Values already present in the process environment win over values from
    the env file.
    """

    def __init__(self, env_file: str | None = ".env"):
        """
        Initialize environment loader.

        Args:
            env_file: Optional environment file to load
        """
        self.env_file = env_file
        self._load_env_file()

    def _load_env_file(self) -> None:
        """Load environment variables from file if it exists."""
        if not self.env_file or not os.path.exists(self.env_file):
            return

        try:
            with open(self.env_file, encoding="utf-8") as f:
                for raw_line in f:
                    line = raw_line.strip()

                    if not line or line.startswith("#") or "=" not in line:
                        continue

                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()

                    if (value.startswith('"') and value.endswith('"')) or (
                        value.startswith("'") and value.endswith("'")
                    ):
                        value = value[1:-1]

                    if key not in os.environ:
                        os.environ[key] = value

        except OSError as e:
            raise ConfigurationError(
                f"Failed to load environment file {self.env_file}: {e}"
            ) from e

    def get_string(
        self, key: str, default: str | None = None, required: bool = False
    ) -> str | None:
        """Get string value from environment."""
        return validate_string(os.environ.get(key, default), key, required)

    def get_integer(
        self, key: str, default: int | None = None, required: bool = False, **kwargs
    ) -> int | None:
        """Get integer value from environment."""
        return validate_integer(os.environ.get(key, default), key, required, **kwargs)

    def get_float(
        self, key: str, default: float | None = None, required: bool = False, **kwargs
    ) -> float | None:
        """Get float value from environment."""
        return validate_float(os.environ.get(key, default), key, required, **kwargs)

    def get_boolean(
        self, key: str, default: bool | None = None, required: bool = False
    ) -> bool | None:
        """Get boolean value from environment."""
        return validate_boolean(os.environ.get(key, default), key, required)

    def get_enum(
        self,
        key: str,
        enum_class: type[Enum],
        default: Enum | None = None,
        required: bool = False,
    ) -> Enum | None:
        """Get enum value from environment, matching by value or name."""
        return validate_enum(os.environ.get(key, default), enum_class, key, required)


# =====================================================================================
# CHANNEL PROVIDER CONFIGURATION
# =====================================================================================


@dataclass
class EmailProviderConfig:
    """
    Email delivery credentials.

    Both SMTP and the managed API may be configured; the dispatcher decides
    which one to use.
    """

    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_secure: bool = False

    resend_api_key: str | None = None
    resend_api_url: str = "https://api.resend.com"

    default_from: str = "noreply@notifier.local"
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if not 0 < self.smtp_port < 65536:
            raise ConfigurationError("SMTP port must be between 1 and 65535", config_key="SMTP_PORT")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("Email timeout must be positive")

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def resend_configured(self) -> bool:
        return bool(self.resend_api_key)


@dataclass
class PushProviderConfig:
    """OneSignal push credentials."""

    app_id: str | None = None
    api_key: str | None = None
    api_url: str = "https://onesignal.com/api/v1"
    timeout_seconds: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.app_id and self.api_key)


class RealtimeProvider(Enum):
    """Pusher-protocol realtime backends."""

    PUSHER = "pusher"
    SOKETI = "soketi"


@dataclass
class RealtimeProviderConfig:
    """Pusher compatible realtime credentials (hosted Pusher or self-hosted Soketi)."""

    provider: RealtimeProvider = RealtimeProvider.PUSHER
    app_id: str | None = None
    key: str | None = None
    secret: str | None = None
    cluster: str = "mt1"
    host: str = "127.0.0.1"
    port: int = 6001
    use_tls: bool = False
    timeout_seconds: float = 5.0

    @property
    def is_configured(self) -> bool:
        return bool(self.app_id and self.key and self.secret)

    @property
    def base_url(self) -> str:
        if self.provider == RealtimeProvider.SOKETI:
            scheme = "https" if self.use_tls else "http"
            return f"{scheme}://{self.host}:{self.port}"
        return f"https://api-{self.cluster}.pusher.com"


# =====================================================================================
# DELIVERY POLICY CONFIGURATION
# =====================================================================================


@dataclass(frozen=True)
class ChannelRateLimitConfig:
    """Sliding window limits for a single channel."""

    per_minute: int
    per_hour: int
    per_day: int
    burst: int

    def __post_init__(self):
        for name in ("per_minute", "per_hour", "per_day", "burst"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"Rate limit {name} must be at least 1")


DEFAULT_RATE_LIMITS: dict[str, ChannelRateLimitConfig] = {
    "default": ChannelRateLimitConfig(per_minute=60, per_hour=1000, per_day=10000, burst=5),
    "email": ChannelRateLimitConfig(per_minute=10, per_hour=200, per_day=1000, burst=3),
    "push": ChannelRateLimitConfig(per_minute=30, per_hour=500, per_day=5000, burst=5),
    "realtime": ChannelRateLimitConfig(per_minute=100, per_hour=2000, per_day=20000, burst=10),
}


@dataclass
class RateLimitConfig:
    """Rate limits keyed by lower-case channel name, plus the sweep interval."""

    limits: dict[str, ChannelRateLimitConfig] = field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )
    cleanup_interval_ms: int = 5 * 60 * 1000

    def __post_init__(self):
        if self.cleanup_interval_ms < 1000:
            raise ConfigurationError("Rate limit cleanup interval must be at least 1000ms")
        self.limits.setdefault("default", DEFAULT_RATE_LIMITS["default"])

    def for_channel(self, channel: str) -> ChannelRateLimitConfig:
        return self.limits.get(channel.lower(), self.limits["default"])


@dataclass(frozen=True)
class RetryPolicyConfig:
    """Exponential backoff policy: delay(n) = min(initial * multiplier^(n-1), max)."""

    max_attempts: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 60000
    backoff_multiplier: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigurationError("Retry max attempts must be at least 1")
        if self.initial_delay_ms < 0 or self.max_delay_ms < self.initial_delay_ms:
            raise ConfigurationError(
                "Retry delays must satisfy 0 <= initial delay <= max delay"
            )
        if self.backoff_multiplier < 1:
            raise ConfigurationError("Retry backoff multiplier must be >= 1")


@dataclass(frozen=True)
class QueueConfig:
    """Worker pool and job level retry settings."""

    concurrency: int = 4
    job_attempts: int = 3
    backoff_delay_ms: int = 5000
    clean_grace_ms: int = 24 * 60 * 60 * 1000

    def __post_init__(self):
        if self.concurrency < 1:
            raise ConfigurationError("Queue concurrency must be at least 1")
        if self.job_attempts < 1:
            raise ConfigurationError("Queue job attempts must be at least 1")


# =====================================================================================
# SETTINGS
# =====================================================================================


class Settings:
    """
    Main application settings.

    Usage Example:
        settings = Settings()

        settings.email.smtp_configured
        settings.rate_limits.for_channel("email").per_minute
        settings.retry.max_attempts
    """

    def __init__(self, env_file: str | None = ".env"):
        """
        Initialize settings with environment variable loading.

        Args:
            env_file: Environment file to load variables from
        """
        self.env_loader = EnvironmentLoader(env_file)

        self._load_application_config()
        self._load_email_config()
        self._load_push_config()
        self._load_realtime_config()
        self._load_rate_limit_config()
        self._load_retry_config()
        self._load_queue_config()

    def _load_application_config(self) -> None:
        self.app_name = self.env_loader.get_string("APP_NAME", "Notifier")
        self.environment = self.env_loader.get_enum(
            "ENVIRONMENT", Environment, Environment.DEVELOPMENT
        )
        self.debug = self.env_loader.get_boolean("DEBUG", False)
        self.log_level = self.env_loader.get_enum("LOG_LEVEL", LogLevel, LogLevel.INFO)

    def _load_email_config(self) -> None:
        loader = self.env_loader
        self.email = EmailProviderConfig(
            smtp_host=loader.get_string("SMTP_HOST"),
            smtp_port=loader.get_integer("SMTP_PORT", 587, min_value=1, max_value=65535),
            smtp_user=loader.get_string("SMTP_USER"),
            smtp_password=loader.get_string("SMTP_PASS"),
            smtp_secure=loader.get_boolean("SMTP_SECURE", False),
            resend_api_key=loader.get_string("RESEND_API_KEY"),
            resend_api_url=loader.get_string("RESEND_API_URL", "https://api.resend.com"),
            default_from=loader.get_string(
                "NOTIFICATION_DEFAULT_FROM", "noreply@notifier.local"
            ),
            timeout_seconds=loader.get_float("NOTIFICATION_EMAIL_TIMEOUT", 30.0, min_value=0.1),
        )

    def _load_push_config(self) -> None:
        loader = self.env_loader
        self.push = PushProviderConfig(
            app_id=loader.get_string("ONESIGNAL_APP_ID"),
            api_key=loader.get_string("ONESIGNAL_API_KEY"),
            api_url=loader.get_string("ONESIGNAL_API_URL", "https://onesignal.com/api/v1"),
            timeout_seconds=loader.get_float("NOTIFICATION_PUSH_TIMEOUT", 10.0, min_value=0.1),
        )

    def _load_realtime_config(self) -> None:
        loader = self.env_loader
        self.realtime = RealtimeProviderConfig(
            provider=loader.get_enum(
                "REALTIME_PROVIDER", RealtimeProvider, RealtimeProvider.PUSHER
            ),
            app_id=loader.get_string("PUSHER_APP_ID"),
            key=loader.get_string("PUSHER_KEY"),
            secret=loader.get_string("PUSHER_SECRET"),
            cluster=loader.get_string("PUSHER_CLUSTER", "mt1"),
            host=loader.get_string("SOKETI_HOST", "127.0.0.1"),
            port=loader.get_integer("SOKETI_PORT", 6001, min_value=1, max_value=65535),
            use_tls=loader.get_boolean("SOKETI_USE_TLS", False),
            timeout_seconds=loader.get_float("NOTIFICATION_REALTIME_TIMEOUT", 5.0, min_value=0.1),
        )

    def _load_rate_limit_config(self) -> None:
        limits = {"default": DEFAULT_RATE_LIMITS["default"]}
        for channel in ("email", "push", "realtime"):
            prefix = f"NOTIFICATION_{channel.upper()}"
            defaults = DEFAULT_RATE_LIMITS[channel]
            limits[channel] = ChannelRateLimitConfig(
                per_minute=self.env_loader.get_integer(
                    f"{prefix}_LIMIT_PER_MINUTE", defaults.per_minute, min_value=1
                ),
                per_hour=self.env_loader.get_integer(
                    f"{prefix}_LIMIT_PER_HOUR", defaults.per_hour, min_value=1
                ),
                per_day=self.env_loader.get_integer(
                    f"{prefix}_LIMIT_PER_DAY", defaults.per_day, min_value=1
                ),
                burst=self.env_loader.get_integer(
                    f"{prefix}_BURST_LIMIT", defaults.burst, min_value=1
                ),
            )

        self.rate_limits = RateLimitConfig(
            limits=limits,
            cleanup_interval_ms=self.env_loader.get_integer(
                "NOTIFICATION_RATE_LIMIT_CLEANUP_INTERVAL", 5 * 60 * 1000, min_value=1000
            ),
        )

    def _load_retry_config(self) -> None:
        self.retry = RetryPolicyConfig(
            max_attempts=self.env_loader.get_integer(
                "NOTIFICATION_MAX_RETRY_ATTEMPTS", 3, min_value=1
            ),
            initial_delay_ms=self.env_loader.get_integer(
                "NOTIFICATION_INITIAL_RETRY_DELAY", 1000, min_value=0
            ),
            max_delay_ms=self.env_loader.get_integer(
                "NOTIFICATION_MAX_RETRY_DELAY", 60000, min_value=0
            ),
            backoff_multiplier=self.env_loader.get_float(
                "NOTIFICATION_RETRY_BACKOFF_MULTIPLIER", 2.0, min_value=1.0
            ),
        )

    def _load_queue_config(self) -> None:
        self.queue = QueueConfig(
            concurrency=self.env_loader.get_integer(
                "NOTIFICATION_QUEUE_CONCURRENCY", 4, min_value=1
            ),
            job_attempts=self.env_loader.get_integer(
                "NOTIFICATION_JOB_ATTEMPTS", 3, min_value=1
            ),
            backoff_delay_ms=self.env_loader.get_integer(
                "NOTIFICATION_JOB_BACKOFF_DELAY", 5000, min_value=0
            ),
        )

    def get_log_config(self) -> LogConfig:
        """Build the logging configuration for the current environment."""
        return LogConfig(level=self.log_level, environment=self.environment)

    def get_channel_timeouts(self) -> dict[str, float]:
        return {
            "email": self.email.timeout_seconds,
            "push": self.push.timeout_seconds,
            "realtime": self.realtime.timeout_seconds,
        }


# =====================================================================================
# FACTORY FUNCTIONS
# =====================================================================================


@lru_cache
def get_settings(env_file: str | None = ".env") -> Settings:
    """
    Get cached settings instance.

    Args:
        env_file: Environment file to load

    Returns:
        Settings: Application settings
    """
    return Settings(env_file)


__all__ = [
    "DEFAULT_RATE_LIMITS",
    "ChannelRateLimitConfig",
    "EmailProviderConfig",
    "EnvironmentLoader",
    "PushProviderConfig",
    "QueueConfig",
    "RateLimitConfig",
    "RealtimeProvider",
    "RealtimeProviderConfig",
    "RetryPolicyConfig",
    "Settings",
    "get_settings",
]
