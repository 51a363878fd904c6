"""Tests for environment loading and typed settings sections."""

import pytest

from notifier.core.config import (
    ChannelRateLimitConfig,
    EmailProviderConfig,
    EnvironmentLoader,
    QueueConfig,
    RateLimitConfig,
    RealtimeProvider,
    RealtimeProviderConfig,
    RetryPolicyConfig,
    Settings,
)
from notifier.core.enums import Environment, LogFormat, LogLevel
from notifier.core.errors import ConfigurationError


class TestEnvironmentLoader:
    """Test suite for EnvironmentLoader."""

    def test_env_file_values_are_loaded(self, isolated_env, tmp_path):
        """Test that quoted and unquoted values are read from the env file."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "APP_NAME=\"Notifier Test\"\n"
            "SMTP_PORT=2525\n"
            "not a pair\n"
            "PUSHER_CLUSTER='eu'\n"
        )

        loader = EnvironmentLoader(str(env_file))

        assert loader.get_string("APP_NAME") == "Notifier Test"
        assert loader.get_integer("SMTP_PORT") == 2525
        assert loader.get_string("PUSHER_CLUSTER") == "eu"

    def test_process_environment_wins_over_env_file(self, isolated_env, tmp_path):
        """Test that variables already set are not overwritten by the file."""
        env_file = tmp_path / ".env"
        env_file.write_text("APP_NAME=from-file\n")
        isolated_env.setenv("APP_NAME", "from-env")

        loader = EnvironmentLoader(str(env_file))

        assert loader.get_string("APP_NAME") == "from-env"

    def test_missing_env_file_is_ignored(self, isolated_env, tmp_path):
        """Test that a missing env file is not an error."""
        loader = EnvironmentLoader(str(tmp_path / "missing.env"))

        assert loader.get_string("APP_NAME", "default") == "default"

    def test_typed_getters(self, isolated_env):
        """Test type conversion of environment values."""
        isolated_env.setenv("SMTP_SECURE", "yes")
        isolated_env.setenv("NOTIFICATION_EMAIL_TIMEOUT", "2.5")
        isolated_env.setenv("REALTIME_PROVIDER", "SOKETI")
        loader = EnvironmentLoader(None)

        assert loader.get_boolean("SMTP_SECURE") is True
        assert loader.get_float("NOTIFICATION_EMAIL_TIMEOUT") == 2.5
        assert loader.get_enum("REALTIME_PROVIDER", RealtimeProvider) == RealtimeProvider.SOKETI

    def test_invalid_integer_raises_configuration_error(self, isolated_env):
        """Test that a non numeric integer setting is rejected."""
        isolated_env.setenv("SMTP_PORT", "not-a-port")
        loader = EnvironmentLoader(None)

        with pytest.raises(ConfigurationError) as exc_info:
            loader.get_integer("SMTP_PORT")

        assert exc_info.value.details["config_key"] == "SMTP_PORT"

    def test_integer_bounds_are_enforced(self, isolated_env):
        isolated_env.setenv("NOTIFICATION_QUEUE_CONCURRENCY", "0")
        loader = EnvironmentLoader(None)

        with pytest.raises(ConfigurationError):
            loader.get_integer("NOTIFICATION_QUEUE_CONCURRENCY", min_value=1)

    def test_required_value_missing(self, isolated_env):
        loader = EnvironmentLoader(None)

        with pytest.raises(ConfigurationError):
            loader.get_string("SMTP_HOST", required=True)

    def test_unknown_enum_value(self, isolated_env):
        isolated_env.setenv("REALTIME_PROVIDER", "ably")
        loader = EnvironmentLoader(None)

        with pytest.raises(ConfigurationError):
            loader.get_enum("REALTIME_PROVIDER", RealtimeProvider)


class TestSettings:
    """Test suite for Settings."""

    def test_defaults_without_environment(self, isolated_env):
        """Test the defaults applied when nothing is configured."""
        settings = Settings(env_file=None)

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.log_level == LogLevel.INFO
        assert settings.email.smtp_configured is False
        assert settings.email.resend_configured is False
        assert settings.push.is_configured is False
        assert settings.realtime.is_configured is False
        assert settings.retry.max_attempts == 3
        assert settings.retry.initial_delay_ms == 1000
        assert settings.retry.max_delay_ms == 60000
        assert settings.queue.concurrency == 4
        assert settings.queue.job_attempts == 3
        assert settings.queue.backoff_delay_ms == 5000

    def test_default_rate_limits(self, isolated_env):
        """Test the per channel rate limit defaults."""
        limits = Settings(env_file=None).rate_limits

        assert limits.for_channel("email") == ChannelRateLimitConfig(10, 200, 1000, 3)
        assert limits.for_channel("push") == ChannelRateLimitConfig(30, 500, 5000, 5)
        assert limits.for_channel("realtime") == ChannelRateLimitConfig(100, 2000, 20000, 10)
        assert limits.cleanup_interval_ms == 300000

    def test_channel_timeouts(self, isolated_env):
        isolated_env.setenv("NOTIFICATION_PUSH_TIMEOUT", "3")

        timeouts = Settings(env_file=None).get_channel_timeouts()

        assert timeouts == {"email": 30.0, "push": 3.0, "realtime": 5.0}

    def test_email_provider_from_environment(self, isolated_env):
        """Test SMTP and Resend credentials loading."""
        isolated_env.setenv("SMTP_HOST", "smtp.example.com")
        isolated_env.setenv("SMTP_PORT", "465")
        isolated_env.setenv("SMTP_USER", "mailer")
        isolated_env.setenv("SMTP_PASS", "s3cret")
        isolated_env.setenv("SMTP_SECURE", "true")
        isolated_env.setenv("RESEND_API_KEY", "re_123")

        email = Settings(env_file=None).email

        assert email.smtp_configured is True
        assert email.resend_configured is True
        assert email.smtp_port == 465
        assert email.smtp_secure is True

    def test_rate_limit_overrides(self, isolated_env):
        isolated_env.setenv("NOTIFICATION_EMAIL_LIMIT_PER_MINUTE", "2")
        isolated_env.setenv("NOTIFICATION_EMAIL_BURST_LIMIT", "1")

        email_limits = Settings(env_file=None).rate_limits.for_channel("EMAIL")

        assert email_limits.per_minute == 2
        assert email_limits.burst == 1
        assert email_limits.per_hour == 200

    def test_soketi_realtime_provider(self, isolated_env):
        """Test that a Soketi provider targets the configured host."""
        isolated_env.setenv("REALTIME_PROVIDER", "soketi")
        isolated_env.setenv("PUSHER_APP_ID", "app-1")
        isolated_env.setenv("PUSHER_KEY", "key")
        isolated_env.setenv("PUSHER_SECRET", "secret")
        isolated_env.setenv("SOKETI_HOST", "soketi.internal")
        isolated_env.setenv("SOKETI_PORT", "6002")

        realtime = Settings(env_file=None).realtime

        assert realtime.provider == RealtimeProvider.SOKETI
        assert realtime.is_configured is True
        assert realtime.base_url == "http://soketi.internal:6002"

    def test_log_config_follows_environment(self, isolated_env):
        isolated_env.setenv("ENVIRONMENT", "prod")
        isolated_env.setenv("LOG_LEVEL", "warning")

        log_config = Settings(env_file=None).get_log_config()

        assert log_config.level == LogLevel.WARNING
        assert log_config.format == LogFormat.JSON

    def test_unknown_log_level_rejected(self, isolated_env):
        isolated_env.setenv("LOG_LEVEL", "verbose")

        with pytest.raises(ConfigurationError) as exc_info:
            Settings(env_file=None)

        assert exc_info.value.details["config_key"] == "LOG_LEVEL"


class TestConfigSections:
    """Test suite for the settings dataclasses."""

    def test_pusher_base_url_uses_cluster(self):
        config = RealtimeProviderConfig(cluster="eu")

        assert config.base_url == "https://api-eu.pusher.com"

    def test_unknown_channel_uses_default_limits(self):
        config = RateLimitConfig()

        assert config.for_channel("sms") == config.limits["default"]

    def test_invalid_smtp_port(self):
        with pytest.raises(ConfigurationError):
            EmailProviderConfig(smtp_port=70000)

    def test_rate_limit_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            ChannelRateLimitConfig(per_minute=0, per_hour=1, per_day=1, burst=1)

    def test_retry_policy_validation(self):
        """Test that inconsistent retry delays are rejected."""
        with pytest.raises(ConfigurationError):
            RetryPolicyConfig(initial_delay_ms=5000, max_delay_ms=1000)
        with pytest.raises(ConfigurationError):
            RetryPolicyConfig(max_attempts=0)
        with pytest.raises(ConfigurationError):
            RetryPolicyConfig(backoff_multiplier=0.5)

    def test_queue_config_validation(self):
        with pytest.raises(ConfigurationError):
            QueueConfig(concurrency=0)
