"""Tests for the dispatcher registry."""

import pytest

from notifier.core.config import Settings
from notifier.modules.notification.domain.enums import DispatchStatus, NotificationChannel
from notifier.modules.notification.domain.errors import UnsupportedChannelError
from notifier.modules.notification.domain.value_objects import RenderedMessage
from notifier.modules.notification.infrastructure.adapters import (
    DispatcherFactory,
    EmailChannelDispatcher,
    PushChannelDispatcher,
    RealtimeChannelDispatcher,
)
from notifier.tests.conftest import ScriptedDispatcher


@pytest.fixture
def unconfigured_factory(isolated_env):
    return DispatcherFactory.from_settings(Settings(env_file=None))


class TestDispatcherResolution:
    """Test suite for resolving dispatchers by channel."""

    def test_from_settings_registers_every_channel(self, unconfigured_factory):
        assert isinstance(
            unconfigured_factory.get_dispatcher(NotificationChannel.EMAIL), EmailChannelDispatcher
        )
        assert isinstance(unconfigured_factory.get_dispatcher("push"), PushChannelDispatcher)
        assert isinstance(
            unconfigured_factory.get_dispatcher("Realtime"), RealtimeChannelDispatcher
        )
        assert unconfigured_factory.get_supported_channels() == list(NotificationChannel)

    def test_unknown_channel_raises(self, unconfigured_factory):
        with pytest.raises(UnsupportedChannelError):
            unconfigured_factory.get_dispatcher("SMS")

    def test_unregistered_channel_raises(self):
        factory = DispatcherFactory(
            {NotificationChannel.EMAIL: ScriptedDispatcher(NotificationChannel.EMAIL)}
        )

        with pytest.raises(UnsupportedChannelError):
            factory.get_dispatcher(NotificationChannel.PUSH)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("channel", list(NotificationChannel))
    async def test_unconfigured_channel_fails_instead_of_raising(
        self, unconfigured_factory, notification_payload, channel
    ):
        dispatcher = unconfigured_factory.get_dispatcher(channel)

        result = await dispatcher.send(RenderedMessage.from_text("hello"), notification_payload)

        assert result.status == DispatchStatus.FAILED
        assert "not configured" in result.error

    def test_register_replaces_dispatcher(self, unconfigured_factory):
        scripted = ScriptedDispatcher(NotificationChannel.PUSH)

        unconfigured_factory.register(NotificationChannel.PUSH, scripted)

        assert unconfigured_factory.get_dispatcher("PUSH") is scripted
        assert unconfigured_factory.is_channel_available(NotificationChannel.PUSH) is True
        assert unconfigured_factory.is_channel_available(NotificationChannel.EMAIL) is False


class TestChannelStatus:
    """Test suite for health and configuration reporting."""

    @pytest.mark.asyncio
    async def test_status_of_unconfigured_channels(self, unconfigured_factory):
        status = await unconfigured_factory.get_channels_status()

        assert set(status) == {"EMAIL", "PUSH", "REALTIME"}
        assert all(entry["healthy"] is False for entry in status.values())
        assert status["EMAIL"]["config"]["available_providers"] == []
        assert await unconfigured_factory.are_all_channels_healthy() is False

    @pytest.mark.asyncio
    async def test_all_healthy(self, dispatcher_factory):
        assert await dispatcher_factory.are_all_channels_healthy() is True

        await dispatcher_factory.aclose()
