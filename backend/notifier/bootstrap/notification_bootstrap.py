"""
Notification module bootstrap configuration.

This module handles the initialization and dependency injection setup
for the notification engine.
"""

from dependency_injector import containers, providers
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notifier.core.config import Settings, get_settings
from notifier.core.logging import configure_logging, get_logger
from notifier.modules.notification.application.services import (
    EventNotificationService,
    NotificationProcessor,
    TemplateManager,
    TemplateValidationService,
)
from notifier.modules.notification.infrastructure.adapters import DispatcherFactory
from notifier.modules.notification.infrastructure.engines.jinja_engine import (
    JinjaTemplateRenderer,
)
from notifier.modules.notification.infrastructure.repositories import (
    InMemoryNotificationTemplateRepository,
    SqlNotificationTemplateRepository,
)
from notifier.modules.notification.infrastructure.services.audit_service import (
    InMemoryAuditService,
)
from notifier.modules.notification.infrastructure.services.queue_service import (
    NotificationJobQueue,
)
from notifier.modules.notification.infrastructure.services.rate_limiting_service import (
    RateLimitingService,
)
from notifier.modules.notification.infrastructure.services.retry_service import (
    RetryService,
)

logger = get_logger(__name__)


class NotificationContainer(containers.DeclarativeContainer):
    """Notification module dependency injection container."""

    # Injected by the bootstrap
    config = providers.Dependency(instance_of=Settings)

    # Collaborators, overridable by the host application
    template_repository = providers.Singleton(InMemoryNotificationTemplateRepository)
    audit_service = providers.Singleton(InMemoryAuditService)

    # Infrastructure services
    template_renderer = providers.Singleton(JinjaTemplateRenderer)

    dispatcher_factory = providers.Singleton(DispatcherFactory.from_settings, config)

    rate_limiter = providers.Singleton(
        RateLimitingService,
        config=config.provided.rate_limits,
    )

    retry_service = providers.Singleton(
        RetryService,
        policy=config.provided.retry,
    )

    job_queue = providers.Singleton(
        NotificationJobQueue,
        config=config.provided.queue,
    )

    # Application services
    template_validation_service = providers.Singleton(
        TemplateValidationService,
        renderer=template_renderer,
    )

    template_manager = providers.Singleton(
        TemplateManager,
        repository=template_repository,
        validation_service=template_validation_service,
        audit_service=audit_service,
    )

    notification_processor = providers.Singleton(
        NotificationProcessor,
        repository=template_repository,
        renderer=template_renderer,
        dispatcher_factory=dispatcher_factory,
        rate_limiter=rate_limiter,
        retry_service=retry_service,
        audit_service=audit_service,
        channel_timeouts=config.provided.get_channel_timeouts.call(),
    )

    event_notification_service = providers.Singleton(
        EventNotificationService,
        queue=job_queue,
        processor=notification_processor,
        rate_limiter=rate_limiter,
        dispatcher_factory=dispatcher_factory,
    )


class NotificationBootstrap:
    """Bootstrap class for the notification engine."""

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        """
        Initialize notification bootstrap.

        Args:
            settings: Application settings, loaded from the environment if omitted
            session_factory: Enables SQL template storage when given
        """
        self.settings = settings or get_settings()
        self.session_factory = session_factory

    def bootstrap(self) -> NotificationContainer:
        """
        Bootstrap the notification engine.

        Returns:
            NotificationContainer: Configured container
        """
        configure_logging(self.settings.get_log_config())
        logger.info(
            "Bootstrapping notification engine",
            environment=self.settings.environment.value,
            template_storage="sql" if self.session_factory else "memory",
        )

        container = NotificationContainer()
        container.config.override(self.settings)

        if self.session_factory is not None:
            container.template_repository.override(
                providers.Singleton(
                    SqlNotificationTemplateRepository,
                    session_factory=self.session_factory,
                )
            )

        self._log_channel_configuration()
        return container

    def _log_channel_configuration(self) -> None:
        settings = self.settings
        logger.info(
            "Notification channels configured",
            email_smtp=settings.email.smtp_configured,
            email_resend=settings.email.resend_configured,
            push=settings.push.is_configured,
            realtime=settings.realtime.is_configured,
            realtime_provider=settings.realtime.provider.value,
        )
