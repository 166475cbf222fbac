from __future__ import annotations

from dependency_injector import containers, providers

from core.settings import SETTINGS
from infra.resources import CompletionProviderResource, DatabaseResource


class InfrastructureContainer(containers.DeclarativeContainer):
    # Database connection pool
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
        ssl_insecure=SETTINGS.DATABASE.DATABASE_SSL,
    )

    # Completion provider (OpenAI-compatible)
    completion_provider = providers.Resource(
        CompletionProviderResource,
        api_key=SETTINGS.COMPLETION.LLM_API_KEY.get_secret_value(),
        model=SETTINGS.COMPLETION.LLM_MODEL,
        base_url=SETTINGS.COMPLETION.LLM_BASE_URL,
        timeout=SETTINGS.COMPLETION.LLM_TIMEOUT_SECONDS,
        max_retries=SETTINGS.COMPLETION.LLM_MAX_RETRIES,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    # Static store knowledge, read-only after startup
    store_name = providers.Object(SETTINGS.CHAT.STORE_NAME)
    store_knowledge = providers.Object(SETTINGS.CHAT.STORE_KNOWLEDGE)

    chat_service = providers.Factory(
        "api.features.chat.service.ChatService",
        completion_provider=infrastructure.completion_provider,
        store_name=store_name,
        store_knowledge=store_knowledge,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        chat_service=services.chat_service,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.shared.db",
            "api.features.chat.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
