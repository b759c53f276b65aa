"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from style_bot.adapters.gemini_image_client import HttpxGeminiImageEditor
from style_bot.adapters.google_credentials import ServiceAccountTokenProvider
from style_bot.adapters.google_sheets_source import HttpxGoogleSheetsSource
from style_bot.adapters.json_seen_user_repository import JsonFileSeenUserRepository
from style_bot.adapters.openai_image_client import OpenAIImageEditor
from style_bot.adapters.supabase_seen_user_repository import (
    SupabaseSeenUserRepository,
)
from style_bot.adapters.telegram_client import HttpxTelegramClient, TelegramClient
from style_bot.adapters.telegram_file_client import (
    HttpxTelegramFileClient,
    TelegramFileClient,
)
from style_bot.config import Settings
from style_bot.domain.catalog import ProviderId
from style_bot.services.catalog import StyleCatalog, parse_provider_marker
from style_bot.services.flow import FlowController
from style_bot.services.providers import ImageEditor, ProviderGateway
from style_bot.services.sessions import StyleSessionStore
from style_bot.services.users import SeenUserRepository, UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    telegram_file_client: TelegramFileClient
    catalog: StyleCatalog
    sessions: StyleSessionStore
    user_service: UserService
    flow: FlowController
    close_resources: Callable[[], Awaitable[None]]


def build_seen_user_repository(settings: Settings) -> SeenUserRepository:
    """Create the configured seen user repository."""
    if settings.seen_users_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required "
                "for the supabase seen users backend"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseSeenUserRepository(client)
    return JsonFileSeenUserRepository(settings.seen_users_path)


def build_sheets_source(settings: Settings) -> HttpxGoogleSheetsSource:
    """Create the Sheets source, preferring service-account credentials."""
    token_provider = None
    if settings.google_application_credentials:
        token_provider = ServiceAccountTokenProvider.from_file(
            settings.google_application_credentials
        )
    elif not settings.google_sheets_api_key:
        raise ValueError(
            "GOOGLE_APPLICATION_CREDENTIALS or GOOGLE_SHEETS_API_KEY is required"
        )
    return HttpxGoogleSheetsSource.create(
        spreadsheet_id=settings.spreadsheet_id,
        cell_range=settings.spreadsheet_range,
        api_key=settings.google_sheets_api_key,
        token_provider=token_provider,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    default_provider = parse_provider_marker(resolved_settings.default_provider)
    if default_provider is None:
        raise ValueError(
            f"Unknown default provider: {resolved_settings.default_provider}"
        )

    sheets_source = build_sheets_source(resolved_settings)
    catalog = StyleCatalog(source=sheets_source, default_provider=default_provider)
    sessions = StyleSessionStore(
        ttl=timedelta(seconds=resolved_settings.session_ttl_seconds)
    )
    user_service = UserService(build_seen_user_repository(resolved_settings))

    editors: dict[ProviderId, ImageEditor] = {
        ProviderId.OPENAI: OpenAIImageEditor.create(
            api_key=resolved_settings.openai_api_key,
            model=resolved_settings.openai_model,
            size=resolved_settings.openai_image_size,
            timeout_seconds=resolved_settings.provider_timeout_seconds,
        )
    }
    gemini_editor: HttpxGeminiImageEditor | None = None
    if resolved_settings.gemini_api_key:
        gemini_editor = HttpxGeminiImageEditor.create(
            api_key=resolved_settings.gemini_api_key,
            model=resolved_settings.gemini_model,
            base_url=resolved_settings.gemini_base_url,
            timeout_seconds=resolved_settings.provider_timeout_seconds,
        )
        editors[ProviderId.GEMINI] = gemini_editor

    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )
    flow = FlowController(
        catalog=catalog,
        sessions=sessions,
        users=user_service,
        gateway=ProviderGateway(editors),
    )

    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()
        await sheets_source.close()
        if gemini_editor is not None:
            await gemini_editor.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        catalog=catalog,
        sessions=sessions,
        user_service=user_service,
        flow=flow,
        close_resources=close_resources,
    )
