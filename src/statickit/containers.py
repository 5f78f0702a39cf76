"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from statickit.adapters.httpx_image_fetcher import HttpxImageFetcher
from statickit.adapters.httpx_key_clients import DashScopeKeyClient, GeminiKeyClient
from statickit.adapters.openai_key_client import OpenAIKeyClient
from statickit.adapters.sqlite_session_store import SQLiteSessionStore
from statickit.adapters.supabase_api_key_repository import SupabaseApiKeyRepository
from statickit.config import Settings
from statickit.services.api_keys import ApiKeyService
from statickit.services.encryption import KeyCipher
from statickit.services.key_validation import KeyValidationService
from statickit.services.object_urls import ObjectUrlRegistry
from statickit.services.persistence import SessionPersistenceService
from statickit.services.storage import SessionStorageService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    storage: SessionStorageService
    persistence_service: SessionPersistenceService
    api_key_service: ApiKeyService
    key_validation_service: KeyValidationService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    object_urls = ObjectUrlRegistry()
    store = SQLiteSessionStore.create(
        resolved_settings.database_path,
        quota_bytes=resolved_settings.storage_quota_bytes,
    )
    image_fetcher = HttpxImageFetcher.create(object_urls)
    storage = SessionStorageService(
        store=store, fetcher=image_fetcher, object_urls=object_urls
    )
    persistence_service = SessionPersistenceService.create(
        storage,
        debounce_seconds=resolved_settings.debounce_seconds,
        periodic_seconds=resolved_settings.periodic_save_seconds,
        thumbnail_max_size=resolved_settings.thumbnail_max_size,
        size_warning_bytes=resolved_settings.session_size_warning_bytes,
        size_danger_bytes=resolved_settings.session_size_danger_bytes,
    )

    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    api_key_service = ApiKeyService(
        repository=SupabaseApiKeyRepository(supabase_client),
        cipher=KeyCipher.from_hex(resolved_settings.encryption_key),
    )
    gemini_client = GeminiKeyClient.create(resolved_settings.gemini_base_url)
    dashscope_client = DashScopeKeyClient.create(resolved_settings.dashscope_base_url)
    key_validation_service = KeyValidationService(
        clients={
            "gemini": gemini_client,
            "openai": OpenAIKeyClient.create(),
            "dashscope": dashscope_client,
        }
    )

    async def close_resources() -> None:
        await image_fetcher.close()
        await gemini_client.close()
        await dashscope_client.close()
        store.close()

    return AppContainer(
        settings=resolved_settings,
        storage=storage,
        persistence_service=persistence_service,
        api_key_service=api_key_service,
        key_validation_service=key_validation_service,
        close_resources=close_resources,
    )
