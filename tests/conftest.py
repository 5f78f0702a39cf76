"""Shared test fixtures."""

import io
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

import httpx
import pytest
from PIL import Image

from statickit.adapters.httpx_image_fetcher import HttpxImageFetcher
from statickit.config import Settings
from statickit.containers import AppContainer
from statickit.domain.images import StorageQuotaExceededError, StoredImage
from statickit.domain.keys import EncryptedData, Provider, StoredKeySummary
from statickit.domain.records import SessionRecord
from statickit.services.api_keys import ApiKeyRepository, ApiKeyService
from statickit.services.encryption import KeyCipher
from statickit.services.key_validation import KeyCheckClient, KeyValidationService
from statickit.services.object_urls import ObjectUrlRegistry
from statickit.services.persistence import SessionPersistenceService
from statickit.services.storage import SessionStorageService, SessionStore

TEST_ENCRYPTION_KEY = "00112233445566778899aabbccddeeff" * 2


def make_png(color: str = "red", size: tuple[int, int] = (64, 48)) -> bytes:
    """Return PNG bytes of a solid-colour image."""
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 1000.0

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class InMemorySessionStore(SessionStore):
    """In-memory session store for tests."""

    record: SessionRecord | None = None
    images: dict[str, StoredImage] = field(default_factory=dict)
    quota_bytes: int | None = None
    session_writes: int = 0
    closed: bool = False

    def put_session(self, record: SessionRecord) -> None:
        self._check_quota(len(record.model_dump_json()))
        self.record = record
        self.session_writes += 1

    def get_session(self) -> SessionRecord | None:
        return self.record

    def delete_session(self) -> None:
        self.record = None

    def put_image(self, image: StoredImage) -> None:
        self._check_quota(image.size)
        self.images[image.id] = image

    def get_image(self, image_id: str) -> StoredImage | None:
        return self.images.get(image_id)

    def has_image(self, image_id: str) -> bool:
        return image_id in self.images

    def delete_image(self, image_id: str) -> None:
        self.images.pop(image_id, None)

    def image_count(self) -> int:
        return len(self.images)

    def total_image_bytes(self) -> int:
        return sum(image.size for image in self.images.values())

    def close(self) -> None:
        self.closed = True

    def _check_quota(self, additional_bytes: int) -> None:
        if self.quota_bytes is None:
            return
        if self.total_image_bytes() + additional_bytes > self.quota_bytes:
            raise StorageQuotaExceededError("quota exceeded")


@dataclass
class InMemoryApiKeyRepository(ApiKeyRepository):
    """In-memory API key repository for tests."""

    rows: dict[tuple[str, str], dict[str, object]] = field(default_factory=dict)

    def store_key(
        self,
        user_id: str,
        provider: Provider,
        data: EncryptedData,
        key_prefix: str,
    ) -> str:
        now = datetime.now(tz=UTC)
        existing = self.rows.get((user_id, provider))
        row_id = str(existing["id"]) if existing else str(uuid4())
        self.rows[(user_id, provider)] = {
            "id": row_id,
            "data": data,
            "key_prefix": key_prefix,
            "created_at": existing["created_at"] if existing else now,
            "updated_at": now,
        }
        return row_id

    def remove_key(self, user_id: str, provider: Provider) -> bool:
        return self.rows.pop((user_id, provider), None) is not None

    def list_keys(self, user_id: str) -> list[StoredKeySummary]:
        return [
            StoredKeySummary(
                id=str(row["id"]),
                provider=provider,  # type: ignore[arg-type]
                key_prefix=str(row["key_prefix"]),
                created_at=row["created_at"],  # type: ignore[arg-type]
                updated_at=row["updated_at"],  # type: ignore[arg-type]
            )
            for (owner, provider), row in self.rows.items()
            if owner == user_id
        ]

    def get_encrypted_key(
        self, user_id: str, provider: Provider
    ) -> EncryptedData | None:
        row = self.rows.get((user_id, provider))
        if row is None:
            return None
        return row["data"]  # type: ignore[return-value]


@dataclass
class FakeKeyCheckClient(KeyCheckClient):
    """Key check client answering with a fixed status code."""

    status_code: int = 200
    checked: list[str] = field(default_factory=list)

    async def check_key(self, api_key: str) -> int:
        self.checked.append(api_key)
        return self.status_code


def _offline_transport(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404)


def build_storage(
    store: SessionStore | None = None,
) -> tuple[SessionStorageService, ObjectUrlRegistry]:
    """Create a storage context over an in-memory store and registry."""
    object_urls = ObjectUrlRegistry()
    fetcher = HttpxImageFetcher(
        object_urls=object_urls,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_offline_transport)),
    )
    storage = SessionStorageService(
        store=store or InMemorySessionStore(),
        fetcher=fetcher,
        object_urls=object_urls,
    )
    return storage, object_urls


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path),
        encryption_key=TEST_ENCRYPTION_KEY,
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        api_token="api-token",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def storage(store: InMemorySessionStore) -> SessionStorageService:
    return build_storage(store)[0]


@pytest.fixture
def persistence(
    storage: SessionStorageService, clock: FakeClock
) -> SessionPersistenceService:
    return SessionPersistenceService.create(storage, clock=clock)


@pytest.fixture
def key_repository() -> InMemoryApiKeyRepository:
    return InMemoryApiKeyRepository()


@pytest.fixture
def container(
    settings: Settings,
    storage: SessionStorageService,
    persistence: SessionPersistenceService,
    key_repository: InMemoryApiKeyRepository,
) -> AppContainer:
    api_key_service = ApiKeyService(
        repository=key_repository,
        cipher=KeyCipher.from_hex(settings.encryption_key),
    )
    key_validation_service = KeyValidationService(
        clients={
            "gemini": FakeKeyCheckClient(),
            "openai": FakeKeyCheckClient(status_code=401),
            "dashscope": FakeKeyCheckClient(),
        }
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        storage=storage,
        persistence_service=persistence,
        api_key_service=api_key_service,
        key_validation_service=key_validation_service,
        close_resources=close_resources,
    )
