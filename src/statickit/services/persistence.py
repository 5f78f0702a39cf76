"""Auto-saving and restoring of the current editing session."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from statickit.domain.images import StorageQuotaExceededError, detect_aspect_ratio
from statickit.domain.records import referenced_image_ids
from statickit.domain.sessions import ExistingSession, SessionState, UploadedImage
from statickit.services.formatting import format_bytes
from statickit.services.restorer import SessionRestorer
from statickit.services.scheduler import Clock, MonotonicClock, SaveScheduler
from statickit.services.serializer import SessionSerializer
from statickit.services.storage import SessionStorageService
from statickit.services.thumbnails import image_dimensions

_logger = logging.getLogger(__name__)

_MIB = 1024 * 1024


@dataclass
class SessionPersistenceService:
    """Keeps the local store in step with the in-memory session."""

    storage: SessionStorageService
    serializer: SessionSerializer
    restorer: SessionRestorer
    clock: Clock = field(default_factory=MonotonicClock)
    debounce_seconds: float = 2.0
    periodic_seconds: float = 30.0
    size_warning_bytes: int = 50 * _MIB
    size_danger_bytes: int = 100 * _MIB
    last_saved: datetime | None = field(default=None, init=False)
    session_size: int = field(default=0, init=False)
    has_existing_session: bool = field(default=False, init=False)
    scheduler: SaveScheduler[SessionState] = field(init=False)
    _runner: "asyncio.Task[None] | None" = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.scheduler = SaveScheduler(
            save=self.save,
            clock=self.clock,
            debounce_seconds=self.debounce_seconds,
            periodic_seconds=self.periodic_seconds,
        )

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        storage: SessionStorageService,
        *,
        clock: Clock | None = None,
        debounce_seconds: float = 2.0,
        periodic_seconds: float = 30.0,
        thumbnail_max_size: int = 200,
        size_warning_bytes: int = 50 * _MIB,
        size_danger_bytes: int = 100 * _MIB,
    ) -> "SessionPersistenceService":
        """Wire a persistence service around a storage context."""
        return cls(
            storage=storage,
            serializer=SessionSerializer(storage, thumbnail_max_size),
            restorer=SessionRestorer(storage),
            clock=clock or MonotonicClock(),
            debounce_seconds=debounce_seconds,
            periodic_seconds=periodic_seconds,
            size_warning_bytes=size_warning_bytes,
            size_danger_bytes=size_danger_bytes,
        )

    @property
    def is_saving(self) -> bool:
        return self.scheduler.is_saving

    @property
    def session_size_formatted(self) -> str:
        return format_bytes(self.session_size)

    @property
    def is_session_large(self) -> bool:
        return self.session_size > self.size_warning_bytes

    @property
    def is_session_very_large(self) -> bool:
        return self.session_size > self.size_danger_bytes

    async def start(self) -> None:
        """Load status from the store and start the auto-save loop."""
        self.refresh_status()
        if self._runner is None:
            self._runner = asyncio.create_task(self.scheduler.run())

    async def close(self) -> None:
        """Stop the auto-save loop and write any pending state."""
        self.scheduler.stop()
        if self._runner is not None:
            await self._runner
            self._runner = None
        await self.save_now()

    def refresh_status(self) -> None:
        self.has_existing_session = self.storage.has_session()
        self.session_size = self.storage.get_session_size()

    def schedule_save(self, state: SessionState) -> None:
        """Queue a debounced save of ``state``."""
        self.scheduler.schedule(state)

    async def save_now(self) -> bool | None:
        """Save the pending state immediately, e.g. before shutdown."""
        return await self.scheduler.flush()

    async def save(self, state: SessionState) -> bool:
        """Persist ``state`` as the current session.

        Returns False when the storage quota was exceeded; the previously
        saved session is left as it was. Other errors propagate.
        """
        if state.uploaded_image is None:
            return True

        try:
            serialized = await self.serializer.serialize(state)
        except StorageQuotaExceededError:
            self._discard(self.serializer.abandon_pass())
            _logger.warning("Storage quota exceeded - session save failed")
            return False
        except Exception:
            self._discard(self.serializer.abandon_pass())
            raise
        if serialized is None:
            return True

        previous = self.storage.load_session()
        try:
            self.storage.save_session(serialized.record)
        except StorageQuotaExceededError:
            self._discard(serialized.stored_image_ids)
            _logger.warning("Storage quota exceeded - session save failed")
            return False
        except Exception:
            self._discard(serialized.stored_image_ids)
            raise

        if previous is not None:
            superseded = referenced_image_ids(previous) - referenced_image_ids(
                serialized.record
            )
            self._discard(superseded)

        self.last_saved = datetime.now(tz=UTC)
        self.has_existing_session = True
        self.session_size = self.storage.get_session_size()
        return True

    def restore_session(self) -> SessionState | None:
        """Rebuild the saved session, or None when there is nothing usable."""
        record = self.storage.load_session()
        if record is None:
            return None
        return self.restorer.restore(record)

    async def clear_session_data(self) -> None:
        """Delete the saved session, its images and any pending save."""
        self.scheduler.cancel()
        await self.scheduler.wait_idle()
        self.scheduler.cancel()
        deleted = self.storage.clear_session()
        self.storage.release_object_urls()
        _logger.info("Cleared saved session (%s images)", len(deleted))
        self.serializer.reset()
        self.has_existing_session = False
        self.session_size = 0
        self.last_saved = None

    def check_for_existing_session(self) -> ExistingSession:
        """Summarise the saved session for the resume prompt."""
        record = self.storage.load_session()
        if record is None:
            return ExistingSession(
                exists=False, thumbnail_url=None, saved_at=None, size=0
            )
        thumbnail_url = (
            self.storage.get_image_url(record.thumbnail_id)
            if record.thumbnail_id
            else None
        )
        return ExistingSession(
            exists=True,
            thumbnail_url=thumbnail_url,
            saved_at=record.saved_at,
            size=self.storage.get_session_size(),
        )

    def create_uploaded_image(
        self, data: bytes, filename: str, mime_type: str
    ) -> UploadedImage:
        """Register a freshly uploaded file as the session's source image."""
        width, height = image_dimensions(data)
        key, label = detect_aspect_ratio(width, height)
        return UploadedImage(
            url=self.storage.object_urls.create(data, mime_type),
            filename=filename,
            width=width,
            height=height,
            aspect_ratio=label,
            aspect_ratio_key=key,
            file=data,
        )

    def _discard(self, image_ids: Iterable[str]) -> None:
        ids = list(image_ids)
        for image_id in ids:
            self.storage.delete_image(image_id)
        self.serializer.forget(ids)
