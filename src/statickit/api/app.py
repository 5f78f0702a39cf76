"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status

from statickit.api.dependencies import require_api_token
from statickit.api.keys import router as keys_router
from statickit.app_logging import configure_logging
from statickit.containers import AppContainer
from statickit.services.formatting import format_bytes, get_relative_time


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies.

    Session state lives in the editor process that embeds this app; it feeds
    changes in through ``container.persistence_service.schedule_save`` and
    reads them back with ``restore_session``. The HTTP routes only expose the
    saved session's summary, its images and provider key management. The
    lifespan runs the auto-save loop and writes any pending state on shutdown.
    """
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        await state_container.persistence_service.start()
        yield
        try:
            await state_container.persistence_service.close()
        except Exception:
            logger.exception("Failed to write pending session on shutdown")
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(keys_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session", dependencies=[Depends(require_api_token)])
    async def session_summary(request: Request) -> dict[str, object]:
        """Describe the saved session for the resume prompt."""
        state_container: AppContainer = request.app.state.container
        persistence = state_container.persistence_service
        record = state_container.storage.load_session()
        if record is None:
            return {"exists": False, "size": 0, "size_formatted": format_bytes(0)}
        size = state_container.storage.get_session_size()
        return {
            "exists": True,
            "saved_at": record.saved_at.isoformat(),
            "last_saved": get_relative_time(record.saved_at),
            "thumbnail_url": (
                f"/images/{record.thumbnail_id}" if record.thumbnail_id else None
            ),
            "size": size,
            "size_formatted": format_bytes(size),
            "is_large": size > persistence.size_warning_bytes,
            "is_very_large": size > persistence.size_danger_bytes,
        }

    @app.delete("/session", dependencies=[Depends(require_api_token)])
    async def clear_session(request: Request) -> dict[str, str]:
        """Delete the saved session and every image it references."""
        state_container: AppContainer = request.app.state.container
        await state_container.persistence_service.clear_session_data()
        return {"status": "ok"}

    @app.get("/images/{image_id}", dependencies=[Depends(require_api_token)])
    async def get_image(image_id: str, request: Request) -> Response:
        """Return a stored image's bytes."""
        state_container: AppContainer = request.app.state.container
        stored = state_container.storage.get_image(image_id)
        if stored is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return Response(content=stored.data, media_type=stored.mime_type)

    return app
