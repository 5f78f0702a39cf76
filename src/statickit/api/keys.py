"""API endpoints for encrypted provider key management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from statickit.api.dependencies import current_user_id, require_api_token
from statickit.domain.keys import Provider  # noqa: TC001
from statickit.services.encryption import get_masked_key

if TYPE_CHECKING:
    from statickit.containers import AppContainer

router = APIRouter(
    prefix="/keys", tags=["keys"], dependencies=[Depends(require_api_token)]
)

_logger = logging.getLogger(__name__)


class StoreKeyRequest(BaseModel):
    provider: Provider
    api_key: str


class ValidateKeyRequest(BaseModel):
    api_key: str


@router.post("")
async def store_key(
    body: StoreKeyRequest,
    request: Request,
    user_id: str = Depends(current_user_id),
) -> dict[str, object]:
    """Encrypt and store a provider key."""
    if not body.api_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="API key is required"
        )
    container: AppContainer = request.app.state.container
    key_prefix = container.api_key_service.store_key(
        user_id, body.provider, body.api_key
    )
    return {"success": True, "key_prefix": key_prefix}


@router.get("/list")
async def list_keys(
    request: Request, user_id: str = Depends(current_user_id)
) -> dict[str, object]:
    """Return masked data for every stored key."""
    container: AppContainer = request.app.state.container
    keys = container.api_key_service.list_keys(user_id)
    return {
        "keys": [
            {
                "id": key.id,
                "provider": key.provider,
                "key_prefix": key.key_prefix,
                "masked_key": get_masked_key(key.key_prefix),
                "created_at": key.created_at,
                "updated_at": key.updated_at,
            }
            for key in keys
        ]
    }


@router.get("/{provider}")
async def get_key(
    provider: Provider, request: Request, user_id: str = Depends(current_user_id)
) -> dict[str, str]:
    """Return the decrypted key for server-side provider calls."""
    container: AppContainer = request.app.state.container
    api_key = container.api_key_service.get_key(user_id, provider)
    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No API key found for this provider",
        )
    return {"api_key": api_key}


@router.delete("/{provider}")
async def remove_key(
    provider: Provider, request: Request, user_id: str = Depends(current_user_id)
) -> dict[str, bool]:
    """Remove a stored key."""
    container: AppContainer = request.app.state.container
    return {"success": container.api_key_service.remove_key(user_id, provider)}


@router.post("/{provider}/validate")
async def validate_key(
    provider: Provider, body: ValidateKeyRequest, request: Request
) -> dict[str, object]:
    """Check a key against its provider without storing it."""
    container: AppContainer = request.app.state.container
    result = await container.key_validation_service.validate(provider, body.api_key)
    if not result.valid:
        _logger.info("Rejected %s key: %s", provider, result.error)
    return {"valid": result.valid, "error": result.error}
