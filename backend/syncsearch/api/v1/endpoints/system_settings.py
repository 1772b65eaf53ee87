"""System settings endpoints."""

from fastapi import APIRouter, Depends

from syncsearch import schemas
from syncsearch.api.deps import get_client_service
from syncsearch.core.client_service import ClientService

router = APIRouter()


@router.get("")
async def get_settings(
    client_service: ClientService = Depends(get_client_service),
) -> dict:
    """Current settings; the API key is reported only as configured or not."""
    current = await client_service.get_settings()
    return {
        "summarization_api_key_configured": bool(current.summarization_api_key),
        "summary_model": current.summary_model,
        "completion_model": current.completion_model,
    }


@router.put("")
async def save_settings(
    settings_in: schemas.SystemSettingsUpdate,
    client_service: ClientService = Depends(get_client_service),
) -> dict:
    """Save settings."""
    saved = await client_service.save_settings(settings_in)
    return {
        "summarization_api_key_configured": bool(saved.summarization_api_key),
        "summary_model": saved.summary_model,
        "completion_model": saved.completion_model,
    }
