"""Dependencies used by the API endpoints."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from syncsearch import schemas
from syncsearch.core.client_service import ClientService
from syncsearch.core.data_editor_service import DataEditorService
from syncsearch.core.exceptions import NotFoundException
from syncsearch.core.sync_service import SyncService
from syncsearch.db.store import DurableStore


def get_store(request: Request) -> DurableStore:
    """Durable store created in the app lifespan."""
    return request.app.state.store


def get_sync_service(request: Request) -> SyncService:
    """Sync service created in the app lifespan."""
    return request.app.state.sync_service


def get_client_service(request: Request) -> ClientService:
    """Client service created in the app lifespan."""
    return request.app.state.client_service


def get_data_editor_service(request: Request) -> DataEditorService:
    """Data editor service created in the app lifespan."""
    return request.app.state.data_editor_service


def _extract_api_key(x_api_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


async def get_api_client(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    authorization: Optional[str] = Header(None),
    store: DurableStore = Depends(get_store),
) -> schemas.Client:
    """Resolve the client owning the request's API key.

    Raises:
    ------
        HTTPException: 401 without a key, 403 for an unknown key.

    """
    api_key = _extract_api_key(x_api_key, authorization)
    if not api_key:
        raise HTTPException(status_code=401, detail="API key required")
    try:
        return await store.get_client_by_api_key(api_key)
    except NotFoundException as e:
        raise HTTPException(status_code=403, detail="Invalid API key") from e
