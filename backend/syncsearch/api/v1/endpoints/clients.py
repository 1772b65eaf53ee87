"""Client management endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from syncsearch import schemas
from syncsearch.api.deps import get_client_service, get_store
from syncsearch.core.client_service import ClientService
from syncsearch.db.store import DurableStore

router = APIRouter()


@router.get("", response_model=List[schemas.Client])
async def list_clients(
    client_service: ClientService = Depends(get_client_service),
) -> List[schemas.Client]:
    """List all clients."""
    return [client.redacted() for client in await client_service.list_clients()]


@router.post("", response_model=schemas.Client)
async def create_client(
    client_in: schemas.ClientCreate,
    client_service: ClientService = Depends(get_client_service),
) -> schemas.Client:
    """Create a client; the response carries its new API key."""
    client = await client_service.create_client(client_in)
    return client.redacted()


@router.get("/{client_id}", response_model=schemas.Client)
async def get_client(
    client_id: UUID,
    client_service: ClientService = Depends(get_client_service),
) -> schemas.Client:
    """Get a client with its tags and synced items."""
    return (await client_service.get_client(client_id)).redacted()


@router.patch("/{client_id}", response_model=schemas.Client)
async def update_client(
    client_id: UUID,
    client_update: schemas.ClientUpdate,
    client_service: ClientService = Depends(get_client_service),
) -> schemas.Client:
    """Update a client's name, sources, auto-sync interval or Telegram settings."""
    return (await client_service.update_client(client_id, client_update)).redacted()


@router.post("/{client_id}/api-key", response_model=schemas.Client)
async def regenerate_api_key(
    client_id: UUID,
    client_service: ClientService = Depends(get_client_service),
) -> schemas.Client:
    """Issue a new API key for a client."""
    return (await client_service.regenerate_api_key(client_id)).redacted()


@router.post("/{client_id}/tags", response_model=schemas.Tag)
async def add_tag(
    client_id: UUID,
    tag_in: schemas.TagCreate,
    client_service: ClientService = Depends(get_client_service),
) -> schemas.Tag:
    """Add a tag to a client."""
    return await client_service.add_tag(client_id, tag_in)


@router.delete("/{client_id}/tags/{tag_id}", status_code=204)
async def remove_tag(
    client_id: UUID,
    tag_id: UUID,
    client_service: ClientService = Depends(get_client_service),
) -> None:
    """Remove a tag from a client."""
    await client_service.remove_tag(client_id, tag_id)


@router.get("/{client_id}/items/search", response_model=List[schemas.ItemSearchResult])
async def search_items(
    client_id: UUID,
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    store: DurableStore = Depends(get_store),
) -> List[schemas.ItemSearchResult]:
    """Text search over a client's cached items."""
    items = await store.search_items(client_id, q, limit=limit)
    return [
        schemas.ItemSearchResult(
            remote_id=item.remote_id, name=item.name, source=item.source, summary=item.summary
        )
        for item in items
    ]
