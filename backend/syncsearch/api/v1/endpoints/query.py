"""Query endpoint, authenticated by the client's API key."""

from fastapi import APIRouter, Depends

from syncsearch import schemas
from syncsearch.api.deps import get_api_client, get_sync_service
from syncsearch.core.sync_service import SyncService

router = APIRouter()


@router.post("", response_model=schemas.QueryResponse)
async def query(
    query_in: schemas.QueryRequest,
    client: schemas.Client = Depends(get_api_client),
    sync_service: SyncService = Depends(get_sync_service),
) -> schemas.QueryResponse:
    """Answer a question from the client's indexed summaries."""
    return await sync_service.query(client, query_in)
