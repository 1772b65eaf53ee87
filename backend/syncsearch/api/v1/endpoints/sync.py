"""Sync endpoints."""

import asyncio
import json
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from syncsearch import schemas
from syncsearch.api.deps import get_sync_service
from syncsearch.core.exceptions import SyncInProgressError, SyncSearchException
from syncsearch.core.logging import logger
from syncsearch.core.shared_models import SyncTrigger
from syncsearch.core.sync_service import SyncService

router = APIRouter()

_DONE = object()


@router.post("/{client_id}/sync", response_model=schemas.Client)
async def sync_client(
    client_id: UUID,
    sync_in: Optional[schemas.SyncRequest] = None,
    stream: bool = Query(False, description="Stream progress events as NDJSON"),
    sync_service: SyncService = Depends(get_sync_service),
):
    """Run a manual sync.

    With ``stream=true`` the response is newline-delimited JSON: every progress
    event, then a final ``result`` (or ``error``) line.
    """
    sync_in = sync_in or schemas.SyncRequest()
    if not stream:
        client = await sync_service.run_sync(
            client_id,
            trigger=SyncTrigger.MANUAL,
            source_filter=sync_in.source,
            force_full_resync=sync_in.force_full_resync,
        )
        return client.redacted()

    # Surface a collision as a normal 409 before the stream starts.
    if sync_service.is_syncing(client_id):
        raise SyncInProgressError()

    return StreamingResponse(
        _stream_sync(sync_service, client_id, sync_in), media_type="application/x-ndjson"
    )


async def _stream_sync(
    sync_service: SyncService, client_id: UUID, sync_in: schemas.SyncRequest
) -> AsyncGenerator[str, None]:
    queue: asyncio.Queue = asyncio.Queue()

    async def run() -> None:
        try:
            client = await sync_service.run_sync(
                client_id,
                trigger=SyncTrigger.MANUAL,
                on_progress=queue.put,
                source_filter=sync_in.source,
                force_full_resync=sync_in.force_full_resync,
            )
            await queue.put({"type": "result", "client": client.redacted().model_dump(mode="json")})
        except SyncSearchException as e:
            await queue.put({"type": "error", "detail": e.message})
        except Exception as e:
            logger.error(f"Streaming sync for client {client_id} crashed: {e}", exc_info=True)
            await queue.put({"type": "error", "detail": "Internal error during sync"})
        finally:
            await queue.put(_DONE)

    task = asyncio.create_task(run())
    try:
        while True:
            message = await queue.get()
            if message is _DONE:
                break
            if isinstance(message, dict):
                yield json.dumps(message) + "\n"
            else:
                yield message.model_dump_json() + "\n"
    finally:
        await task


@router.post("/{client_id}/items/{item_id}/resync", response_model=schemas.Client)
async def resync_item(
    client_id: UUID,
    item_id: UUID,
    sync_service: SyncService = Depends(get_sync_service),
) -> schemas.Client:
    """Reprocess a single item."""
    return (await sync_service.resync_item(client_id, item_id)).redacted()
