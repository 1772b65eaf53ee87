"""Endpoints for AI-assisted edits of tabular items."""

from uuid import UUID

from fastapi import APIRouter, Depends

from syncsearch import schemas
from syncsearch.api.deps import get_data_editor_service
from syncsearch.core.data_editor_service import DataEditorService

router = APIRouter()


@router.post("/{client_id}/items/{item_id}/edit-plan", response_model=schemas.EditPlan)
async def generate_edit_plan(
    client_id: UUID,
    item_id: UUID,
    request: schemas.EditPlanRequest,
    data_editor: DataEditorService = Depends(get_data_editor_service),
) -> schemas.EditPlan:
    """Propose an edit of a CSV item from a natural-language instruction."""
    return await data_editor.generate_plan(client_id, item_id, request)


@router.post("/{client_id}/items/{item_id}/edit", response_model=schemas.Client)
async def apply_edit(
    client_id: UUID,
    item_id: UUID,
    request: schemas.ApplyEditRequest,
    data_editor: DataEditorService = Depends(get_data_editor_service),
) -> schemas.Client:
    """Write a confirmed CSV back to the source and resync the item."""
    return (await data_editor.apply_plan(client_id, item_id, request)).redacted()
