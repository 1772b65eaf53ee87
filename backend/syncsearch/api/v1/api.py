"""API routes."""

from fastapi import APIRouter

from syncsearch.api.v1.endpoints import (
    clients,
    data_editor,
    health,
    query,
    sync,
    system_settings,
)

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(sync.router, prefix="/clients", tags=["sync"])
api_router.include_router(data_editor.router, prefix="/clients", tags=["data-editor"])
api_router.include_router(system_settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(query.router, prefix="/query", tags=["query"])
