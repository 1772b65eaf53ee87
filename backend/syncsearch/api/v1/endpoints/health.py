"""Health check endpoint."""

from fastapi import APIRouter

router = APIRouter()


@router.get("")
async def health_check() -> dict[str, str]:
    """Report that the service is up."""
    return {"status": "healthy"}
