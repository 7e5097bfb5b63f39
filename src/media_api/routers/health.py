from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from media_api.adapters.storage import MediaStore
from media_api.dependencies import get_media_store
from media_api.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(store: MediaStore = Depends(get_media_store)) -> HealthResponse:
    """
    Health check endpoint for monitoring API status.

    Always answers while the process is up. `configured` is false when the selected
    backend is missing credentials, so a misconfigured deployment is visible here
    instead of crashing at startup.
    """
    return HealthResponse(
        status="OK",
        message=f"Wedding Photo Upload Server ({store.backend} storage) is running",
        backend=store.backend,
        configured=store.is_configured,
        timestamp=datetime.now(timezone.utc),
    )
