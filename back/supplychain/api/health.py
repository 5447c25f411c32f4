from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(
    tags=["health"],
    redirect_slashes=False
)


@router.get("/health", summary="Liveness check")
async def health():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}
