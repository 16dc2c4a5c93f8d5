from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from eventcast.dependencies import get_broker
from eventcast.schemas.health import HealthResponse
from eventcast.services.sse_broker import SSEBroker

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(broker: SSEBroker = Depends(get_broker)):
    if broker.is_shutdown:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "channels": 0, "clients": 0},
        )
    return HealthResponse(
        status="healthy",
        channels=len(broker.channels()),
        clients=broker.client_count(),
    )
