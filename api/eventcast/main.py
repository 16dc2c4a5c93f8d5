import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request

from eventcast.config import settings
from eventcast.middleware import SecurityHeadersMiddleware
from eventcast.rate_limit import limiter
from eventcast.routers import channels, health, stream
from eventcast.services.sse_broker import BrokerShutdownError, sse_broker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_production()
    logging.getLogger("eventcast").setLevel(settings.log_level.upper())

    sse_broker.start()

    yield

    await sse_broker.shutdown()


app = FastAPI(
    title="Eventcast SSE API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.environment == "production" else "/docs",
    redoc_url=None if settings.environment == "production" else "/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Middleware order (Starlette LIFO): CORSMiddleware → SecurityHeaders → SlowAPI
# Added in reverse order so CORS runs outermost
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Accept", "X-API-Key", "Last-Event-ID"],
)


@app.exception_handler(BrokerShutdownError)
async def broker_shutdown_handler(request: Request, exc: BrokerShutdownError):
    return JSONResponse(
        status_code=503, content={"detail": "Event broker is shutting down"}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(health.router)
app.include_router(stream.router)
app.include_router(channels.router)
