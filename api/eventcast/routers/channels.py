from fastapi import APIRouter, Depends, HTTPException, Query, Security
from starlette.requests import Request

from eventcast.dependencies import get_broker, verify_api_key
from eventcast.rate_limit import limiter
from eventcast.schemas.channel import (
    ChannelListResponse,
    ChannelResponse,
    CloseChannelRequest,
    CloseChannelResponse,
    PublishRequest,
    PublishResponse,
)
from eventcast.services.message import Message
from eventcast.services.sse_broker import SSEBroker

router = APIRouter(prefix="/channels", tags=["channels"])


@router.get("", response_model=ChannelListResponse)
@limiter.limit("60/minute")
async def list_channels(
    request: Request,
    broker: SSEBroker = Depends(get_broker),
):
    items = []
    for name in sorted(broker.channels()):
        channel = broker.get_channel(name)
        if channel is not None:
            items.append(ChannelResponse(name=name, clients=channel.client_count()))
    return ChannelListResponse(
        items=items, total=len(items), clients=broker.client_count()
    )


@router.get("/info", response_model=ChannelResponse)
@limiter.limit("60/minute")
async def get_channel_info(
    request: Request,
    name: str = Query(..., min_length=1),
    broker: SSEBroker = Depends(get_broker),
):
    channel = broker.get_channel(name)
    if channel is None:
        raise HTTPException(status_code=404, detail="Channel not found")
    return ChannelResponse(name=channel.name, clients=channel.client_count())


@router.post("/publish", response_model=PublishResponse, status_code=202)
@limiter.limit("120/minute")
async def publish_message(
    request: Request,
    data: PublishRequest,
    broker: SSEBroker = Depends(get_broker),
    _api_key: str = Security(verify_api_key),
):
    """Broadcast one event. An empty channel targets every channel.

    Publishing to a channel without subscribers is accepted and delivers
    nothing.
    """
    message = Message.create(data.data, id=data.id, event=data.event)
    delivered = await broker.broadcast(data.channel, message)
    return PublishResponse(channel=data.channel, delivered=delivered)


@router.post("/close", response_model=CloseChannelResponse, status_code=202)
@limiter.limit("30/minute")
async def close_channel(
    request: Request,
    data: CloseChannelRequest,
    broker: SSEBroker = Depends(get_broker),
    _api_key: str = Security(verify_api_key),
):
    closed = await broker.close_channel(data.channel)
    return CloseChannelResponse(channel=data.channel, closed=closed)


@router.post("/restart", status_code=202)
@limiter.limit("5/minute")
async def restart_channels(
    request: Request,
    broker: SSEBroker = Depends(get_broker),
    _api_key: str = Security(verify_api_key),
):
    """Close every channel and connection. New subscribers are accepted."""
    await broker.restart()
    return {"status": "restarted"}
