"""SSE endpoint: subscribe to a channel and receive its events."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette import EventSourceResponse

from eventcast.dependencies import get_broker
from eventcast.services.client import Client
from eventcast.services.message import render
from eventcast.services.sse_broker import BrokerShutdownError, SSEBroker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])


async def _client_stream(broker: SSEBroker, client: Client):
    """Per-client SSE generator.

    Ends when the client's queue is closed (channel closed, restart or
    shutdown). Whatever ends the stream, the client is disconnected once.
    """
    try:
        await broker.connect(client)
        async for message in client:
            yield render(message)
    except BrokerShutdownError:
        logger.debug("SSE stream for channel '%s' ended by shutdown", client.channel)
    finally:
        if not broker.is_shutdown:
            broker.disconnect_nowait(client)


@router.get("/events/{path:path}")
async def stream_events(
    request: Request,
    path: str,
    broker: SSEBroker = Depends(get_broker),
):
    """SSE stream of one channel.

    The channel name defaults to the request path, e.g. ``/events/news``:
      const es = new EventSource('/events/news')
      es.addEventListener('update', (e) => { ... })
    """
    if broker.is_shutdown:
        raise HTTPException(status_code=503, detail="Event stream is shutting down")

    channel = broker.options.channel_name_func(request)
    last_event_id = request.headers.get("last-event-id", "")
    client = broker.new_client(channel, last_event_id)
    logger.debug("SSE stream opened for channel '%s'", channel)

    return EventSourceResponse(
        _client_stream(broker, client),
        headers=broker.options.headers or None,
        ping=broker.options.ping_interval,
    )
