"""Integration tests for /channels endpoints."""

from httpx import ASGITransport, AsyncClient

from eventcast.config import settings
from eventcast.main import app
from eventcast.services.client import Client

TEST_API_KEY = "test-key-for-testing"


async def test_list_channels(client, broker):
    await broker.connect(Client("/events/b"))
    await broker.connect(Client("/events/a"))
    await broker.connect(Client("/events/a"))

    response = await client.get("/channels")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["clients"] == 3
    assert data["items"] == [
        {"name": "/events/a", "clients": 2},
        {"name": "/events/b", "clients": 1},
    ]


async def test_channel_info(client, broker):
    await broker.connect(Client("/events/a"))

    response = await client.get("/channels/info", params={"name": "/events/a"})
    assert response.status_code == 200
    assert response.json() == {"name": "/events/a", "clients": 1}


async def test_channel_info_not_found(client):
    response = await client.get("/channels/info", params={"name": "/events/none"})
    assert response.status_code == 404


async def test_publish_to_unknown_channel(client, broker):
    response = await client.post(
        "/channels/publish", json={"channel": "/events/none", "data": "x"}
    )
    assert response.status_code == 202
    assert response.json() == {"channel": "/events/none", "delivered": 0}
    assert broker.channels() == []


async def test_publish_to_all_channels(client, broker):
    a = Client("/events/a")
    b = Client("/events/b")
    await broker.connect(a)
    await broker.connect(b)

    response = await client.post("/channels/publish", json={"data": ["x", "y"]})
    assert response.status_code == 202
    assert response.json()["delivered"] == 2
    assert a.pending == 1
    assert b.pending == 1


async def test_publish_keeps_payload_whitespace(client, broker):
    c = Client("/events/a")
    await broker.connect(c)

    await client.post(
        "/channels/publish", json={"channel": "/events/a", "data": "  indented"}
    )

    message = await anext(c)
    assert message.data == ("  indented",)


async def test_publish_rejects_line_break_in_event(client):
    response = await client.post(
        "/channels/publish", json={"event": "a\nb", "data": "x"}
    )
    assert response.status_code == 422


async def test_publish_requires_data(client):
    response = await client.post("/channels/publish", json={"channel": "/a"})
    assert response.status_code == 422


async def test_close_channel(client, broker):
    c = Client("/events/a")
    await broker.connect(c)

    response = await client.post("/channels/close", json={"channel": "/events/a"})
    assert response.status_code == 202
    assert response.json() == {"channel": "/events/a", "closed": True}
    assert c.closed

    response = await client.post("/channels/close", json={"channel": "/events/a"})
    assert response.json()["closed"] is False


async def test_publish_after_shutdown(client, broker):
    await broker.shutdown()

    response = await client.post("/channels/publish", json={"data": "x"})
    assert response.status_code == 503


async def test_publish_no_auth():
    """POST /channels/publish without API key should return 401."""
    original = settings.api_keys
    settings.api_keys = TEST_API_KEY
    app.state.limiter.enabled = False
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            response = await ac.post("/channels/publish", json={"data": "x"})
        assert response.status_code == 401
    finally:
        app.state.limiter.enabled = True
        settings.api_keys = original
