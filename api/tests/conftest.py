import pytest
from httpx import ASGITransport, AsyncClient
from sse_starlette.sse import AppStatus

from eventcast.config import settings
from eventcast.dependencies import get_broker
from eventcast.main import app
from eventcast.services.sse_broker import BrokerOptions, SSEBroker

TEST_API_KEY = "test-key-for-testing"


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """EventSourceResponse keeps a process-wide exit event bound to one loop."""
    AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit_event = None


@pytest.fixture(scope="function")
async def broker():
    """A fresh broker per test, shut down afterwards."""
    sse = SSEBroker(BrokerOptions(retry_interval=0, client_queue_maxsize=64))
    sse.start()
    yield sse
    await sse.shutdown()


@pytest.fixture(scope="function")
async def client(broker):
    app.dependency_overrides[get_broker] = lambda: broker
    original_api_keys = settings.api_keys
    settings.api_keys = TEST_API_KEY
    # Disable rate limiting in tests
    app.state.limiter.enabled = False
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-API-Key": TEST_API_KEY},
    ) as ac:
        yield ac
    app.state.limiter.enabled = True
    settings.api_keys = original_api_keys
    app.dependency_overrides.clear()
