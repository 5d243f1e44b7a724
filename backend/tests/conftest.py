import sys
import os
import inspect

import httpx
import pytest
from fastapi.testclient import TestClient

# Ensure backend is in path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app_logging import setup_logging
from schemas import BackendConfig, RelayConfig
from server import create_app

PRIMARY_HOST = "primary.example.com"
SECONDARY_HOST = "secondary.example.com"


def as_network_response(response: httpx.Response) -> httpx.Response:
    """
    Rebuild a canned response so its body is an unread stream.

    `httpx.Response(content=...)` is read on construction and refuses
    aiter_raw(); a real backend answer arrives unread.
    """
    return httpx.Response(
        response.status_code,
        headers=response.headers.raw,
        stream=httpx.ByteStream(response.content),
    )


class FakeBackends:
    """
    Stand-in for the backend servers, plugged in as an httpx.MockTransport.

    Handlers are registered per host; every request that reaches the
    transport is recorded, in arrival order.
    """

    def __init__(self):
        self.requests = []
        self.handlers = {}

    def route(self, host, handler):
        self.handlers[host] = handler

    def for_host(self, host):
        return [r for r in self.requests if r.url.host == host]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.get(request.url.host)
        if handler is None:
            raise httpx.ConnectError(f"no route to {request.url.host}", request=request)
        response = handler(request)
        if inspect.isawaitable(response):
            response = await response
        return as_network_response(response)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def test_logger():
    return setup_logging("multitime-tests", debug=True)


@pytest.fixture
def relay_config():
    return RelayConfig(
        port=3000,
        debug=True,
        backends=[
            BackendConfig(name="Primary Backend", url=f"http://{PRIMARY_HOST}", api_key="primary-key", is_primary=True),
            BackendConfig(name="Secondary Backend", url=f"http://{SECONDARY_HOST}", api_key="secondary-key"),
        ],
    )


@pytest.fixture
def fake_backends():
    return FakeBackends()


@pytest.fixture
def client(relay_config, fake_backends, test_logger):
    app = create_app(relay_config, logger=test_logger, transport=fake_backends.transport())
    with TestClient(app) as test_client:
        yield test_client
