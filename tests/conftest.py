"""Pytest configuration - mock transports standing in for the Keptn API."""

import json
from collections.abc import AsyncIterator, Callable

import httpx
import pytest
import pytest_asyncio

from keptn_cli.core.client import APIClient, Credentials


class FakeServer:
    """Records every request and answers with a handler or a queue of responses."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] | None = None):
        self.handler = handler
        self.queue: list[httpx.Response] = []
        self.requests: list[httpx.Request] = []

    def reply(self, status: int = 200, body: object = None, text: str | None = None) -> "FakeServer":
        """Queue a response; dicts and lists are sent as JSON."""
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.queue.append(httpx.Response(status, text=text))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        return self.queue.pop(0)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def make_api(server: FakeServer) -> AsyncIterator[Callable[..., APIClient]]:
    """Build APIClients talking to the fake server; their HTTP clients are closed afterwards."""
    http_clients: list[httpx.AsyncClient] = []

    def factory(
        auth_header: str = "x-token",
        auth_token: str = "secret",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> APIClient:
        credentials = Credentials(
            base_url="keptn.test/api/controlPlane",
            auth_header=auth_header,
            auth_token=auth_token,
        )
        http_client = httpx.AsyncClient(transport=transport or server.transport)
        http_clients.append(http_client)
        return APIClient(credentials, http_client)

    yield factory

    for http_client in http_clients:
        await http_client.aclose()


@pytest.fixture
def api(make_api: Callable[..., APIClient]) -> APIClient:
    return make_api()
