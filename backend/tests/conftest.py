"""Fixtures for API tests: an ASGI client and a fake upstream web."""

import asyncio
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio

from linkmeta.api.deps import get_http_transport
from linkmeta.main import app


@pytest_asyncio.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def upstream() -> Callable[[Callable], list[httpx.Request]]:
    """Route the resolver's outbound requests to an in-process handler.

    Returns the list the seen requests are appended to.
    """

    def _install(handler) -> list[httpx.Request]:
        seen: list[httpx.Request] = []

        async def _record(request: httpx.Request):
            seen.append(request)
            result = handler(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        mock = httpx.MockTransport(_record)
        app.dependency_overrides[get_http_transport] = lambda: mock
        return seen

    return _install
