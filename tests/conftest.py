import os
from typing import Any

import httpx
import pytest
import pytest_asyncio


class FakeApi:
    """Routes requests by URL path to canned JSON payloads or handlers.

    A route value may be a JSON-serializable payload (served with 200), an
    int (an empty response with that status), or a callable taking the
    request and returning an `httpx.Response`. Unrouted paths return 404.
    Every request is recorded in `requests`.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"error": f"no route {request.url.path}"})
        if callable(route):
            return route(request)
        if isinstance(route, int):
            return httpx.Response(route)
        return httpx.Response(200, json=route)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest_asyncio.fixture
async def http_client(fake_api: FakeApi):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api)) as client:
        yield client


@pytest.fixture(scope="session")
def qapp():
    """A headless QApplication shared by the widget tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    widgets = pytest.importorskip("PySide6.QtWidgets")
    return widgets.QApplication.instance() or widgets.QApplication([])
