import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from llmwire.config import ClientOptions

MOCK_BASE_URL = "https://mock.llm"


class MockLLMServer:
    """
    In-process stand-in for the provider APIs.

    Routes are keyed by URL path. Each registered response is served once, in
    registration order; the last one keeps being served after the queue
    runs dry. Every request is recorded.
    """

    def __init__(self):
        self._routes: Dict[str, List[Callable[[], httpx.Response]]] = {}
        self.requests: List[httpx.Request] = []

    def _add(self, path: str, factory: Callable[[], httpx.Response]) -> None:
        self._routes.setdefault(path, []).append(factory)

    def add_json(self, path: str, payload: Any, status_code: int = 200) -> None:
        self._add(path, lambda: httpx.Response(status_code, json=payload))

    def add_text(self, path: str, text: str, status_code: int) -> None:
        self._add(path, lambda: httpx.Response(status_code, text=text))

    def add_sse(self, path: str, lines: List[str]) -> None:
        body = "".join(f"{line}\n" for line in lines).encode("utf-8")
        self._add(path, lambda: httpx.Response(
            200, content=body, headers={"content-type": "text/event-stream"}
        ))

    def add_chunks(self, path: str, chunks: List[bytes]) -> None:
        async def stream():
            for chunk in chunks:
                yield chunk

        self._add(path, lambda: httpx.Response(200, content=stream()))

    def add_stalled_sse(self, path: str, lines: List[str]) -> None:
        """Serve ``lines`` and then keep the connection open without sending more."""
        async def stream():
            for line in lines:
                yield f"{line}\n".encode("utf-8")
            await asyncio.sleep(3600)

        self._add(path, lambda: httpx.Response(
            200, content=stream(), headers={"content-type": "text/event-stream"}
        ))

    def requests_for(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def bodies_for(self, path: str) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests_for(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, text=f"no route for {request.url.path}")
        factory = queue.pop(0) if len(queue) > 1 else queue[0]
        return factory()

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def mock_env(monkeypatch):
    """Mock environment variables for API keys."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-openai")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test-anthropic")
    monkeypatch.setenv("GEMINI_API_KEY", "AIza-test-gemini")


@pytest.fixture
def no_env(monkeypatch, tmp_path):
    """No API keys in the environment and no .env file to find."""
    for var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY"):
        # set first so that anything loaded from a .env file is undone afterwards
        monkeypatch.setenv(var, "unset")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def mock_server():
    return MockLLMServer()


@pytest.fixture
def mock_options():
    return ClientOptions.from_base_url(MOCK_BASE_URL)


@pytest.fixture
def make_client(mock_env, mock_server, mock_options):
    """Build a ProviderClient wired to the mock server."""
    from llmwire.client import ProviderClient

    def _make(model: str, options: Optional[ClientOptions] = None) -> ProviderClient:
        return ProviderClient(
            model,
            options=options or mock_options,
            http_client=mock_server.http_client(),
        )

    return _make
