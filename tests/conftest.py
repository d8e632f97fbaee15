import os
from typing import Callable, List, Optional
from unittest.mock import MagicMock, patch

# Keep the event log files out of the working tree before the app configures logging
os.environ["REQUEST_LOG_PATH"] = ""
os.environ["ERROR_LOG_PATH"] = ""

import httpx
import pytest
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.duplicate_tracker import DuplicateBodyTracker
from intercept_proxy.core.events import EventLog
from intercept_proxy.core.transaction import ProxyRequest, Transaction
from intercept_proxy.main import app
from intercept_proxy.settings import Settings

ENV_KEYS = [
    "PROXY_HOST",
    "PROXY_PORT",
    "PROXY_RELOAD",
    "BACKEND_URL",
    "BACKEND_TIMEOUT_SECONDS",
    "FILTERED_STRING",
    "DUPLICATE_DELAY_SECONDS",
    "POLICY_FILEPATH",
    "LOG_LEVEL",
    "RUN_MODE",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """AUTOUSE: Removes proxy settings inherited from the shell or a .env file."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("REQUEST_LOG_PATH", "")
    monkeypatch.setenv("ERROR_LOG_PATH", "")
    yield


class StubBackend:
    """An in-memory backend that records every request it receives."""

    def __init__(
        self,
        status_code: int = 200,
        content: bytes = b"backend response",
        headers: Optional[List[tuple]] = None,
        error: Optional[Callable[[httpx.Request], Exception]] = None,
    ):
        self.status_code = status_code
        self.content = content
        self.headers = headers or [("content-type", "text/plain")]
        self.error = error
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(request)
        return httpx.Response(self.status_code, headers=self.headers, content=self.content)

    @property
    def connection_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def stub_backend() -> StubBackend:
    return StubBackend()


@pytest.fixture
def mock_settings() -> MagicMock:
    """Provides a mock Settings instance."""
    settings = MagicMock(spec=Settings)
    settings.get_backend_url.return_value = "http://127.0.0.1:3030"
    settings.get_filtered_string.return_value = "bad_message"
    settings.get_duplicate_delay_seconds.return_value = 2.0
    settings.get_policy_filepath.return_value = None
    settings.dev_mode.return_value = False
    return settings


@pytest.fixture
def mock_event_log() -> MagicMock:
    """Provides a mock EventLog whose recorded events can be inspected."""
    return MagicMock(spec=EventLog)


@pytest.fixture
def container(mock_settings, mock_event_log, stub_backend) -> DependencyContainer:
    """A container whose HTTP client talks to the stub backend."""
    return DependencyContainer(
        settings=mock_settings,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(stub_backend)),
        event_log=mock_event_log,
        duplicate_tracker=DuplicateBodyTracker(),
    )


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Factory for transactions carrying an already-buffered request."""

    def _make(body: str = "hello", method: str = "POST", headers: Optional[List[tuple]] = None) -> Transaction:
        raw = body.encode("utf-8")
        if headers is None:
            headers = [("host", "127.0.0.1:3000"), ("content-type", "text/plain"), ("content-length", str(len(raw)))]
        return Transaction(
            request=ProxyRequest(method=method, path="/", headers=headers, body=raw, content=body),
        )

    return _make


@pytest.fixture
def proxy_client(stub_backend):
    """
    TestClient for the full application, forwarding to the stub backend.

    The container is built from real Settings, so tests can change behaviour
    with monkeypatch.setenv. Each client gets a fresh duplicate-body slot.
    """
    from fastapi.testclient import TestClient

    async def initialize_with_stub_backend(settings: Settings) -> DependencyContainer:
        return DependencyContainer(
            settings=settings,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(stub_backend)),
            event_log=EventLog(),
            duplicate_tracker=DuplicateBodyTracker(),
        )

    with patch("intercept_proxy.main.initialize_app_dependencies", initialize_with_stub_backend):
        with TestClient(app) as test_client:
            yield test_client
