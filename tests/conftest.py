import asyncio
import os
from typing import Callable, List, Optional, Union

import pytest

from bcconnector.domain.interfaces.transport import Transport
from bcconnector.domain.models.common import TransportResponse
from bcconnector.domain.models.connection import ConnectionConfig, RequestDescriptor
from bcconnector.infrastructure.config import settings

API_URL = "https://api.example.com"
STORE_HASH = "abc123"

Scripted = Union[TransportResponse, Exception, Callable[[RequestDescriptor], TransportResponse]]


class ScriptedTransport(Transport):
    """Transport double replaying a fixed list of responses.

    Records every request it receives and the highest number of sends that
    were in progress at the same time. Once the script is exhausted the last
    entry is repeated.
    """

    def __init__(self, script: List[Scripted], delay: float = 0.0):
        self.script = list(script)
        self.delay = delay
        self.requests: List[RequestDescriptor] = []
        self.sent_at: List[float] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def send(self, request: RequestDescriptor) -> TransportResponse:
        index = len(self.requests)
        self.requests.append(request)
        self.sent_at.append(asyncio.get_running_loop().time())
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            entry = self.script[min(index, len(self.script) - 1)]
            if isinstance(entry, Exception):
                raise entry
            if callable(entry):
                return entry(request)
            return entry
        finally:
            self.in_flight -= 1


def json_response(body: str, status_code: int = 200, headers: Optional[dict] = None) -> TransportResponse:
    return TransportResponse(status_code=status_code, headers=headers or {}, body=body)


@pytest.fixture
def config() -> ConnectionConfig:
    return ConnectionConfig(
        store_hash=STORE_HASH,
        access_token="secret-token",
        client_id="client-1",
        api_base_url=API_URL,
    )


@pytest.fixture
def scripted_transport():
    """Factory fixture: scripted_transport(resp1, resp2, ..., delay=0.0)."""
    def _make(*script: Scripted, delay: float = 0.0) -> ScriptedTransport:
        return ScriptedTransport(list(script), delay=delay)
    return _make


@pytest.fixture
def make_response():
    """Builds a TransportResponse: make_response(body, status_code=200, headers=None)."""
    return json_response


@pytest.fixture
def recorded_sleep():
    """Non-waiting sleep replacement that records requested delays."""
    delays: List[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep module-level configuration and BC_* variables out of each test."""
    for name in list(os.environ):
        if name.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    settings.clear_test_config()
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", False)
    yield
    settings.clear_test_config()
