# tests/conftest.py
"""
Pytest fixtures for ollama-shim tests.

Backends here are in-process fakes so the HTTP surface can be exercised
without a model or an upstream Ollama server.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from ollama_shim.backends import InferenceBackend, NullBackend
from ollama_shim.config import Config
from ollama_shim.errors import BackendError
from ollama_shim.main import create_app


class FakeBackend(InferenceBackend):
    """Returns a fixed answer and records what it was asked."""

    name = "fake"

    def __init__(self, answer: str = "2"):
        self.answer = answer
        self.calls = []
        self.closed = False

    async def generate(self, history, prompt, options):
        self.calls.append((history, prompt, options))
        return self.answer

    async def aclose(self):
        self.closed = True


class FailingBackend(InferenceBackend):
    name = "failing"

    async def generate(self, history, prompt, options):
        raise BackendError("model exploded")


class SlowBackend(InferenceBackend):
    """Sleeps longer than any test deadline, then records a late result."""

    name = "slow"

    def __init__(self, delay: float = 5.0):
        self.delay = delay
        self.finished = False

    async def generate(self, history, prompt, options):
        await asyncio.sleep(self.delay)
        self.finished = True
        return "too late"


@pytest.fixture
def shim_config():
    return Config(
        host="127.0.0.1",
        port=8081,
        model_name="apple",
        model_id="apple-intelligence",
        request_timeout=5.0,
        backend="echo",
    )


@pytest.fixture
def fake_backend():
    return FakeBackend()


def make_client(cfg, backend):
    return TestClient(create_app(cfg, backend))


@pytest.fixture
def client(shim_config, fake_backend):
    with make_client(shim_config, fake_backend) as c:
        yield c


@pytest.fixture
def failing_client(shim_config):
    with make_client(shim_config, FailingBackend()) as c:
        yield c


@pytest.fixture
def unavailable_client(shim_config):
    with make_client(shim_config, NullBackend()) as c:
        yield c


@pytest.fixture
def slow_client(shim_config):
    shim_config.request_timeout = 1.0
    with make_client(shim_config, SlowBackend()) as c:
        yield c
