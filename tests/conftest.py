"""
Shared fixtures: fake OpenRouter HTTP responses, a scripted requests session,
and a TestClient whose services are stubbed per test.

No test touches the network. Only the concurrency test in test_api.py
sleeps for real.
"""

import json
import os

# Settings are read at import time; make sure startup validation has a key.
os.environ.setdefault("OPENROUTER_API_KEY", "sk-or-test-key")

import pytest  # noqa: E402
import requests  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app import main  # noqa: E402


def build_response(status_code=200, payload=None, text=None, reason=None):
    """A real requests.Response with the given status and JSON (or raw text) body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason or ("OK" if status_code < 400 else "Error")
    if text is not None:
        response._content = text.encode("utf-8")
    elif payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
    else:
        response._content = b""
    return response


def completion_payload(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class ScriptedSession:
    """
    Stands in for requests.Session. Each post() pops the next scripted item:
    a Response is returned, an Exception is raised. Calls are recorded.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if not self.script:
            raise AssertionError("ScriptedSession ran out of scripted responses")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True

    @property
    def models(self):
        return [call["json"]["model"] for call in self.calls]


class Sleeps(list):
    """Async callable that records requested sleep durations instead of sleeping."""

    async def __call__(self, seconds):
        self.append(seconds)


@pytest.fixture
def sleeps():
    return Sleeps()


@pytest.fixture
def client():
    """TestClient without running the lifespan; tests install their own services."""
    return TestClient(main.app)


@pytest.fixture(autouse=True)
def reset_services(monkeypatch):
    monkeypatch.setattr(main, "completion_service", None)
    monkeypatch.setattr(main, "transcription_service", None)
