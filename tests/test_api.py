"""
HTTP-level tests for the FastAPI app. Services are mostly replaced by stubs so
the tests cover validation, response shaping, error payloads and upload
cleanup. The concurrency test drives a real CompletionService with real sleeps.
"""

import asyncio
import os
import threading
import time

import httpx
import pytest
from fastapi.testclient import TestClient

import config
from app import main
from app.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    RateLimitExhaustedError,
    TranscriptionError,
    UpstreamAPIError,
)
from app.services.completion_service import CompletionService
from app.services.transcription_service import TranscriptionService
from app.utils import uploads
from conftest import ScriptedSession, build_response, completion_payload


class StubCompletion:
    """Records calls; returns reply or raises error."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def request_completion(self, system_prompt, user_message):
        self.calls.append((system_prompt, user_message))
        if self.error:
            raise self.error
        return self.reply


class StubTranscription:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.seen_paths = []

    def transcribe(self, file_path, content_type="audio/mp4"):
        assert file_path.exists(), "upload must be on disk while transcribing"
        self.seen_paths.append(file_path)
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def completion(monkeypatch):
    def install(**kwargs):
        stub = StubCompletion(**kwargs)
        monkeypatch.setattr(main, "completion_service", stub)
        return stub
    return install


@pytest.fixture
def transcription(monkeypatch, tmp_path):
    upload_dir = tmp_path / "uploads"
    monkeypatch.setattr(
        main, "build_upload_path", lambda filename: uploads.build_upload_path(filename, upload_dir)
    )

    def install(**kwargs):
        stub = StubTranscription(**kwargs)
        monkeypatch.setattr(main, "transcription_service", stub)
        return stub
    return install


# ==============================================================================
# /analyze
# ==============================================================================

class TestAnalyze:
    def test_returns_analysis_and_nature(self, client, completion):
        stub = completion(reply="[SENTIMENT: negative]\nThat sounds hard.\n\nWhat happened?")

        response = client.post("/analyze", json={"entry": "Work was awful today."})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["nature"] == "negative"
        assert data["analysis"] == "That sounds hard.\n\nWhat happened?"
        assert data["timestamp"].endswith("Z")
        assert stub.calls == [(config.ANALYZE_SYSTEM_PROMPT, "Work was awful today.")]

    def test_untagged_reply_defaults_positive(self, client, completion):
        completion(reply="Lovely!")
        data = client.post("/analyze", json={"entry": "Sunny walk."}).json()
        assert data["nature"] == "positive"
        assert data["analysis"] == "Lovely!"

    @pytest.mark.parametrize("body", [
        {"entry": ""},
        {"entry": "   \n\t "},
        {"entry": 42},
        {"entry": None},
        {},
    ])
    def test_invalid_entry_rejected_before_remote_call(self, client, completion, body):
        stub = completion(reply="unused")

        response = client.post("/analyze", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid input"
        assert stub.calls == []

    def test_non_json_body_rejected(self, client, completion):
        stub = completion(reply="unused")
        response = client.post("/analyze", content=b"not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert stub.calls == []

    def test_long_entry_is_truncated(self, client, completion):
        stub = completion(reply="ok")
        client.post("/analyze", json={"entry": "a" * (config.MAX_ENTRY_LENGTH + 500)})
        assert len(stub.calls[0][1]) == config.MAX_ENTRY_LENGTH

    def test_rate_limit_exhausted_maps_to_429(self, client, completion):
        completion(error=RateLimitExhaustedError("Rate limit exceeded. Free tier models are currently busy."))

        response = client.post("/analyze", json={"entry": "hello"})

        assert response.status_code == 429
        assert response.json() == {
            "error": "Rate limit exceeded",
            "message": "Too many requests. Please wait a moment and try again.",
            "retryAfter": 60,
        }

    def test_upstream_error_maps_to_502(self, client, completion):
        completion(error=UpstreamAPIError(400, "Invalid model"))

        response = client.post("/analyze", json={"entry": "hello"})

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "External API error"
        assert data["details"] == "OpenRouter API error: 400 - Invalid model"

    def test_malformed_response_maps_to_502(self, client, completion):
        completion(error=MalformedResponseError("Invalid response structure from OpenRouter API"))
        assert client.post("/analyze", json={"entry": "hello"}).status_code == 502

    def test_unexpected_error_maps_to_500(self, client, completion):
        completion(error=RuntimeError("boom"))

        response = client.post("/analyze", json={"entry": "hello"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal server error",
            "message": "An unexpected error occurred while analyzing your entry",
        }

    def test_service_not_initialized(self, client):
        response = client.post("/analyze", json={"entry": "hello"})
        assert response.status_code == 503


# ==============================================================================
# /recap
# ==============================================================================

class TestRecap:
    def test_returns_recap(self, client, completion):
        stub = completion(reply="**Overall Emotional Trend**: steady")

        response = client.post("/recap", json={"entries": "Day 1...\n\nDay 2..."})

        assert response.status_code == 200
        assert response.json()["recap"] == "**Overall Emotional Trend**: steady"
        assert stub.calls[0][0] == config.RECAP_SYSTEM_PROMPT

    def test_too_long_is_rejected(self, client, completion):
        stub = completion(reply="unused")
        response = client.post("/recap", json={"entries": "x" * (config.MAX_RECAP_LENGTH + 1)})
        assert response.status_code == 400
        assert "50,000" in response.json()["message"]
        assert stub.calls == []

    @pytest.mark.parametrize("body", [{"entries": " "}, {"entries": ["a", "b"]}, {}])
    def test_invalid_entries_rejected(self, client, completion, body):
        stub = completion(reply="unused")
        assert client.post("/recap", json=body).status_code == 400
        assert stub.calls == []


# ==============================================================================
# /transcribe
# ==============================================================================

class TestTranscribe:
    def test_transcribes_and_removes_upload(self, client, transcription):
        stub = transcription(text="Dear diary, today was good.")

        response = client.post(
            "/transcribe", files={"audio": ("memo.m4a", b"fake-audio", "audio/m4a")}
        )

        assert response.status_code == 200
        assert response.json()["text"] == "Dear diary, today was good."
        assert stub.seen_paths[0].suffix == ".m4a"
        assert not stub.seen_paths[0].exists()

    def test_empty_transcript_still_removes_upload(self, client, transcription):
        stub = transcription(text="   ")

        response = client.post(
            "/transcribe", files={"audio": ("memo.webm", b"silence", "audio/webm")}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "Transcription failed"
        assert not stub.seen_paths[0].exists()

    def test_upstream_failure_removes_upload(self, client, transcription):
        stub = transcription(error=TranscriptionError("Transcription failed: 500 - oops"))

        response = client.post(
            "/transcribe", files={"audio": ("memo.mp3", b"bytes", "audio/mpeg")}
        )

        assert response.status_code == 502
        assert not stub.seen_paths[0].exists()

    def test_missing_file(self, client, transcription):
        transcription(text="unused")
        response = client.post("/transcribe", files={"other": ("a.txt", b"x", "text/plain")})
        assert response.status_code == 400
        assert response.json()["error"] == "No file uploaded"

    def test_wrong_type(self, client, transcription):
        stub = transcription(text="unused")
        response = client.post("/transcribe", files={"audio": ("notes.txt", b"x", "text/plain")})
        assert response.status_code == 415
        assert stub.seen_paths == []

    def test_non_string_transcript_maps_to_502(self, client, transcription, monkeypatch):
        transcription()
        service = TranscriptionService("k", session=ScriptedSession(build_response(200, {"text": 123})))
        monkeypatch.setattr(main, "transcription_service", service)

        response = client.post(
            "/transcribe", files={"audio": ("memo.m4a", b"bytes", "audio/m4a")}
        )

        assert response.status_code == 502
        assert response.json()["error"] == "Transcription failed"


# ==============================================================================
# Discovery, health, 404, startup
# ==============================================================================

def test_health(client):
    data = client.get("/health").json()
    assert data["status"] == "healthy"
    assert data["service"] == "Journal AI Backend"
    assert data["models"] == list(config.MODEL_FALLBACKS)


def test_models(client):
    data = client.get("/models").json()
    assert data["primary"] == config.MODEL_FALLBACKS[0]
    assert data["fallbacks"][-1] == "openai/gpt-3.5-turbo"


def test_root_lists_endpoints(client):
    assert "/analyze" in client.get("/").json()["endpoints"]


def test_unknown_route_returns_json_404(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found", "message": "Route GET /nope does not exist"}


def test_startup_builds_services(monkeypatch):
    monkeypatch.setattr(config, "OPENROUTER_API_KEY", "sk-or-test-key")
    with TestClient(main.app) as client:
        assert main.completion_service is not None
        assert main.transcription_service is not None
        assert client.get("/health").status_code == 200
    assert main.completion_service is None


def test_startup_fails_without_api_key(monkeypatch):
    monkeypatch.setattr(config, "OPENROUTER_API_KEY", "")
    with pytest.raises(ConfigurationError):
        with TestClient(main.app):
            pass


def test_openapi_documents_error_statuses(client):
    responses = client.get("/openapi.json").json()["paths"]["/transcribe"]["post"]["responses"]
    for status in ("400", "413", "415", "422", "429", "500", "502", "503"):
        assert status in responses


# ==============================================================================
# Concurrency
# ==============================================================================

class FirstAttemptFailsSession:
    """Answers 500 the first time an entry is seen and succeeds on the retry."""

    def __init__(self):
        self.seen = set()
        self.lock = threading.Lock()

    def post(self, url, **kwargs):
        entry = kwargs["json"]["messages"][1]["content"]
        with self.lock:
            first_attempt = entry not in self.seen
            self.seen.add(entry)
        if first_attempt:
            return build_response(500, {"error": {"message": "Internal error"}})
        return build_response(200, completion_payload("[SENTIMENT: positive]\nNoted."))

    def close(self):
        pass


def test_backoff_waits_do_not_hold_worker_threads(monkeypatch):
    delay = 0.5
    service = CompletionService(
        "sk-or-test-key", models=("only/model",), session=FirstAttemptFailsSession(), base_delay=delay
    )
    monkeypatch.setattr(main, "completion_service", service)
    # Four times the default executor size: waits that held a worker thread
    # would need at least four rounds of `delay`.
    request_count = 4 * min(32, (os.cpu_count() or 1) + 4)

    async def send_all():
        transport = httpx.ASGITransport(app=main.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            started = time.perf_counter()
            responses = await asyncio.gather(*(
                http.post("/analyze", json={"entry": f"entry {i}"}) for i in range(request_count)
            ))
            return time.perf_counter() - started, responses

    elapsed, responses = asyncio.run(send_all())

    assert [r.status_code for r in responses] == [200] * request_count
    assert elapsed < delay * 3
