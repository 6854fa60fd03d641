"""
HTTP-level tests for the Ollama-compatible endpoints.

Covers:
1. Health check and root banner
2. Model listing
3. Chat and generate completions
4. Request validation failures
5. Backend failure, unavailability and timeout
"""

import json
import time

from ollama_shim.models import EntryKind, TopP, TranscriptEntry

from .conftest import FakeBackend, make_client


def chat_body(messages, model="apple", **extra):
    body = {"model": model, "messages": messages, "stream": False}
    body.update(extra)
    return body


class TestStaticEndpoints:

    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "running" in resp.text

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_models(self, client):
        resp = client.get("/api/tags")
        assert resp.status_code == 200

        models = resp.json()["models"]
        assert len(models) == 1
        assert models[0]["name"] == "apple"
        assert models[0]["model"] == "apple-intelligence"
        assert models[0]["contextLength"] == 8192
        assert models[0]["pricing"] is None
        assert models[0]["details"]["description"]


class TestChat:

    def test_simple_prompt(self, client):
        resp = client.post("/api/chat", json=chat_body([{"role": "user", "content": "1+1"}]))
        assert resp.status_code == 200

        data = resp.json()
        assert data["model"] == "apple"
        assert data["created_at"]
        assert data["message"]["role"] == "assistant"
        assert data["message"]["content"] == "2"
        assert data["done_reason"] == "stop"
        assert data["done"] is True
        assert data["total_duration"] > 0
        assert data["eval_count"] is None

    def test_history_and_options_reach_backend(self, client, fake_backend):
        resp = client.post("/api/chat", json=chat_body(
            [
                {"role": "system", "content": "terse"},
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
                {"role": "user", "content": "bye"},
            ],
            temperature=0.4,
            topP=0.9,
        ))
        assert resp.status_code == 200

        history, prompt, options = fake_backend.calls[0]
        assert history == [
            TranscriptEntry(EntryKind.INSTRUCTIONS, "terse"),
            TranscriptEntry(EntryKind.USER, "hi"),
            TranscriptEntry(EntryKind.ASSISTANT, "hello"),
        ]
        assert prompt == "bye"
        assert options.temperature == 0.4
        assert options.sampling == TopP(0.9)

    def test_stream_flag_still_returns_one_envelope(self, client):
        resp = client.post("/api/chat", json=chat_body([{"role": "user", "content": "x"}], stream=True))
        assert resp.status_code == 200
        assert resp.json()["done"] is True

    def test_invalid_model(self, client, fake_backend):
        resp = client.post("/api/chat", json=chat_body([{"role": "user", "content": "Hello"}], model="llama3.2"))
        assert resp.status_code == 400
        assert resp.json()["error"] == 'model "llama3.2" not found, try pulling it first'
        assert fake_backend.calls == []

    def test_empty_messages(self, client):
        resp = client.post("/api/chat", json=chat_body([]))
        assert resp.status_code == 400
        assert "cannot be empty" in resp.json()["error"]

    def test_non_user_last_message(self, client, fake_backend):
        resp = client.post("/api/chat", json=chat_body([{"role": "assistant", "content": "Hello"}]))
        assert resp.status_code == 400
        assert resp.json()["error"] == "Failed to process request: Last message must be from user role"
        assert fake_backend.calls == []

    def test_invalid_role(self, client):
        resp = client.post("/api/chat", json=chat_body([
            {"role": "narrator", "content": "once upon a time"},
            {"role": "user", "content": "go on"},
        ]))
        assert resp.status_code == 400
        assert "Invalid role: narrator" in resp.json()["error"]

    def test_conflicting_sampling(self, client, fake_backend):
        resp = client.post("/api/chat", json=chat_body([{"role": "user", "content": "x"}], topP=0.5, topK=10))
        assert resp.status_code == 400
        assert "topP and topK" in resp.json()["error"]
        assert fake_backend.calls == []

    def test_invalid_json(self, client):
        resp = client.post("/api/chat", content="invalid json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Invalid JSON format")

    def test_missing_field(self, client):
        resp = client.post("/api/chat", json={"model": "apple"})
        assert resp.status_code == 400
        assert "messages" in resp.json()["error"]


class TestGenerate:

    def test_generate(self, client, fake_backend):
        resp = client.post("/api/generate", json={"model": "apple", "prompt": "1+1", "topK": 3})
        assert resp.status_code == 200

        data = resp.json()
        assert data["response"] == "2"
        assert data["done"] is True
        assert "message" not in data

        history, prompt, options = fake_backend.calls[0]
        assert history == []
        assert prompt == "1+1"

    def test_generate_invalid_model(self, client):
        resp = client.post("/api/generate", json={"model": "mistral", "prompt": "x"})
        assert resp.status_code == 400
        assert "not found" in resp.json()["error"]


class TestBackendOutcomes:

    def test_backend_error(self, failing_client):
        resp = failing_client.post("/api/chat", json=chat_body([{"role": "user", "content": "x"}]))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Failed to process request: model exploded"}

    def test_backend_unavailable(self, unavailable_client, shim_config):
        resp = unavailable_client.post("/api/generate", json={"model": "apple", "prompt": "x"})
        assert resp.status_code == 200
        assert resp.json()["response"] == shim_config.unavailable_message

    def test_validation_beats_unavailable(self, unavailable_client):
        resp = unavailable_client.post("/api/chat", json=chat_body([]))
        assert resp.status_code == 400

    def test_timeout(self, slow_client):
        started = time.monotonic()
        resp = slow_client.post("/api/chat", json=chat_body([{"role": "user", "content": "x"}]))
        elapsed = time.monotonic() - started

        assert resp.status_code == 400
        assert resp.json() == {"error": "Request timed out after 1 seconds"}
        assert elapsed < 3.0

    def test_timeout_on_generate(self, slow_client):
        resp = slow_client.post("/api/generate", json={"model": "apple", "prompt": "x"})
        assert resp.status_code == 400
        assert "timed out" in resp.json()["error"]

    def test_lifespan_closes_backend(self, shim_config):
        backend = FakeBackend()
        with make_client(shim_config, backend) as c:
            c.post("/api/generate", json={"model": "apple", "prompt": "x"})
        assert backend.closed


class TestBodyDecoding:

    def test_form_content_type_is_decoded_as_json(self, client):
        body = json.dumps(chat_body([{"role": "user", "content": "1+1"}]))
        resp = client.post("/api/chat", content=body,
                           headers={"Content-Type": "application/x-www-form-urlencoded"})
        assert resp.status_code == 200
        assert resp.json()["message"]["content"] == "2"

    def test_missing_content_type_is_decoded_as_json(self, client, fake_backend):
        resp = client.post("/api/generate", content=json.dumps({"model": "apple", "prompt": "1+1"}).encode())
        assert resp.status_code == 200
        assert resp.json()["response"] == "2"
        assert fake_backend.calls[0][1] == "1+1"

    def test_malformed_body_with_form_content_type(self, client):
        resp = client.post("/api/chat", content="model=apple",
                           headers={"Content-Type": "application/x-www-form-urlencoded"})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Invalid JSON format")


class TestModelListingFailure:

    def test_serialization_failure_is_500(self, client, monkeypatch):
        def broken(cfg):
            raise ValueError("cannot encode")

        monkeypatch.setattr("ollama_shim.api.describe_model", broken)
        resp = client.get("/api/tags")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to serialize model response"}
