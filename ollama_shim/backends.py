"""Text-generation backends the bridge can drive."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Config, config as default_config
from .errors import BackendError
from .models import EntryKind, GenerationOptions, Greedy, TopK, TopP, TranscriptEntry

logger = logging.getLogger(__name__)

KIND_TO_ROLE = {
    EntryKind.INSTRUCTIONS: "system",
    EntryKind.USER: "user",
    EntryKind.ASSISTANT: "assistant",
}


class InferenceBackend:
    """
    Capability that turns a transcript plus a new prompt into text.

    Subclasses implement `generate`; `is_available` is probed before
    every invocation and must be cheap and non-blocking.
    """

    name = "base"

    def is_available(self) -> bool:
        return True

    async def generate(
        self,
        history: List[TranscriptEntry],
        prompt: str,
        options: GenerationOptions,
    ) -> str:
        raise NotImplementedError

    async def aclose(self):
        """Release any resources held by the backend."""


class OllamaBackend(InferenceBackend):
    """
    Forwards generation to an upstream Ollama server.

    History entries become chat messages, the prompt becomes the final
    user message, and generation options map onto Ollama's `options`.
    """

    name = "ollama"

    def __init__(self, base_url: str, model: str, timeout: float = 300.0):
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.model = model
        self.client = httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10.0))

    def is_available(self) -> bool:
        return bool(self.base_url and self.model)

    async def aclose(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def generate(
        self,
        history: List[TranscriptEntry],
        prompt: str,
        options: GenerationOptions,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": to_messages(history, prompt),
            "stream": False,
            "options": to_ollama_options(options),
        }

        logger.info(f"Upstream chat: model={self.model}, messages={len(payload['messages'])}")

        try:
            resp = await self.client.post(f"{self.base_url}/api/chat", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama HTTP error: {e.response.status_code}")
            raise BackendError(f"upstream returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Ollama request error: {e}")
            raise BackendError(f"upstream request failed: {e}") from e
        except ValueError as e:
            raise BackendError("upstream returned invalid JSON") from e

        if data.get("error"):
            raise BackendError(str(data["error"]))

        message = data.get("message") or {}
        content = message.get("content")
        if content is None:
            raise BackendError("upstream response has no message content")
        return content


class EchoBackend(InferenceBackend):
    """Answers with the prompt. Useful for wiring checks without a model."""

    name = "echo"

    async def generate(self, history, prompt, options):
        return prompt


class NullBackend(InferenceBackend):
    """A backend that is never available."""

    name = "none"

    def is_available(self) -> bool:
        return False

    async def generate(self, history, prompt, options):
        raise BackendError("no backend configured")


def to_messages(history: List[TranscriptEntry], prompt: str) -> List[Dict[str, str]]:
    """Render history plus the active prompt as Ollama chat messages."""
    messages = [{"role": KIND_TO_ROLE[entry.kind], "content": entry.text} for entry in history]
    messages.append({"role": "user", "content": prompt})
    return messages


def to_ollama_options(options: GenerationOptions) -> Dict[str, Any]:
    """Render generation options as an Ollama `options` object."""
    result: Dict[str, Any] = {}
    if options.temperature is not None:
        result["temperature"] = options.temperature
    if options.max_response_tokens is not None:
        result["num_predict"] = options.max_response_tokens

    sampling = options.sampling
    if isinstance(sampling, TopP):
        result["top_p"] = sampling.threshold
    elif isinstance(sampling, TopK):
        result["top_k"] = sampling.k
    elif isinstance(sampling, Greedy):
        result["top_k"] = 1
    return result


def create_backend(cfg: Optional[Config] = None) -> InferenceBackend:
    """Instantiate the backend named by `cfg.backend`."""
    cfg = cfg or default_config
    kind = cfg.backend.strip().lower()

    if kind == "ollama":
        return OllamaBackend(cfg.upstream_url, cfg.upstream_model)
    if kind == "echo":
        return EchoBackend()
    if kind == "none":
        return NullBackend()
    raise ValueError(f"Unknown backend: {cfg.backend!r} (expected ollama, echo or none)")
