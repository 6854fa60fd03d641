"""Rendering of inference outcomes into Ollama response envelopes."""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from .config import DEFAULT_UNAVAILABLE_MESSAGE
from .models import (
    BackendFailure,
    BackendUnavailable,
    ChatMessage,
    ChatResponse,
    GenerateResponse,
    InferenceOutcome,
    ResponseShape,
    Success,
    TimedOut,
)


def timestamp() -> str:
    """Current UTC time as ISO-8601 with offset."""
    return datetime.now(timezone.utc).isoformat()


def format_outcome(
    outcome: InferenceOutcome,
    model_name: str,
    start_ns: int,
    shape: ResponseShape,
    unavailable_message: str = DEFAULT_UNAVAILABLE_MESSAGE,
) -> Tuple[int, Dict[str, Any]]:
    """
    Turn an inference outcome into an HTTP status and JSON body.

    `start_ns` is a `time.perf_counter_ns()` reading taken when the
    request arrived. An unavailable backend still yields a normal 200
    envelope whose content explains the situation.
    """
    if isinstance(outcome, Success):
        return 200, envelope(outcome.text, model_name, start_ns, shape)

    if isinstance(outcome, BackendUnavailable):
        return 200, envelope(unavailable_message, model_name, start_ns, shape)

    if isinstance(outcome, BackendFailure):
        return 400, error_body(f"Failed to process request: {outcome.message}")

    if isinstance(outcome, TimedOut):
        return 400, error_body(f"Request timed out after {int(outcome.seconds)} seconds")

    raise TypeError(f"Unknown inference outcome: {outcome!r}")


def envelope(content: str, model_name: str, start_ns: int, shape: ResponseShape) -> Dict[str, Any]:
    total_duration = time.perf_counter_ns() - start_ns

    if shape == ResponseShape.GENERATE:
        response = GenerateResponse(
            model=model_name,
            created_at=timestamp(),
            response=content,
            total_duration=total_duration,
        )
    else:
        response = ChatResponse(
            model=model_name,
            created_at=timestamp(),
            message=ChatMessage(role="assistant", content=content),
            total_duration=total_duration,
        )
    return response.model_dump()


def error_body(message: str) -> Dict[str, Any]:
    return {"error": message}
