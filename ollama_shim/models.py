"""Data models for the shim."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


# ============================================================================
# Ollama-Compatible Request Models
# ============================================================================

class ChatMessage(BaseModel):
    """Ollama chat message format."""
    role: str
    content: str


class OllamaOptions(BaseModel):
    """Subset of the native Ollama `options` object that maps onto generation options."""
    temperature: Optional[float] = None
    num_predict: Optional[int] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None


class GenerationParams(BaseModel):
    """Sampling parameters shared by chat and generate requests."""
    model: str
    stream: Optional[bool] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(None, alias="maxTokens")
    top_p: Optional[float] = Field(None, alias="topP")
    top_k: Optional[int] = Field(None, alias="topK")
    options: Optional[OllamaOptions] = None

    model_config = {"populate_by_name": True}

    def raw_options(self) -> Dict[str, Any]:
        """Flatten top-level and nested Ollama options; top-level values win."""
        nested = self.options or OllamaOptions()
        return {
            "temperature": _first(self.temperature, nested.temperature),
            "max_tokens": _first(self.max_tokens, nested.num_predict),
            "top_p": _first(self.top_p, nested.top_p),
            "top_k": _first(self.top_k, nested.top_k),
        }


class ChatRequest(GenerationParams):
    """POST /api/chat body."""
    messages: List[ChatMessage]


class GenerateRequest(GenerationParams):
    """POST /api/generate body."""
    prompt: str


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


# ============================================================================
# Ollama-Compatible Response Models
# ============================================================================

class ChatResponse(BaseModel):
    """Non-streamed /api/chat response."""
    model: str
    created_at: str
    message: ChatMessage
    done_reason: str = "stop"
    done: bool = True
    total_duration: int
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None


class GenerateResponse(BaseModel):
    """Non-streamed /api/generate response."""
    model: str
    created_at: str
    response: str
    done_reason: str = "stop"
    done: bool = True
    total_duration: int


class Pricing(BaseModel):
    input: Optional[float] = None
    output: Optional[float] = None


class ModelInfo(BaseModel):
    """Entry in the /api/tags listing."""
    model: str
    name: str
    contextLength: Optional[int] = None
    pricing: Optional[Pricing] = None
    size: int = 0
    details: Dict[str, str] = Field(default_factory=dict)


class TagsResponse(BaseModel):
    models: List[ModelInfo]


# ============================================================================
# Internal Models
# ============================================================================

class EntryKind(str, Enum):
    """Kind of a conversation history entry."""
    INSTRUCTIONS = "instructions"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TranscriptEntry:
    kind: EntryKind
    text: str


@dataclass(frozen=True)
class Greedy:
    """Always pick the most likely token."""


@dataclass(frozen=True)
class TopP:
    """Sample from the smallest token set whose cumulative probability reaches `threshold`."""
    threshold: float


@dataclass(frozen=True)
class TopK:
    """Sample from the `k` most likely tokens."""
    k: int


SamplingStrategy = Union[Greedy, TopP, TopK]


@dataclass(frozen=True)
class GenerationOptions:
    temperature: Optional[float] = None
    max_response_tokens: Optional[int] = None
    sampling: SamplingStrategy = field(default_factory=Greedy)


@dataclass
class InferenceRequest:
    """Everything a backend needs for one generation."""
    model_name: str
    history: List[TranscriptEntry]
    prompt: str
    options: GenerationOptions


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class BackendUnavailable:
    pass


@dataclass(frozen=True)
class BackendFailure:
    message: str


@dataclass(frozen=True)
class TimedOut:
    seconds: float


InferenceOutcome = Union[Success, BackendUnavailable, BackendFailure, TimedOut]


class ResponseShape(str, Enum):
    """Which Ollama envelope a response is rendered into."""
    CHAT = "chat"
    GENERATE = "generate"
