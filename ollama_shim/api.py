"""
Ollama-compatible API endpoints.

Provides /api/chat, /api/generate and /api/tags for Ollama clients.
Handlers are synchronous: FastAPI runs each one in its worker thread
pool, and the inference bridge blocks that thread until the backend
answers or the deadline passes.
"""

import logging
import time

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError as BodyValidationError

from .config import Config
from .errors import ModelNotFoundError, ShimError
from .formatter import error_body, format_outcome
from .models import (
    ChatRequest,
    GenerateRequest,
    GenerationParams,
    InferenceRequest,
    ModelInfo,
    ResponseShape,
    TagsResponse,
)
from .options import build_options
from .transcript import build_transcript

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_chat_body(request: Request) -> ChatRequest:
    """Decode the body as JSON whatever Content-Type the client sent."""
    return decode_body(ChatRequest, await request.body())


async def read_generate_body(request: Request) -> GenerateRequest:
    return decode_body(GenerateRequest, await request.body())


def decode_body(model, raw: bytes):
    try:
        return model.model_validate_json(raw)
    except BodyValidationError as e:
        raise RequestValidationError(e.errors()) from e


@router.get("/", response_class=PlainTextResponse)
def root():
    """Plain-text banner, like Ollama's own root endpoint."""
    return "ollama-shim is running!"


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@router.get("/api/tags")
def list_models(request: Request):
    """List the single model served by this process."""
    cfg: Config = request.app.state.config
    try:
        listing = TagsResponse(models=[describe_model(cfg)])
        return JSONResponse(content=listing.model_dump())
    except (ValueError, TypeError) as e:
        logger.error(f"Failed to serialize model response: {e}")
        return JSONResponse(content=error_body("Failed to serialize model response"), status_code=500)


@router.post("/api/chat")
def chat(request: Request, body: ChatRequest = Depends(read_chat_body)):
    """Ollama chat endpoint (non-streamed)."""
    start_ns = time.perf_counter_ns()
    logger.info(f"Chat request: model={body.model}, messages={len(body.messages)}, stream={body.stream}")

    cfg: Config = request.app.state.config
    check_model(body.model, cfg)
    history, prompt = build_transcript(body.messages)
    return run_inference(request, body, history, prompt, start_ns, ResponseShape.CHAT)


@router.post("/api/generate")
def generate(request: Request, body: GenerateRequest = Depends(read_generate_body)):
    """Ollama generate endpoint (non-streamed, no history)."""
    start_ns = time.perf_counter_ns()
    logger.info(f"Generate request: model={body.model}, prompt length={len(body.prompt)}, stream={body.stream}")

    cfg: Config = request.app.state.config
    check_model(body.model, cfg)
    return run_inference(request, body, [], body.prompt, start_ns, ResponseShape.GENERATE)


def run_inference(request: Request, body: GenerationParams, history, prompt, start_ns, shape):
    """Validate options, call the bridge and render the outcome."""
    cfg: Config = request.app.state.config
    options = build_options(**body.raw_options())

    if body.stream:
        logger.debug("Streaming requested; replying with a single complete response")

    outcome = request.app.state.bridge.invoke(InferenceRequest(
        model_name=cfg.model_name,
        history=history,
        prompt=prompt,
        options=options,
    ))
    status, payload = format_outcome(outcome, cfg.model_name, start_ns, shape, cfg.unavailable_message)
    return JSONResponse(content=payload, status_code=status)


def check_model(name: str, cfg: Config):
    if name != cfg.model_name:
        raise ModelNotFoundError(name)


def describe_model(cfg: Config) -> ModelInfo:
    return ModelInfo(
        model=cfg.model_id,
        name=cfg.model_name,
        contextLength=cfg.context_length,
        pricing=None,
        size=0,
        details={"description": cfg.model_description},
    )


# ============================================================================
# Error handlers
# ============================================================================

async def invalid_body_handler(request: Request, exc: RequestValidationError):
    """Malformed or mistyped request bodies are 400s, not FastAPI's default 422."""
    problems = "; ".join(describe_problem(err) for err in exc.errors())
    logger.warning(f"Rejected request body on {request.url.path}: {problems}")
    return JSONResponse(content=error_body(f"Invalid JSON format: {problems}"), status_code=400)


def describe_problem(err) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()))
    message = err.get("msg", "invalid")
    return f"{location}: {message}" if location else message


async def shim_error_handler(request: Request, exc: ShimError):
    """Validation failures detected before any inference runs."""
    if isinstance(exc, ModelNotFoundError):
        message = str(exc)
    else:
        message = f"Failed to process request: {exc}"
    logger.warning(f"Rejected request on {request.url.path}: {message}")
    return JSONResponse(content=error_body(message), status_code=400)


def install_error_handlers(app: FastAPI):
    app.add_exception_handler(RequestValidationError, invalid_body_handler)
    app.add_exception_handler(ShimError, shim_error_handler)
