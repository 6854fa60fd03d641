"""
ollama-shim - Main Entry Point

Ollama-compatible API server that serves one fixed model identity and
forwards every request to a pluggable text-generation backend.

Usage:
    ollama-shim                  # same as "serve"
    ollama-shim serve [--host H] [--port P]
    ollama-shim ask <prompt...>  # one-shot prompt, printed to stdout

Environment Variables:
    SHIM_HOST             - Server host (default: 0.0.0.0)
    SHIM_PORT             - Server port (default: 8080)
    SHIM_MODEL_NAME       - Model name clients must request (default: apple)
    SHIM_REQUEST_TIMEOUT  - Inference deadline in seconds (default: 30)
    SHIM_BACKEND          - ollama | echo | none (default: ollama)
    UPSTREAM_URL          - Upstream Ollama URL (default: http://localhost:11434)
    UPSTREAM_MODEL        - Upstream model name (default: llama3.2)
    LOG_LEVEL             - Logging level (default: INFO)
"""

import argparse
import asyncio
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import install_error_handlers, router as api_router
from .backends import InferenceBackend, create_backend
from .bridge import InferenceBridge
from .config import Config, config as default_config
from .errors import ShimError
from .formatter import format_outcome
from .models import ChatMessage, InferenceRequest, ResponseShape
from .options import build_options
from .transcript import build_transcript

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(cfg: Optional[Config] = None, backend: Optional[InferenceBackend] = None) -> FastAPI:
    """Build the FastAPI application around one backend and one bridge."""
    cfg = cfg or default_config
    backend = backend or create_backend(cfg)
    bridge = InferenceBridge(backend, timeout=cfg.request_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown lifecycle."""

        # Startup
        logger.info("=" * 60)
        logger.info("ollama-shim Starting")
        logger.info("=" * 60)

        bridge.start()

        logger.info(f"Model: {cfg.model_name} ({cfg.model_id})")
        logger.info(f"Backend: {backend.name} (available={backend.is_available()})")
        if backend.name == "ollama":
            logger.info(f"Upstream: {cfg.upstream_url} model={cfg.upstream_model}")
        logger.info(f"Request timeout: {cfg.request_timeout}s")
        logger.info("-" * 60)
        logger.info(f"Server ready at {cfg.base_url}")
        logger.info("=" * 60)

        yield

        # Shutdown
        logger.info("Shutting down...")
        await asyncio.to_thread(bridge.stop)
        logger.info("Shutdown complete")

    app = FastAPI(
        title="ollama-shim",
        description="Ollama-compatible API in front of a single local model backend.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = cfg
    app.state.bridge = bridge

    app.include_router(api_router)
    install_error_handlers(app)
    return app


def serve(cfg: Config):
    """Run the HTTP server until interrupted."""
    uvicorn.run(
        create_app(cfg),
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
    )


def ask(cfg: Config, prompt: str, backend: Optional[InferenceBackend] = None) -> int:
    """Run one prompt through the bridge and print the answer. Returns an exit code."""
    start_ns = time.perf_counter_ns()
    backend = backend or create_backend(cfg)
    bridge = InferenceBridge(backend, timeout=cfg.request_timeout)

    try:
        history, text = build_transcript([ChatMessage(role="user", content=prompt)])
        outcome = bridge.invoke(InferenceRequest(
            model_name=cfg.model_name,
            history=history,
            prompt=text,
            options=build_options(),
        ))
    except ShimError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        bridge.stop()

    status, payload = format_outcome(outcome, cfg.model_name, start_ns, ResponseShape.GENERATE,
                                     cfg.unavailable_message)
    if status != 200:
        print(f"Error: {payload['error']}", file=sys.stderr)
        return 1

    print(payload["response"])
    logger.info(f"Completed in {payload['total_duration'] / 1e9:.2f}s")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="ollama-shim", description="Ollama-compatible local model bridge")
    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser("serve", help="Run the HTTP server (default)")
    serve_parser.add_argument("--host", help="Bind address (overrides SHIM_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (overrides SHIM_PORT)")

    ask_parser = sub.add_parser("ask", help="Send one prompt to the backend and print the answer")
    ask_parser.add_argument("prompt", nargs="+", help="Prompt text")

    args = parser.parse_args(argv)
    cfg = default_config
    setup_logging(cfg.log_level)

    if args.command == "ask":
        return ask(cfg, " ".join(args.prompt))

    if getattr(args, "host", None):
        cfg.host = args.host
    if getattr(args, "port", None):
        cfg.port = args.port
    serve(cfg)
    return 0


if __name__ == "__main__":
    sys.exit(main())
