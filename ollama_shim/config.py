"""Shim configuration."""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

DEFAULT_UNAVAILABLE_MESSAGE = "The language model backend is not available on this host."


@dataclass
class Config:
    """Configuration loaded from environment variables."""

    # Server
    host: str = field(default_factory=lambda: os.getenv("SHIM_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("SHIM_PORT", "8080")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Model identity served by this process
    model_name: str = field(default_factory=lambda: os.getenv("SHIM_MODEL_NAME", "apple"))
    model_id: str = field(default_factory=lambda: os.getenv("SHIM_MODEL_ID", "apple-intelligence"))
    model_description: str = field(default_factory=lambda:
        os.getenv("SHIM_MODEL_DESCRIPTION", "On-device language model"))
    context_length: int = field(default_factory=lambda: int(os.getenv("SHIM_CONTEXT_LENGTH", "8192")))

    # Inference
    request_timeout: float = field(default_factory=lambda: float(os.getenv("SHIM_REQUEST_TIMEOUT", "30")))
    backend: str = field(default_factory=lambda: os.getenv("SHIM_BACKEND", "ollama"))
    unavailable_message: str = field(default_factory=lambda:
        os.getenv("SHIM_UNAVAILABLE_MESSAGE", DEFAULT_UNAVAILABLE_MESSAGE))

    # Upstream Ollama (used by the "ollama" backend)
    upstream_url: str = field(default_factory=lambda: os.getenv("UPSTREAM_URL", "http://localhost:11434"))
    upstream_model: str = field(default_factory=lambda: os.getenv("UPSTREAM_MODEL", "llama3.2"))

    @property
    def base_url(self) -> str:
        """URL clients should point their Ollama host setting at."""
        return f"http://{self.host}:{self.port}"


# Global config instance
config = Config()
