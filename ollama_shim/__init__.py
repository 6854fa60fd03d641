"""
ollama-shim

Ollama-compatible HTTP API in front of a single local model backend.

Components:
- transcript: message list -> conversation history + active prompt
- options: loose sampling parameters -> validated generation options
- bridge: synchronous, deadline-bounded calls into async backends
- formatter: chat / generate response envelopes
- api: Ollama-compatible endpoints
- backends: upstream Ollama, echo and null backends
"""

__version__ = "0.1.0"
