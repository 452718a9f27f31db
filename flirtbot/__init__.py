"""FlirtBot9000: a language-practice chat relay in front of a local Ollama server."""

from .config import Settings, configure_logging
from .errors import GenerationFailed, InvalidRequest, RelayError, UpstreamUnavailable
from .relay import CompletionRelay
from .store import ConversationStore
from .upstream import OllamaUpstream
from .web import create_app

__version__ = "0.1.0"

__all__ = [
    "CompletionRelay",
    "ConversationStore",
    "GenerationFailed",
    "InvalidRequest",
    "OllamaUpstream",
    "RelayError",
    "Settings",
    "UpstreamUnavailable",
    "configure_logging",
    "create_app",
]
