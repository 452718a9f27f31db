"""Runtime configuration.

Values come from the process environment, optionally seeded from a ``.env``
file. Everything downstream receives a ``Settings`` instance explicitly.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_PORT = 3000
DEFAULT_HOST = "127.0.0.1"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama2"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_CORS_ORIGIN = "http://localhost:4200"
DEFAULT_MAX_CONVERSATIONS = 200


def clamp_float(value, minimum, maximum, default):
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if parsed < minimum:
        return minimum
    if parsed > maximum:
        return maximum
    return parsed


def clamp_int(value, minimum, maximum, default):
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if parsed < minimum:
        return minimum
    if parsed > maximum:
        return maximum
    return parsed


def optional_float(value):
    if value in (None, ""):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


@dataclass(frozen=True)
class Settings:
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    # None leaves the upstream read loop without a timeout.
    request_timeout: Optional[float] = None
    cors_origin: str = DEFAULT_CORS_ORIGIN
    max_conversations: int = DEFAULT_MAX_CONVERSATIONS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None, dotenv=True):
        if dotenv:
            load_dotenv()
        env = os.environ if environ is None else environ
        return cls(
            port=clamp_int(env.get("PORT"), 1, 65535, DEFAULT_PORT),
            host=(env.get("HOST") or DEFAULT_HOST).strip(),
            ollama_base_url=(env.get("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL).rstrip("/"),
            ollama_model=(env.get("OLLAMA_MODEL") or DEFAULT_OLLAMA_MODEL).strip(),
            temperature=clamp_float(env.get("OLLAMA_TEMPERATURE"), 0.0, 2.0, DEFAULT_TEMPERATURE),
            max_tokens=clamp_int(env.get("OLLAMA_MAX_TOKENS"), 1, 131072, DEFAULT_MAX_TOKENS),
            request_timeout=optional_float(env.get("OLLAMA_TIMEOUT")),
            cors_origin=(env.get("CORS_ORIGIN") or DEFAULT_CORS_ORIGIN).strip(),
            max_conversations=clamp_int(
                env.get("MAX_CONVERSATIONS"), 1, 100000, DEFAULT_MAX_CONVERSATIONS
            ),
            log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        )


def configure_logging(level=None):
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
