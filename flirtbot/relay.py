"""Completion relay: validates a chat request, forwards the prompt upstream and
normalizes the reply into ``ChatResponse`` emissions."""

import logging

from . import languages
from .errors import InvalidRequest
from .models import ROLES, ChatRequest, ChatResponse, Turn, new_id
from .prompts import build_prompt

log = logging.getLogger(__name__)


def parse_bool(value, default=True):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def clean_history(raw):
    if not isinstance(raw, list):
        return []
    history = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        role, content = item.get("role"), item.get("content")
        if role in ROLES and isinstance(content, str):
            history.append({"role": role, "content": content})
    return history


def accumulate(fragments):
    """Fold text fragments into the running buffer, yielding it after each one."""
    buffer = ""
    for fragment in fragments:
        buffer += fragment
        yield buffer


class CompletionRelay:
    def __init__(self, upstream, store, model=None):
        self.upstream = upstream
        self.store = store
        self.model = model or getattr(upstream, "model", "")

    def validate(self, payload):
        if not isinstance(payload, dict):
            payload = {}
        message = payload.get("message")
        if not isinstance(message, str) or not message:
            raise InvalidRequest("Message is required and must be a string")

        language = payload.get("language")
        if language is None:
            language = languages.DEFAULT_LANGUAGE
        lang = languages.resolve(language)
        if lang is None:
            raise InvalidRequest(
                "Unsupported language",
                supportedLanguages=languages.language_ids(),
            )

        conversation_id = payload.get("conversationId")
        if not isinstance(conversation_id, str) or not conversation_id.strip():
            conversation_id = None

        return ChatRequest(
            message=message,
            history=clean_history(payload.get("conversationHistory")),
            stream=parse_bool(payload.get("stream"), default=True),
            language=lang.id,
            conversation_id=conversation_id and conversation_id.strip(),
        )

    def handle(self, request):
        if request.stream:
            return self.stream(request)
        return self.complete(request)

    def complete(self, request):
        conversation_id = self._conversation_id(request)
        prompt = self._prompt(request, conversation_id)
        text = self.upstream.generate(prompt)
        response = ChatResponse(message=text, model=self.model, conversation_id=conversation_id)
        self._record(conversation_id, request.message, text)
        return response

    def stream(self, request):
        """Yield one partial response per upstream fragment, then the terminal one.

        Every partial carries the full text received so far, so each one
        extends the previous. The turn pair is stored only after the terminal
        emission.
        """
        conversation_id = self._conversation_id(request)
        prompt = self._prompt(request, conversation_id)
        text = ""
        for text in accumulate(self.upstream.stream(prompt)):
            yield ChatResponse(
                message=text,
                model=self.model,
                conversation_id=conversation_id,
                partial=True,
            )
        yield ChatResponse(message=text, model=self.model, conversation_id=conversation_id)
        self._record(conversation_id, request.message, text)

    def _conversation_id(self, request):
        if not request.conversation_id:
            request.conversation_id = new_id()
        return request.conversation_id

    def _prompt(self, request, conversation_id):
        history = request.history or self.store.history(conversation_id)
        log.info(
            "Generating reply for conversation %s (language=%s, stream=%s, %d prior turns)",
            conversation_id,
            request.language,
            request.stream,
            len(history),
        )
        return build_prompt(request.language, history, request.message)

    def _record(self, conversation_id, user_text, assistant_text):
        self.store.append(
            conversation_id,
            Turn(role="user", content=user_text),
            Turn(role="assistant", content=assistant_text),
        )
