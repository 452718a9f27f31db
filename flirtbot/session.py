"""Client-side chat session.

Mirrors what the browser page does: it keeps its own turn list, sends
messages to the relay and overwrites the in-flight assistant turn as the
streamed text grows. Its copy of the conversation is independent of the
server's store.
"""

import logging

import httpx

from .languages import DEFAULT_LANGUAGE
from .models import Turn, utc_now

log = logging.getLogger(__name__)

WELCOME_TEMPLATE = (
    "{emoji} Ready to practice flirting in {name}! "
    "Let's start with something simple - say hello to me! 😉"
)


class ChatSession:
    def __init__(self, base_url="http://localhost:3000", language=DEFAULT_LANGUAGE, client=None):
        self._client = client or httpx.Client(base_url=base_url, timeout=None)
        self.language = language
        self.languages = {}
        self.turns = []
        self.history = []
        self.conversation_id = None
        self.is_typing = False
        self.model = None

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def load_languages(self):
        resp = self._client.get("/api/languages")
        resp.raise_for_status()
        items = resp.json().get("languages") or []
        self.languages = {item["id"]: item for item in items}
        return items

    def check_health(self):
        resp = self._client.get("/health")
        resp.raise_for_status()
        return resp.json()

    def list_models(self):
        resp = self._client.get("/api/models")
        resp.raise_for_status()
        return resp.json().get("models") or []

    def current_language(self):
        return self.languages.get(self.language)

    def select_language(self, language_id):
        if not self.languages:
            self.load_languages()
        if language_id not in self.languages:
            raise ValueError(f"Unknown language: {language_id}")
        self.language = language_id
        self.clear()
        return self.turns[0]

    def clear(self):
        self._reset_server_conversation()
        self.turns = []
        self.history = []
        self.conversation_id = None
        lang = self.current_language()
        if lang is not None:
            self.turns.append(
                Turn(
                    role="assistant",
                    content=WELCOME_TEMPLATE.format(emoji=lang["emoji"], name=lang["name"]),
                )
            )

    def send(self, text, stream=True, on_update=None):
        """Send ``text`` and return the assistant turn once the reply settles.

        ``on_update`` is called with the assistant turn after every change to
        its content. Failures end up as the turn's content, not as exceptions.
        """
        message = (text or "").strip()
        if not message or self.is_typing:
            return None

        user_turn = Turn(role="user", content=message)
        reply = Turn(role="assistant", partial=True)
        self.turns.append(user_turn)
        self.turns.append(reply)
        self.history.append(user_turn.as_message())
        self.is_typing = True

        body = {
            "message": message,
            "conversationHistory": self.history[:-1],
            "stream": stream,
            "language": self.language,
        }
        if self.conversation_id:
            body["conversationId"] = self.conversation_id

        try:
            if stream:
                self._receive_stream(body, reply, on_update)
            else:
                self._receive_json(body, reply)
            self.history.append(reply.as_message())
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            log.warning("Chat request failed: %s", exc)
            reply.content = f"Error: {describe_error(exc)}"
        finally:
            reply.partial = False
            self.is_typing = False
            if on_update is not None:
                on_update(reply)
        return reply

    def _receive_stream(self, body, reply, on_update):
        with self._client.stream("POST", "/api/chat", json=body) as resp:
            if resp.status_code >= 400:
                resp.read()
                raise httpx.HTTPStatusError(
                    _error_message(resp), request=resp.request, response=resp
                )
            self.conversation_id = resp.headers.get("X-Conversation-Id") or self.conversation_id
            text = ""
            for chunk in resp.iter_text():
                if not chunk:
                    continue
                text += chunk
                reply.content = text
                reply.timestamp = utc_now()
                if on_update is not None:
                    on_update(reply)

    def _receive_json(self, body, reply):
        resp = self._client.post("/api/chat", json=body)
        if resp.status_code >= 400:
            raise httpx.HTTPStatusError(_error_message(resp), request=resp.request, response=resp)
        data = resp.json()
        reply.content = data["message"]
        reply.timestamp = data.get("timestamp") or reply.timestamp
        self.conversation_id = data.get("conversationId") or self.conversation_id
        self.model = data.get("model") or self.model

    def _reset_server_conversation(self):
        if not self.conversation_id:
            return
        try:
            self._client.post("/api/reset", json={"conversationId": self.conversation_id})
        except httpx.HTTPError as exc:
            log.warning("Could not reset conversation %s: %s", self.conversation_id, exc)


def _error_message(resp):
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"Request failed ({resp.status_code})"
    return data.get("error") or f"Request failed ({resp.status_code})"


def describe_error(exc):
    if isinstance(exc, httpx.ConnectError):
        return "Could not reach the chat server."
    return str(exc) or exc.__class__.__name__
