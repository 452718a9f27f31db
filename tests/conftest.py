import pytest

from flirtbot.config import Settings
from flirtbot.store import ConversationStore
from flirtbot.web import create_app


class FakeUpstream:
    """Stands in for OllamaUpstream and records every call it receives."""

    model = "stub-model"

    def __init__(self, reply="Bonjour!", fragments=None, error=None, fail_after=None):
        self.reply = reply
        self.fragments = list(fragments if fragments is not None else ["Bon", "jour", "!"])
        self.error = error
        self.fail_after = fail_after
        self.calls = []
        self.models = {"models": [{"model": "llama2:latest", "size": 1}]}

    @property
    def prompts(self):
        return [prompt for _, prompt in self.calls]

    def generate(self, prompt):
        self.calls.append(("generate", prompt))
        if self.error is not None:
            raise self.error
        return self.reply

    def stream(self, prompt):
        self.calls.append(("stream", prompt))
        if self.error is not None and self.fail_after is None:
            raise self.error
        for index, fragment in enumerate(self.fragments):
            if self.fail_after is not None and index == self.fail_after:
                raise self.error
            yield fragment

    def list_models(self):
        self.calls.append(("list", None))
        if self.error is not None:
            raise self.error
        return self.models


@pytest.fixture
def settings():
    return Settings(
        ollama_base_url="http://ollama.test",
        ollama_model="llama2-test",
        cors_origin="http://frontend.test",
    )


@pytest.fixture
def make_upstream():
    return FakeUpstream


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def store():
    return ConversationStore()


@pytest.fixture
def app(settings, upstream, store):
    return create_app(settings, upstream=upstream, store=store)


@pytest.fixture
def client(app):
    return app.test_client()
