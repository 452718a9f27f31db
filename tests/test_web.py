import json
from datetime import datetime

import httpx
import pytest

from flirtbot.errors import GenerationFailed, UpstreamUnavailable
from flirtbot.store import ConversationStore
from flirtbot.upstream import OllamaUpstream
from flirtbot.web import create_app

EXPECTED_IDS = ["english", "french", "german", "hindi", "italian", "portuguese", "spanish", "thai"]


def ollama_app(settings, handler):
    upstream = OllamaUpstream.from_settings(settings, transport=httpx.MockTransport(handler))
    return create_app(settings, upstream=upstream)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "OK"
    assert body["ollama"] == {
        "baseURL": "http://ollama.test",
        "model": "llama2-test",
        "status": "configured",
    }
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))


def test_languages(client):
    body = client.get("/api/languages").get_json()
    assert [lang["id"] for lang in body["languages"]] == EXPECTED_IDS
    assert body["languages"][1] == {
        "id": "french",
        "name": "Français",
        "emoji": "🇫🇷",
        "culture": "sophisticated Parisian elegance and romantic passion",
    }


def test_models_passthrough(client, upstream):
    resp = client.get("/api/models")
    assert resp.status_code == 200
    assert resp.get_json() == upstream.models


def test_models_unavailable(settings, make_upstream):
    app = create_app(settings, upstream=make_upstream(error=UpstreamUnavailable()))
    resp = app.test_client().get("/api/models")
    assert resp.status_code == 503


def test_cors_header(client):
    resp = client.get("/api/languages")
    assert resp.headers["Access-Control-Allow-Origin"] == "http://frontend.test"
    assert resp.headers["Access-Control-Allow-Credentials"] == "true"


def test_index_page_renders_selector_and_hints(client):
    page = client.get("/").get_data(as_text=True)
    assert "FlirtBot9000" in page
    assert "\"french\"" in page
    assert "Heb je een kaart?" in page


@pytest.mark.parametrize(
    "body",
    [{}, {"message": ""}, {"message": 12}, {"message": None, "stream": False}],
)
def test_chat_rejects_missing_message(client, upstream, body):
    resp = client.post("/api/chat", json=body)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Message is required and must be a string"
    assert upstream.calls == []


def test_chat_rejects_non_json_body(client, upstream):
    resp = client.post("/api/chat", data="hello", content_type="text/plain")
    assert resp.status_code == 400
    assert upstream.calls == []


def test_chat_buffered(client, upstream, store):
    resp = client.post("/api/chat", json={"message": "hi", "language": "french", "stream": False})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["message"] == "Bonjour!"
    assert body["model"] == "llama2-test"
    assert set(body) == {"message", "timestamp", "model", "conversationId"}
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
    assert len(store.history(body["conversationId"])) == 2


def test_chat_streams_raw_growing_text(client, store):
    resp = client.post("/api/chat", json={"message": "hi", "language": "french"})
    assert resp.status_code == 200
    assert resp.mimetype == "text/plain"
    conversation_id = resp.headers["X-Conversation-Id"]
    assert resp.get_data(as_text=True) == "Bonjour!"
    assert [t.content for t in store.history(conversation_id)] == ["hi", "Bonjour!"]


def test_chat_stream_upstream_unavailable_is_503(settings, make_upstream):
    upstream = make_upstream(error=UpstreamUnavailable())
    client = create_app(settings, upstream=upstream).test_client()
    resp = client.post("/api/chat", json={"message": "hi"})
    assert resp.status_code == 503
    assert "not available" in resp.get_json()["error"]


def test_chat_generic_failure_is_500_with_details(settings, make_upstream):
    upstream = make_upstream(error=GenerationFailed(details="model exploded"))
    client = create_app(settings, upstream=upstream).test_client()
    for stream in (True, False):
        resp = client.post("/api/chat", json={"message": "hi", "stream": stream})
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to generate response", "details": "model exploded"}


def test_chat_stream_failure_after_start_keeps_partial_text(settings, make_upstream, store):
    upstream = make_upstream(
        fragments=["Bon", "jour", "!"], error=GenerationFailed(details="cut"), fail_after=2
    )
    client = create_app(settings, upstream=upstream, store=store).test_client()
    resp = client.post("/api/chat", json={"message": "hi"})
    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "Bonjour"
    assert len(store) == 0


def test_conversation_history_and_reset(client):
    first = client.post("/api/chat", json={"message": "hi", "stream": False}).get_json()
    conversation_id = first["conversationId"]
    client.post(
        "/api/chat", json={"message": "more", "stream": False, "conversationId": conversation_id}
    )

    turns = client.get(f"/api/conversations/{conversation_id}").get_json()["turns"]
    assert [(t["role"], t["content"]) for t in turns] == [
        ("user", "hi"),
        ("assistant", "Bonjour!"),
        ("user", "more"),
        ("assistant", "Bonjour!"),
    ]

    resp = client.post("/api/reset", json={"conversationId": conversation_id}).get_json()
    assert resp == {"ok": True, "conversationId": conversation_id, "cleared": True}
    assert client.get(f"/api/conversations/{conversation_id}").get_json()["turns"] == []


def test_scenario_french_buffered_against_stub_ollama(settings):
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"model": "llama2-test", "response": "Bonjour!", "done": True})

    client = ollama_app(settings, handler).test_client()
    resp = client.post("/api/chat", json={"message": "hi", "language": "french", "stream": False})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["message"] == "Bonjour!"
    assert body["model"] == "llama2-test"
    assert len(seen) == 1
    assert seen[0]["prompt"].endswith("User: hi\nFlirtBot9000:")
    assert "Français" in seen[0]["prompt"]


def test_scenario_french_streamed_against_stub_ollama(settings):
    def handler(request):
        lines = [
            json.dumps({"response": "Bon", "done": False}),
            "this is not json",
            json.dumps({"response": "jour!", "done": False}),
            json.dumps({"response": "", "done": True}),
        ]
        return httpx.Response(200, text="\n".join(lines) + "\n")

    client = ollama_app(settings, handler).test_client()
    resp = client.post("/api/chat", json={"message": "hi", "language": "french"})
    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "Bonjour!"


def test_scenario_unknown_language_never_reaches_ollama(settings):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"response": "should not happen", "done": True})

    client = ollama_app(settings, handler).test_client()
    for stream in (True, False):
        resp = client.post("/api/chat", json={"message": "hi", "language": "klingon", "stream": stream})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Unsupported language"
        assert body["supportedLanguages"] == EXPECTED_IDS
    assert calls == []


def test_scenario_connection_refused_is_503(settings):
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    client = ollama_app(settings, handler).test_client()
    for stream in (True, False):
        resp = client.post("/api/chat", json={"message": "hi", "stream": stream})
        assert resp.status_code == 503
        body = resp.get_json()
        assert "not available" in body["error"]
        assert body["details"] == "Connection refused to Ollama service"


def test_create_app_keeps_injected_empty_store(settings, upstream):
    store = ConversationStore()
    app = create_app(settings, upstream=upstream, store=store)
    assert app.extensions["flirtbot"]["store"] is store
    assert app.extensions["flirtbot"]["upstream"] is upstream
    assert app.extensions["flirtbot"]["settings"] is settings

    body = app.test_client().post("/api/chat", json={"message": "hi", "stream": False}).get_json()
    assert len(store.history(body["conversationId"])) == 2


def test_chat_accepts_whitespace_only_message(client, upstream):
    resp = client.post("/api/chat", json={"message": "   ", "stream": False})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Bonjour!"
    assert len(upstream.calls) == 1


@pytest.mark.parametrize("path", ["/api/reset", "/api/chat"])
def test_non_object_json_body_is_treated_as_empty(client, upstream, path):
    resp = client.post(path, json=["x"])
    if path == "/api/reset":
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True, "conversationId": None, "cleared": False}
    else:
        assert resp.status_code == 400
    assert upstream.calls == []
