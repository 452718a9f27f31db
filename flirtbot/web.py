import logging
from itertools import chain

from flask import (
    Blueprint,
    Flask,
    Response,
    current_app,
    jsonify,
    render_template_string,
    request,
    stream_with_context,
)

from . import languages
from .config import Settings
from .errors import RelayError
from .hints import FLIRT_HINTS, HINT_PERIOD_SECONDS
from .models import utc_now
from .relay import CompletionRelay
from .store import ConversationStore
from .upstream import OllamaUpstream

log = logging.getLogger(__name__)

bp = Blueprint("flirtbot", __name__)


def create_app(settings=None, upstream=None, store=None):
    if settings is None:
        settings = Settings.from_env()
    if upstream is None:
        upstream = OllamaUpstream.from_settings(settings)
    if store is None:
        store = ConversationStore(max_conversations=settings.max_conversations)

    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.extensions["flirtbot"] = {
        "settings": settings,
        "upstream": upstream,
        "store": store,
        "relay": CompletionRelay(upstream, store, model=settings.ollama_model),
    }
    app.register_blueprint(bp)
    return app


def _ext(name):
    return current_app.extensions["flirtbot"][name]


def get_payload():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@bp.after_app_request
def add_cors_headers(resp):
    resp.headers["Access-Control-Allow-Origin"] = _ext("settings").cors_origin
    resp.headers["Access-Control-Allow-Credentials"] = "true"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type"
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    resp.headers["Access-Control-Expose-Headers"] = "X-Conversation-Id"
    return resp


@bp.app_errorhandler(RelayError)
def relay_error(exc):
    if exc.http_status >= 500:
        log.error("Upstream failure: %s %s", exc.message, exc.extra.get("details", ""))
    return jsonify(exc.to_dict()), exc.http_status


@bp.route("/")
def index():
    return render_template_string(
        HTML,
        languages=[lang.to_dict() for lang in languages.list_languages()],
        default_language=languages.DEFAULT_LANGUAGE,
        hints=FLIRT_HINTS,
        hint_period_ms=int(HINT_PERIOD_SECONDS * 1000),
    )


@bp.get("/health")
def health():
    settings = _ext("settings")
    return jsonify(
        {
            "status": "OK",
            "timestamp": utc_now(),
            "ollama": {
                "baseURL": settings.ollama_base_url,
                "model": settings.ollama_model,
                "status": "configured",
            },
        }
    )


@bp.get("/api/languages")
def list_languages():
    return jsonify({"languages": [lang.to_dict() for lang in languages.list_languages()]})


@bp.get("/api/models")
def models():
    return jsonify(_ext("upstream").list_models())


@bp.get("/api/conversations/<conversation_id>")
def conversation(conversation_id):
    turns = _ext("store").history(conversation_id)
    return jsonify(
        {"conversationId": conversation_id, "turns": [turn.to_dict() for turn in turns]}
    )


@bp.post("/api/reset")
def reset_chat():
    conversation_id = get_payload().get("conversationId")
    cleared = False
    if isinstance(conversation_id, str) and conversation_id:
        cleared = _ext("store").clear(conversation_id)
    return jsonify({"ok": True, "conversationId": conversation_id, "cleared": cleared})


@bp.post("/api/chat")
def chat():
    relay = _ext("relay")
    chat_request = relay.validate(get_payload())

    if not chat_request.stream:
        return jsonify(relay.complete(chat_request).to_dict())

    events = relay.stream(chat_request)
    # Pull the first emission here so an unreachable upstream still maps to 503.
    first = next(events)

    def generate():
        sent = 0
        try:
            for event in chain([first], events):
                delta = event.message[sent:]
                sent = len(event.message)
                if delta:
                    yield delta
        except RelayError as exc:
            log.error(
                "Stream for conversation %s ended early: %s",
                first.conversation_id,
                exc.extra.get("details", exc.message),
            )

    return Response(
        stream_with_context(generate()),
        mimetype="text/plain",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "X-Conversation-Id": first.conversation_id,
        },
    )


HTML = """
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>FlirtBot9000 - Language Practice</title>
<style>
:root{
  --bg:#1a0b1e;
  --panel:#2a1231;
  --line:rgba(255,255,255,0.1);
  --text:#fbeaf4;
  --muted:#c7a3b9;
  --accent:#ff4f8b;
  --radius:14px;
}
*{box-sizing:border-box}
html,body{
  height:100%;
  margin:0;
  font-family:system-ui,-apple-system,Segoe UI,Roboto,Arial,sans-serif;
  background:radial-gradient(circle at 20% 0%, #4a1740 0%, #1a0b1e 55%);
  color:var(--text);
}
.app{
  max-width:1100px;
  margin:24px auto;
  display:grid;
  grid-template-columns:280px 1fr;
  gap:18px;
  padding:16px;
}
.panel{
  background:var(--panel);
  border:1px solid var(--line);
  border-radius:var(--radius);
  overflow:hidden;
}
.sidebar{padding:16px;display:flex;flex-direction:column;gap:10px}
.small{font-size:12px;color:var(--muted)}
.langBtn{
  display:flex;
  gap:8px;
  align-items:center;
  width:100%;
  border:1px solid var(--line);
  background:transparent;
  color:var(--text);
  border-radius:9px;
  padding:8px 10px;
  cursor:pointer;
  text-align:left;
}
.langBtn.active{border-color:var(--accent);background:rgba(255,79,139,0.12)}
.hint{font-style:italic;font-size:13px;min-height:54px}
.progress{height:4px;background:var(--line);border-radius:2px;overflow:hidden}
.progress div{height:100%;width:0;background:var(--accent);transition:width .1s linear}
.main{padding:14px;display:flex;flex-direction:column;height:80vh}
#chat{flex:1;overflow:auto;display:flex;flex-direction:column;gap:10px;padding:8px}
.msg{
  max-width:84%;
  border-radius:12px;
  border:1px solid var(--line);
  padding:10px 12px;
  white-space:pre-wrap;
  word-break:break-word;
}
.msg.user{align-self:flex-end;background:#3b1640}
.msg.assistant{align-self:flex-start;background:#22102a}
.typing::after{content:"|";margin-left:4px;color:var(--accent);animation:blink 1s steps(2) infinite}
@keyframes blink{50%{opacity:0}}
.inputBar{margin-top:10px;display:flex;gap:8px}
.inputBar textarea{
  flex:1;
  min-height:44px;
  resize:none;
  border:1px solid var(--line);
  border-radius:12px;
  padding:10px;
  color:var(--text);
  background:transparent;
  font:inherit;
}
.btn{border:none;border-radius:9px;padding:9px 14px;color:#fff;cursor:pointer;font-weight:600;background:var(--accent)}
.btn.alt{background:transparent;border:1px solid var(--line);color:var(--muted)}
.btn:disabled{opacity:.5;cursor:not-allowed}
@media (max-width:900px){.app{grid-template-columns:1fr}}
</style>
</head>
<body>
  <div class="app">
    <div class="panel sidebar">
      <h2 style="margin:0">FlirtBot9000</h2>
      <div class="small">Pick a language to practice</div>
      <div id="languages"></div>
      <div class="small" style="margin-top:8px">Hint</div>
      <div id="hint" class="hint"></div>
      <div class="progress"><div id="progressBar"></div></div>
    </div>
    <div class="panel main">
      <div class="small"><span id="status">idle</span></div>
      <div id="chat" role="log" aria-live="polite"></div>
      <div class="inputBar">
        <textarea id="input" placeholder="Say something charming..."></textarea>
        <button id="clearBtn" class="btn alt">Clear</button>
        <button id="sendBtn" class="btn">Send</button>
      </div>
    </div>
  </div>

<script>
const LANGUAGES = {{ languages | tojson }};
const HINTS = {{ hints | tojson }};
const HINT_PERIOD_MS = {{ hint_period_ms }};

const chatEl = document.getElementById("chat");
const input = document.getElementById("input");
const sendBtn = document.getElementById("sendBtn");
const clearBtn = document.getElementById("clearBtn");
const statusEl = document.getElementById("status");
const languagesEl = document.getElementById("languages");
const hintEl = document.getElementById("hint");
const progressBar = document.getElementById("progressBar");

let selectedLanguage = {{ default_language | tojson }};
let messages = [];
let history = [];
let conversationId = null;
let isTyping = false;

function makeId(){
  return Date.now().toString(36) + Math.random().toString(36).slice(2);
}

function currentLanguage(){
  return LANGUAGES.find((lang) => lang.id === selectedLanguage);
}

function render(){
  chatEl.innerHTML = "";
  for(const msg of messages){
    const el = document.createElement("article");
    el.className = `msg ${msg.role}` + (msg.partial ? " typing" : "");
    el.textContent = msg.content;
    chatEl.appendChild(el);
  }
  chatEl.scrollTop = chatEl.scrollHeight;
  sendBtn.disabled = isTyping;
  statusEl.textContent = isTyping ? "typing..." : "idle";
}

function renderLanguages(){
  languagesEl.innerHTML = "";
  for(const lang of LANGUAGES){
    const btn = document.createElement("button");
    btn.className = "langBtn" + (lang.id === selectedLanguage ? " active" : "");
    btn.textContent = `${lang.emoji} ${lang.name}`;
    btn.title = lang.culture;
    btn.addEventListener("click", () => selectLanguage(lang.id));
    languagesEl.appendChild(btn);
  }
}

function clearChat(){
  messages = [];
  history = [];
  const lang = currentLanguage();
  if(lang){
    messages.push({
      id: makeId(),
      role: "assistant",
      content: `${lang.emoji} Ready to practice flirting in ${lang.name}! Let's start with something simple - say hello to me! 😉`,
      timestamp: new Date().toISOString()
    });
  }
  render();
}

function resetServerConversation(){
  if(!conversationId) return;
  const previous = conversationId;
  conversationId = null;
  fetch("/api/reset", {
    method: "POST",
    headers: {"Content-Type": "application/json"},
    body: JSON.stringify({conversationId: previous})
  }).catch(() => {});
}

function selectLanguage(id){
  selectedLanguage = id;
  resetServerConversation();
  renderLanguages();
  clearChat();
}

async function send(){
  const text = input.value.trim();
  if(!text || isTyping) return;
  input.value = "";

  const priorHistory = history.slice();
  messages.push({id: makeId(), role: "user", content: text, timestamp: new Date().toISOString()});
  history.push({role: "user", content: text});
  const reply = {id: makeId(), role: "assistant", content: "", partial: true, timestamp: new Date().toISOString()};
  messages.push(reply);
  isTyping = true;
  render();

  const body = {
    message: text,
    conversationHistory: priorHistory,
    stream: true,
    language: selectedLanguage
  };
  if(conversationId) body.conversationId = conversationId;

  try {
    const resp = await fetch("/api/chat", {
      method: "POST",
      headers: {"Content-Type": "application/json"},
      body: JSON.stringify(body)
    });
    if(!resp.ok || !resp.body){
      let detail = `Request failed (${resp.status})`;
      try { detail = (await resp.json()).error || detail; } catch (_) {}
      throw new Error(detail);
    }
    conversationId = resp.headers.get("X-Conversation-Id") || conversationId;

    const reader = resp.body.getReader();
    const decoder = new TextDecoder();
    let full = "";
    while(true){
      const {value, done} = await reader.read();
      if(done) break;
      full += decoder.decode(value, {stream: true});
      reply.content = full;
      reply.timestamp = new Date().toISOString();
      render();
    }
    history.push({role: "assistant", content: full});
  } catch (err) {
    reply.content = `Error: ${err && err.message ? err.message : "Unknown error"}`;
  } finally {
    reply.partial = false;
    isTyping = false;
    render();
  }
}

let currentHint = "";
let progress = 0;
let progressTimer = null;

function setRandomHint(){
  let next;
  do {
    next = HINTS[Math.floor(Math.random() * HINTS.length)];
  } while(next === currentHint && HINTS.length > 1);
  currentHint = next;
  hintEl.textContent = next;
}

function startProgress(){
  progress = 0;
  progressBar.style.width = "0%";
  if(progressTimer) clearInterval(progressTimer);
  progressTimer = setInterval(() => {
    if(progress < 100){
      progress += 1;
      progressBar.style.width = progress + "%";
    } else {
      clearInterval(progressTimer);
    }
  }, HINT_PERIOD_MS / 100);
}

sendBtn.addEventListener("click", send);
clearBtn.addEventListener("click", () => { resetServerConversation(); clearChat(); });
input.addEventListener("keydown", (e) => {
  if(e.key === "Enter" && !e.shiftKey){
    e.preventDefault();
    send();
  }
});

setRandomHint();
startProgress();
setInterval(() => { setRandomHint(); startProgress(); }, HINT_PERIOD_MS);

renderLanguages();
clearChat();
</script>
</body>
</html>
"""
