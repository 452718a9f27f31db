"""Client for the Ollama server that generates replies.

Buffered generation and model listing go through ``ollama.Client``. The
streaming call reads the line-delimited JSON body with ``httpx`` directly so
that a noisy line can be skipped instead of aborting the whole reply.
"""

import json
import logging

import httpx
import ollama

from .errors import GenerationFailed, UpstreamUnavailable

log = logging.getLogger(__name__)


def iter_fragments(lines, on_malformed=None):
    """Yield the ``response`` text of each chunk until the ``done`` marker.

    Blank lines are ignored. Lines that are not a JSON object are passed to
    ``on_malformed`` and skipped. A chunk carrying ``error`` raises
    ``GenerationFailed``.
    """
    for line in lines:
        text = line.strip()
        if not text:
            continue
        try:
            data = json.loads(text)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            if on_malformed is not None:
                on_malformed(text)
            continue
        if data.get("error"):
            raise GenerationFailed(details=str(data["error"]))
        fragment = data.get("response")
        if isinstance(fragment, str) and fragment:
            yield fragment
        if data.get("done"):
            return


class OllamaUpstream:
    def __init__(
        self,
        base_url="http://localhost:11434",
        model="llama2",
        temperature=0.7,
        max_tokens=2048,
        timeout=None,
        transport=None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.malformed_chunks = 0
        self._client = ollama.Client(host=self.base_url, timeout=timeout, transport=transport)
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings, transport=None):
        return cls(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.request_timeout,
            transport=transport,
        )

    @property
    def options(self):
        return {"temperature": self.temperature, "num_predict": self.max_tokens}

    def generate(self, prompt):
        try:
            resp = self._client.generate(
                model=self.model,
                prompt=prompt,
                stream=False,
                options=self.options,
            )
            text = resp["response"]
        except (ConnectionError, httpx.ConnectError) as exc:
            raise UpstreamUnavailable() from exc
        except ollama.ResponseError as exc:
            raise GenerationFailed(details=exc.error) from exc
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise GenerationFailed(details=str(exc)) from exc
        if not isinstance(text, str):
            raise GenerationFailed(details="Upstream returned no response text")
        return text

    def stream(self, prompt):
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": True,
            "options": self.options,
        }
        try:
            with self._http.stream("POST", "/api/generate", json=payload) as resp:
                if resp.status_code >= 400:
                    resp.read()
                    raise GenerationFailed(details=_error_detail(resp))
                yield from iter_fragments(resp.iter_lines(), self._count_malformed)
        except httpx.ConnectError as exc:
            raise UpstreamUnavailable() from exc
        except httpx.HTTPError as exc:
            raise GenerationFailed(details=str(exc)) from exc

    def list_models(self):
        try:
            listing = self._client.list()
        except (ConnectionError, httpx.ConnectError) as exc:
            raise UpstreamUnavailable() from exc
        except ollama.ResponseError as exc:
            raise GenerationFailed(details=exc.error, message="Failed to fetch available models") from exc
        except httpx.HTTPError as exc:
            raise GenerationFailed(details=str(exc), message="Failed to fetch available models") from exc
        if hasattr(listing, "model_dump"):
            return listing.model_dump(mode="json", exclude_none=True)
        return dict(listing)

    def close(self):
        self._http.close()

    def _count_malformed(self, line):
        self.malformed_chunks += 1
        log.debug("Skipping malformed stream chunk: %.80s", line)


def _error_detail(resp):
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return resp.text
