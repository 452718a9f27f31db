"""Errors raised by the relay and translated into HTTP responses by the web layer."""


class RelayError(Exception):
    """Base class for every failure surfaced to a chat caller.

    ``extra`` holds additional JSON fields for the error body, for example
    ``supportedLanguages`` or ``details``.
    """

    http_status = 500

    def __init__(self, message, http_status=None, **extra):
        super().__init__(message)
        self.message = message
        if http_status is not None:
            self.http_status = http_status
        self.extra = extra

    def to_dict(self):
        body = {"error": self.message}
        body.update(self.extra)
        return body


class InvalidRequest(RelayError):
    """Rejected before any call to the model server."""

    http_status = 400


class UpstreamUnavailable(RelayError):
    http_status = 503

    def __init__(
        self,
        message="Ollama service is not available. Please ensure Ollama is running.",
        details="Connection refused to Ollama service",
    ):
        super().__init__(message, details=details)


class GenerationFailed(RelayError):
    http_status = 500

    def __init__(self, details, message="Failed to generate response"):
        super().__init__(message, details=details)
        self.details = details
