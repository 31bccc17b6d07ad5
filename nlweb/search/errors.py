"""Search client error taxonomy.

ProtocolFrameError is recovered inside the stream merger. ApplicationFailure and
TransportError end the current search call. Cancellation is not an error.
"""


class NLWebError(Exception):
    """Base for all search client errors."""


class ProtocolFrameError(NLWebError):
    """A stream line without the `data: ` prefix or with an invalid JSON payload."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class ApplicationFailure(NLWebError):
    """The server reported `_meta.response_type == "Failure"`."""

    def __init__(self, code: str, message: str):
        super().__init__(f"Error ({code}): {message}")
        self.code = code
        self.message = message


class TransportError(NLWebError):
    """Non-OK HTTP status, or the connection failed before or while streaming."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
