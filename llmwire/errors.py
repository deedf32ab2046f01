"""
Exception hierarchy for llmwire.

Every failure raised by the library derives from ``LLMWireError`` and falls
into one of the categories below. Nothing is retried internally; the first
error encountered is surfaced to the caller.
"""
from typing import Optional


class LLMWireError(Exception):
    """Base exception for all llmwire errors."""

    pass


# =============================================================================
# Configuration & Translation (raised before any network I/O)
# =============================================================================

class ConfigurationError(LLMWireError):
    """Raised for a missing API key, an invalid base URL or an unsupported scheme."""

    pass


class TranslationError(LLMWireError):
    """Raised when a conversation cannot be expressed in a provider's schema."""

    pass


class UnknownModelError(TranslationError):
    """Raised when a provider or model string is not in the model table."""

    pass


# =============================================================================
# Transport & Protocol
# =============================================================================

class TransportError(LLMWireError):
    """Raised when the connection, TLS handshake or a socket read/write fails."""

    pass


class ProtocolError(LLMWireError):
    """Raised when a provider response does not have the expected shape."""

    pass


class MissingFieldError(ProtocolError):
    """
    Raised when a response body lacks a field at a documented JSON path.

    Attributes:
        path (str): The path that could not be resolved, e.g.
            ``choices[0].message.content``.
    """

    def __init__(self, path: str):
        super().__init__(f"Missing '{path}'")
        self.path = path


class ProviderResponseError(ProtocolError):
    """
    Raised when a provider answers with an HTTP error status or an error event.

    Attributes:
        status_code (int, optional): HTTP status code, if the error came from a status line.
        body (str): Response body (or error event payload) as text.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class StreamDecodeError(ProtocolError):
    """Raised when a streaming payload is not valid JSON or not valid UTF-8."""

    pass


# =============================================================================
# Tools
# =============================================================================

class ToolError(LLMWireError):
    """Base exception for tool lookup, argument and execution failures."""

    pass


class ToolRegistrationError(ToolError):
    """Raised when a tool name is registered twice."""

    pass


class ToolNotFoundError(ToolError):
    """Raised when the model requests a tool that was not supplied."""

    pass


class ToolArgumentsError(ToolError):
    """Raised when a tool call's argument string is not valid JSON."""

    pass


class ToolExecutionError(ToolError):
    """Raised when a tool function raises."""

    pass


class ToolLoopLimitError(ToolError):
    """Raised when the tool loop exceeds its configured iteration limit."""

    pass


class RequestCancelled(LLMWireError):
    """Raised when a caller-supplied cancellation event is set mid-request."""

    pass
