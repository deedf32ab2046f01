"""
llmwire: one async client vocabulary for OpenAI, Anthropic and Gemini.
"""
from .client import ProviderClient, UnifiedChatClient, new_client, new_client_with_options
from .config import ClientOptions, Endpoint, Scheme, ThinkingLevel
from .errors import (
    ConfigurationError,
    LLMWireError,
    MissingFieldError,
    ProtocolError,
    ProviderResponseError,
    RequestCancelled,
    StreamDecodeError,
    ToolArgumentsError,
    ToolError,
    ToolExecutionError,
    ToolLoopLimitError,
    ToolNotFoundError,
    ToolRegistrationError,
    TransportError,
    TranslationError,
    UnknownModelError,
)
from .logger import get_logger, setup_logging
from .models import Provider, ProviderModel, available_models
from .streaming import collect_deltas, iter_gemini_deltas, iter_sse_deltas
from .tool_loop import LoopState, ToolInvocationLoop
from .types import Message, Role, Tool, ToolCall, ToolRegistry, Usage, WireRequest
from .utils import (
    create_assistant_message_with_tool_calls,
    create_message,
    create_tool,
    create_tool_result,
    normalize_text,
    unescape,
)

__version__ = "0.1.0"

__all__ = [
    "ProviderClient",
    "UnifiedChatClient",
    "new_client",
    "new_client_with_options",
    "ClientOptions",
    "Endpoint",
    "Scheme",
    "ThinkingLevel",
    "LLMWireError",
    "ConfigurationError",
    "TranslationError",
    "UnknownModelError",
    "TransportError",
    "ProtocolError",
    "MissingFieldError",
    "ProviderResponseError",
    "StreamDecodeError",
    "ToolError",
    "ToolRegistrationError",
    "ToolNotFoundError",
    "ToolArgumentsError",
    "ToolExecutionError",
    "ToolLoopLimitError",
    "RequestCancelled",
    "get_logger",
    "setup_logging",
    "Provider",
    "ProviderModel",
    "available_models",
    "collect_deltas",
    "iter_gemini_deltas",
    "iter_sse_deltas",
    "LoopState",
    "ToolInvocationLoop",
    "Message",
    "Role",
    "Tool",
    "ToolCall",
    "ToolRegistry",
    "Usage",
    "WireRequest",
    "create_assistant_message_with_tool_calls",
    "create_message",
    "create_tool",
    "create_tool_result",
    "normalize_text",
    "unescape",
]
