"""
Provider dispatch.

Every provider-specific operation goes through one ``match`` over the closed
``Provider`` enum, so adding a provider means adding one case per function.
"""
import asyncio
from typing import AsyncIterator, List, Optional

import httpx

from ..config import ClientOptions, Endpoint
from ..errors import TranslationError
from ..models import Provider, ProviderModel
from ..streaming import iter_gemini_deltas, iter_sse_deltas
from ..types import JSON, Message, Tool, TurnOutcome, Usage, WireRequest
from . import anthropic, gemini, openai

__all__ = [
    "build_request",
    "read_json_response",
    "extract_usage",
    "inspect_turn",
    "decode_stream",
]


def build_request(
    model: ProviderModel,
    endpoint: Endpoint,
    api_key: str,
    system_prompt: str,
    history: List[Message],
    tools: Optional[List[Tool]] = None,
    stream: bool = False,
    options: Optional[ClientOptions] = None,
) -> WireRequest:
    """
    Translate a conversation into the wire request for ``model``'s provider.

    Args:
        model (ProviderModel): Target model.
        endpoint (Endpoint): Destination origin.
        api_key (str): Credential placed in the provider's auth header or query.
        system_prompt (str): Instructions for this call.
        history (List[Message]): Conversation so far; not modified.
        tools (List[Tool], optional): Tool definitions to advertise.
        stream (bool): Whether to request a streamed response.
        options (ClientOptions, optional): Thinking level and token limits.

    Returns:
        WireRequest: The request, ready to send.

    Raises:
        TranslationError: If the conversation cannot be expressed for this provider.
    """
    options = options or ClientOptions()
    args = (model, endpoint, api_key, system_prompt, history, tools, stream, options)
    match model.provider:
        case Provider.OPENAI:
            return openai.build_request(*args)
        case Provider.ANTHROPIC:
            return anthropic.build_request(*args)
        case Provider.GEMINI:
            return gemini.build_request(*args)


def read_json_response(provider: Provider, body: JSON) -> str:
    """Extract and normalize the answer text from a buffered response body."""
    match provider:
        case Provider.OPENAI:
            return openai.read_json_response(body)
        case Provider.ANTHROPIC:
            return anthropic.read_json_response(body)
        case Provider.GEMINI:
            return gemini.read_json_response(body)


def extract_usage(provider: Provider, body: JSON) -> Usage:
    match provider:
        case Provider.OPENAI:
            return openai.extract_usage(body)
        case Provider.ANTHROPIC:
            return anthropic.extract_usage(body)
        case Provider.GEMINI:
            return gemini.extract_usage(body)


def inspect_turn(provider: Provider, body: JSON) -> TurnOutcome:
    """
    Classify a tool-enabled response as finished or requesting tools.

    Raises:
        TranslationError: For providers without tool calling.
    """
    match provider:
        case Provider.OPENAI:
            return openai.inspect_turn(body)
        case Provider.ANTHROPIC:
            return anthropic.inspect_turn(body)
        case Provider.GEMINI:
            raise TranslationError("tool calling is not supported for gemini")


def decode_stream(
    provider: Provider,
    response: httpx.Response,
    cancel: Optional[asyncio.Event] = None,
) -> AsyncIterator[str]:
    """Pick the delta decoder matching the provider's streaming format."""
    match provider:
        case Provider.OPENAI:
            return iter_sse_deltas(response.aiter_lines(), openai.stream_delta, openai.STOP_EVENTS, cancel)
        case Provider.ANTHROPIC:
            return iter_sse_deltas(response.aiter_lines(), anthropic.stream_delta, anthropic.STOP_EVENTS, cancel)
        case Provider.GEMINI:
            return iter_gemini_deltas(response.aiter_bytes(), cancel=cancel)
