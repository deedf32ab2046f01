"""
Gemini generateContent: request translation and response decoding.

Tool calling is not wired for Gemini; tool definitions and tool turns are
rejected during translation.
"""
from typing import Any, Dict, List, Optional

import httpx

from ..config import ClientOptions, Endpoint
from ..errors import TranslationError
from ..models import ProviderModel
from ..types import JSON, Message, Role, Tool, Usage, WireRequest
from ..utils import extract_count, extract_text, normalize_text

TEXT_PATH = "candidates[0].content.parts[0].text"


def request_path(model: ProviderModel, stream: bool) -> str:
    action = "streamGenerateContent" if stream else "generateContent"
    return f"/v1beta/models/{model.to_wire_string()}:{action}"


def format_contents(system_prompt: str, history: List[Message]) -> Dict[str, Any]:
    """
    Build ``contents`` and ``system_instruction``.

    Leading SYSTEM messages are folded into the system instruction.

    Raises:
        TranslationError: For a SYSTEM message after the conversation started,
            or for any tool turn.
    """
    system_parts = [system_prompt] if system_prompt else []
    contents = []

    for msg in history:
        if msg.role is Role.SYSTEM:
            if contents:
                raise TranslationError("gemini does not accept system messages mid-conversation")
            system_parts.append(msg.text)
        elif msg.role in (Role.TOOL_CALL, Role.TOOL_RESULT) or msg.has_tool_calls:
            raise TranslationError("tool calling is not supported for gemini")
        elif msg.role is Role.USER:
            contents.append({"parts": [{"text": msg.text}], "role": "user"})
        else:
            contents.append({"parts": [{"text": msg.text}], "role": "model"})

    return {
        "contents": contents,
        "system_instruction": {"parts": [{"text": "\n\n".join(system_parts)}]},
    }


def build_body(
    model: ProviderModel,
    system_prompt: str,
    history: List[Message],
    tools: Optional[List[Tool]],
    stream: bool,
    options: ClientOptions,
) -> Dict[str, Any]:
    if tools:
        raise TranslationError("tool calling is not supported for gemini")
    return format_contents(system_prompt, history)


def build_request(
    model: ProviderModel,
    endpoint: Endpoint,
    api_key: str,
    system_prompt: str,
    history: List[Message],
    tools: Optional[List[Tool]],
    stream: bool,
    options: ClientOptions,
) -> WireRequest:
    url = httpx.URL(f"{endpoint.origin}{request_path(model, stream)}", params={"key": api_key})
    return WireRequest(
        provider=model.provider.value,
        method="POST",
        url=str(url),
        headers={"Content-Type": "application/json"},
        body=build_body(model, system_prompt, history, tools, stream, options),
        stream=stream,
    )


def read_json_response(body: JSON) -> str:
    return normalize_text(extract_text(body, TEXT_PATH))


def extract_usage(body: JSON) -> Usage:
    return Usage(
        input_tokens=extract_count(body, "usageMetadata.promptTokenCount"),
        output_tokens=extract_count(body, "usageMetadata.candidatesTokenCount"),
    )
