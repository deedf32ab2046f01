"""
Anthropic Messages API: request translation and response decoding.
"""
import json
from typing import Any, Dict, Iterable, List, Optional

from ..config import ClientOptions, Endpoint
from ..errors import ProviderResponseError, TranslationError
from ..models import ProviderModel
from ..types import JSON, Message, Role, Tool, ToolCall, TurnOutcome, Usage, WireRequest
from ..utils import extract_count, extract_optional, extract_path, extract_text, normalize_text

PATH = "/v1/messages"
API_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096
TEXT_PATH = "content[0].text"
STOP_EVENTS = frozenset({"message_stop"})


def _tool_input(call: ToolCall) -> JSON:
    if not call.arguments.strip():
        return {}
    try:
        return json.loads(call.arguments)
    except json.JSONDecodeError as e:
        raise TranslationError(f"tool call {call.id} has invalid JSON arguments: {e}") from e


def _assistant_content(msg: Message) -> List[Dict[str, Any]]:
    content: List[Dict[str, Any]] = []
    if msg.text:
        content.append({"type": "text", "text": msg.text})
    for call in msg.tool_calls:
        content.append({
            "type": "tool_use",
            "id": call.id,
            "name": call.name,
            "input": _tool_input(call),
        })
    return content


def format_messages(history: List[Message]) -> List[Dict[str, Any]]:
    """
    Convert the history to Messages API turns.

    SYSTEM messages are skipped (see ``format_system``). Adjacent tool results
    are merged into a single user turn, in order.
    """
    messages: List[Dict[str, Any]] = []
    pending_results: List[Dict[str, Any]] = []

    def flush_results() -> None:
        if pending_results:
            messages.append({"role": "user", "content": list(pending_results)})
            pending_results.clear()

    for msg in history:
        if msg.role is Role.TOOL_RESULT:
            pending_results.append({
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.text,
            })
            continue

        flush_results()
        if msg.role is Role.SYSTEM:
            continue
        if msg.role in (Role.ASSISTANT, Role.TOOL_CALL):
            messages.append({"role": "assistant", "content": _assistant_content(msg)})
        else:
            messages.append({"role": "user", "content": msg.text})

    flush_results()
    return messages


def format_system(system_prompt: str, history: List[Message]) -> str:
    parts = [system_prompt] if system_prompt else []
    parts.extend(msg.text for msg in history if msg.role is Role.SYSTEM)
    return "\n\n".join(parts)


def convert_tools(tools: Iterable[Tool]) -> List[Dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameters,
        }
        for tool in tools
    ]


def build_body(
    model: ProviderModel,
    system_prompt: str,
    history: List[Message],
    tools: Optional[List[Tool]],
    stream: bool,
    options: ClientOptions,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "model": model.to_wire_string(),
        "messages": format_messages(history),
        "stream": stream,
        "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
        "system": format_system(system_prompt, history),
    }
    if tools:
        body["tools"] = convert_tools(tools)
    return body


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
    return WireRequest(
        provider=model.provider.value,
        method="POST",
        url=f"{endpoint.origin}{PATH}",
        headers={
            "x-api-key": api_key,
            "anthropic-version": API_VERSION,
            "Content-Type": "application/json",
        },
        body=build_body(model, system_prompt, history, tools, stream, options),
        stream=stream,
    )


def read_json_response(body: JSON) -> str:
    return normalize_text(extract_text(body, TEXT_PATH))


def extract_usage(body: JSON) -> Usage:
    return Usage(
        input_tokens=extract_count(body, "usage.input_tokens"),
        output_tokens=extract_count(body, "usage.output_tokens"),
    )


def inspect_turn(body: JSON) -> TurnOutcome:
    """
    Decide whether a tool-enabled turn is finished.

    ``stop_reason == "tool_use"`` means the model wants tools; anything else
    is a final answer read from ``content[0].text``.
    """
    usage = extract_usage(body)
    if extract_optional(body, "stop_reason") != "tool_use":
        return TurnOutcome(finished=True, text=read_json_response(body), usage=usage)

    blocks = extract_path(body, "content")
    if not isinstance(blocks, list):
        blocks = []

    texts = []
    calls = []
    for i, block in enumerate(blocks):
        kind = extract_optional(block, "type")
        if kind == "text":
            texts.append(extract_text(body, f"content[{i}].text"))
        elif kind == "tool_use":
            calls.append(ToolCall(
                id=extract_text(body, f"content[{i}].id"),
                name=extract_text(body, f"content[{i}].name"),
                arguments=json.dumps(extract_optional(block, "input", {})),
            ))

    return TurnOutcome(
        finished=False,
        text=normalize_text("".join(texts)),
        tool_calls=tuple(calls),
        usage=usage,
    )


def stream_delta(event: JSON) -> Optional[str]:
    """
    Extract text from a ``content_block_delta`` event.

    Raises:
        ProviderResponseError: On an ``error`` event.
    """
    kind = extract_optional(event, "type")
    if kind == "error":
        message = extract_optional(event, "error.message", "unknown error")
        raise ProviderResponseError(f"anthropic stream error: {message}", body=json.dumps(event))
    if kind != "content_block_delta":
        return None
    text = extract_optional(event, "delta.text")
    return text if isinstance(text, str) else None
