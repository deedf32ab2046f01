"""
OpenAI chat completions: request translation and response decoding.
"""
import json
from typing import Any, Dict, Iterable, List, Optional

from ..config import ClientOptions, Endpoint, ThinkingLevel
from ..errors import ProtocolError
from ..models import ProviderModel
from ..types import JSON, Message, Role, Tool, ToolCall, TurnOutcome, Usage, WireRequest
from ..utils import extract_count, extract_optional, extract_text, normalize_text

PATH = "/v1/chat/completions"
TEXT_PATH = "choices[0].message.content"
TOOL_CALLS_PATH = "choices[0].message.tool_calls"
STOP_EVENTS = frozenset()

# Placeholder name sent on assistant tool-call turns; never used for lookup.
TOOL_CALL_NAME = "tool_call"


def _convert_tool_calls(tool_calls: Iterable[ToolCall]) -> List[Dict[str, Any]]:
    return [
        {
            "id": call.id,
            "type": "function",
            "function": {"name": call.name, "arguments": call.arguments},
        }
        for call in tool_calls
    ]


def format_messages(system_prompt: str, history: List[Message]) -> List[Dict[str, Any]]:
    """Convert the history to chat messages, led by the system prompt."""
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]

    for msg in history:
        if msg.role is Role.TOOL_RESULT:
            messages.append({
                "role": "tool",
                "content": msg.text,
                "tool_call_id": msg.tool_call_id,
            })
        elif msg.role is Role.TOOL_CALL or msg.has_tool_calls:
            messages.append({
                "role": "assistant",
                "content": msg.text,
                "name": TOOL_CALL_NAME,
                "tool_calls": _convert_tool_calls(msg.tool_calls),
            })
        else:
            messages.append({"role": msg.role.value, "content": msg.text})

    return messages


def convert_tools(tools: Iterable[Tool]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
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
        "messages": format_messages(system_prompt, history),
        "stream": stream,
    }
    if tools:
        body["tools"] = convert_tools(tools)
    if model.is_reasoning:
        level = options.thinking_level or ThinkingLevel.MINIMAL
        body["reasoning_effort"] = level.value
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
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        body=build_body(model, system_prompt, history, tools, stream, options),
        stream=stream,
    )


def read_json_response(body: JSON) -> str:
    return normalize_text(extract_text(body, TEXT_PATH))


def extract_usage(body: JSON) -> Usage:
    return Usage(
        input_tokens=extract_count(body, "usage.prompt_tokens"),
        output_tokens=extract_count(body, "usage.completion_tokens"),
    )


def _parse_tool_calls(body: JSON, count: int) -> List[ToolCall]:
    calls = []
    for i in range(count):
        prefix = f"{TOOL_CALLS_PATH}[{i}]"
        arguments = extract_optional(body, f"{prefix}.function.arguments", "")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        calls.append(ToolCall(
            id=extract_text(body, f"{prefix}.id"),
            name=extract_text(body, f"{prefix}.function.name"),
            arguments=arguments,
        ))
    return calls


def inspect_turn(body: JSON) -> TurnOutcome:
    """
    Decide whether a tool-enabled turn is finished.

    A string ``content`` is a final answer; otherwise a ``tool_calls`` list
    (possibly empty) must be present.

    Raises:
        ProtocolError: If neither is present.
    """
    usage = extract_usage(body)
    content = extract_optional(body, TEXT_PATH)
    if isinstance(content, str):
        return TurnOutcome(finished=True, text=normalize_text(content), usage=usage)

    raw_calls = extract_optional(body, TOOL_CALLS_PATH)
    if isinstance(raw_calls, list):
        # an empty list still asks for another model turn
        return TurnOutcome(
            finished=False,
            tool_calls=tuple(_parse_tool_calls(body, len(raw_calls))),
            usage=usage,
        )

    raise ProtocolError(f"Missing '{TEXT_PATH}' and '{TOOL_CALLS_PATH}'")


def stream_delta(event: JSON) -> Optional[str]:
    delta = extract_optional(event, "choices[0].delta.content")
    return delta if isinstance(delta, str) else None
