import re
from typing import Any, Dict, List, Optional, Sequence

from .errors import MissingFieldError
from .models import ProviderModel
from .types import JSON, Message, Role, Tool, ToolCall, ToolFunction

# =============================================================================
# Text Normalization
# =============================================================================

_ESCAPES = (
    ("\\n", "\n"),
    ("\\t", "\t"),
    ('\\"', '"'),
    ("\\'", "'"),
    ("\\\\", "\\"),
)


def unescape(text: str) -> str:
    """
    Replace literal escape sequences left in model output.

    Replacements are applied in a fixed order: ``\\n``, ``\\t``, ``\\"``,
    ``\\'`` and finally ``\\\\``.
    """
    for escaped, plain in _ESCAPES:
        text = text.replace(escaped, plain)
    return text


def normalize_text(text: str) -> str:
    """
    Unescape model output and strip one pair of wrapping double quotes.

    Args:
        text (str): Raw text from a response body or stream delta.

    Returns:
        str: The cleaned text.
    """
    text = unescape(text)
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1]
    return text


# =============================================================================
# Response Path Extraction
# =============================================================================

_SEGMENT = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def _parse_path(path: str) -> List[Any]:
    steps: List[Any] = []
    for key, index in _SEGMENT.findall(path):
        steps.append(int(index) if index else key)
    return steps


def extract_path(body: JSON, path: str) -> JSON:
    """
    Walk a decoded JSON body along a dotted path such as
    ``choices[0].message.content``.

    Raises:
        MissingFieldError: If any step is absent or has the wrong container type.
    """
    node = body
    for step in _parse_path(path):
        if isinstance(step, int):
            if not isinstance(node, list) or step >= len(node):
                raise MissingFieldError(path)
        elif not isinstance(node, dict) or step not in node:
            raise MissingFieldError(path)
        node = node[step]
    return node


def extract_text(body: JSON, path: str) -> str:
    """Like ``extract_path`` but the leaf must be a string."""
    value = extract_path(body, path)
    if not isinstance(value, str):
        raise MissingFieldError(path)
    return value


def extract_optional(body: JSON, path: str, default: Any = None) -> Any:
    try:
        return extract_path(body, path)
    except MissingFieldError:
        return default


def extract_count(body: JSON, path: str) -> int:
    """Read a token count, falling back to zero."""
    value = extract_optional(body, path, 0)
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


# =============================================================================
# Message Helpers
# =============================================================================

def create_message(
    text: str,
    role: Role = Role.USER,
    provider_model: Optional[ProviderModel] = None,
) -> Message:
    """
    Create a plain text message.

    Args:
        text (str): Message text.
        role (Role): Defaults to ``Role.USER``.
        provider_model (ProviderModel, optional): Model the message is bound to.

    Returns:
        Message: The new message.
    """
    return Message(role=role, text=text, provider_model=provider_model)


def create_assistant_message_with_tool_calls(
    tool_calls: Sequence[ToolCall],
    text: str = "",
    provider_model: Optional[ProviderModel] = None,
) -> Message:
    """
    Create an assistant turn that requests tool executions.

    Args:
        tool_calls (Sequence[ToolCall]): Calls requested by the model, in provider order.
        text (str): Text that accompanied the calls, may be empty.
        provider_model (ProviderModel, optional): Model that produced the turn.
    """
    return Message(
        role=Role.ASSISTANT,
        text=text,
        tool_calls=tuple(tool_calls),
        provider_model=provider_model,
    )


def create_tool_result(
    tool_call_id: str,
    content: str,
    tool_name: Optional[str] = None,
    provider_model: Optional[ProviderModel] = None,
) -> Message:
    """
    Create a tool result message answering a specific call.

    Args:
        tool_call_id (str): ID of the call this result answers.
        content (str): Serialized tool output.
        tool_name (str, optional): Name of the tool that ran.
    """
    return Message(
        role=Role.TOOL_RESULT,
        text=content,
        tool_call_id=tool_call_id,
        tool_name=tool_name,
        provider_model=provider_model,
    )


# =============================================================================
# Tool Helpers
# =============================================================================

def create_tool(
    name: str,
    description: str,
    parameters: Dict[str, Any],
    function: ToolFunction,
    required: Optional[List[str]] = None,
) -> Tool:
    """
    Create a tool definition.

    Args:
        name (str): Function name (must be unique within one call's tools).
        description (str): What the tool does.
        parameters (Dict[str, Any]): Property schemas, e.g.
            ``{"city": {"type": "string"}}``. A full JSON Schema object
            (with ``"type": "object"``) is also accepted as-is.
        function (ToolFunction): Called with the parsed arguments.
        required (List[str], optional): Required property names.

    Returns:
        Tool: The tool definition.

    Example:
        >>> weather_tool = create_tool(
        ...     name="get_weather",
        ...     description="Get current weather for a location",
        ...     parameters={"location": {"type": "string", "description": "City name"}},
        ...     function=lambda args: {"temp": 21},
        ...     required=["location"],
        ... )
    """
    if parameters.get("type") == "object":
        schema = dict(parameters)
    else:
        schema = {"type": "object", "properties": parameters}
    if required:
        schema["required"] = list(required)

    return Tool(name=name, description=description, parameters=schema, function=function)
