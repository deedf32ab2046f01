import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Literal, Optional, Tuple, TypedDict, Union

from .errors import ToolArgumentsError, ToolNotFoundError, ToolRegistrationError
from .models import ProviderModel

# =============================================================================
# Type Definitions
# =============================================================================

JSON = Any

# Tool functions take the parsed arguments and return any JSON-serializable value
ToolFunction = Callable[[JSON], Union[JSON, Awaitable[JSON]]]


class Role(str, Enum):
    """
    Role of a conversation turn.

    - SYSTEM: Instructions
    - USER: User message
    - ASSISTANT: Model response (may carry tool calls)
    - TOOL_CALL: Model turn that only requests tools
    - TOOL_RESULT: Output of a tool execution
    """
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


class FunctionParameters(TypedDict, total=False):
    """
    JSON Schema for function parameters.
    """
    type: Literal["object"]
    properties: Dict[str, Any]
    required: List[str]


# =============================================================================
# Tool Calling Types
# =============================================================================

@dataclass(frozen=True)
class ToolCall:
    """
    A tool invocation requested by the model.

    Attributes:
        id: Provider-issued identifier, unique within one model turn.
        name: Name of the requested tool.
        arguments: Raw JSON-encoded argument string.
    """
    id: str
    name: str
    arguments: str = "{}"

    def parse_arguments(self) -> JSON:
        """
        Parse the argument string.

        An empty string is treated as an empty object.

        Raises:
            ToolArgumentsError: If the arguments are not valid JSON.
        """
        if not self.arguments.strip():
            return {}
        try:
            return json.loads(self.arguments)
        except json.JSONDecodeError as e:
            raise ToolArgumentsError(
                f"invalid arguments for tool {self.name}: {e}"
            ) from e


@dataclass(frozen=True)
class Tool:
    """
    A callable capability exposed to the model.

    Attributes:
        name: Unique name within one call's tool set.
        description: What the tool does, shown to the model.
        parameters: JSON Schema describing the arguments object.
        function: Invoked with the parsed arguments; may be sync or async.
    """
    name: str
    description: str
    parameters: Dict[str, Any]
    function: ToolFunction = field(compare=False, repr=False)


class ToolRegistry:
    """
    Name-keyed collection of tools.

    Copying a registry copies the mapping; the tool functions themselves are
    shared.
    """

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or ():
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """
        Add a tool.

        Raises:
            ToolRegistrationError: If a tool with the same name exists.
        """
        if tool.name in self._tools:
            raise ToolRegistrationError(f"Tool '{tool.name}' is already registered.")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        """
        Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(f"tool {name} not found") from None

    def copy(self) -> "ToolRegistry":
        clone = ToolRegistry()
        clone._tools = copy.copy(self._tools)
        return clone

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


# =============================================================================
# Message Type (depends on ToolCall)
# =============================================================================

@dataclass(frozen=True)
class Message:
    """
    One conversation turn in provider-agnostic form.

    Messages are immutable; conversations grow by copying and appending.

    Attributes:
        role: Who produced the turn.
        text: Text content (may be empty for pure tool-call turns).
        tool_calls: Tool invocations requested by an assistant turn.
        tool_call_id: For tool results, the id of the call being answered.
        tool_name: For tool results, the name of the tool (informational).
        provider_model: Model that produced or will consume this message.
        input_tokens: Prompt tokens reported by the provider (advisory).
        output_tokens: Completion tokens reported by the provider (advisory).
    """
    role: Role
    text: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None
    provider_model: Optional[ProviderModel] = None
    input_tokens: int = 0
    output_tokens: int = 0

    def __post_init__(self) -> None:
        if self.role is Role.TOOL_RESULT and not self.tool_call_id:
            raise ValueError("A tool result message requires a tool_call_id")
        if not isinstance(self.tool_calls, tuple):
            object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass(frozen=True)
class Usage:
    """Token counts reported by a provider; zero when absent."""
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class TurnOutcome:
    """
    The decoded result of one non-streaming model turn.

    Attributes:
        finished: True when the model produced a final answer.
        text: Normalized text (final answer or text accompanying tool calls).
        tool_calls: Requested tool calls when not finished.
        usage: Token usage for the turn.
    """
    finished: bool
    text: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    usage: Usage = field(default_factory=Usage)


# =============================================================================
# Wire Request
# =============================================================================

@dataclass(frozen=True)
class WireRequest:
    """
    A fully translated outbound request, built fresh for every call.

    The credential lives in ``headers`` (or in the Gemini ``url`` query), so
    ``repr`` shows neither.

    Attributes:
        provider: Target provider name.
        method: HTTP method.
        url: Absolute URL.
        headers: Request headers, including authentication.
        body: JSON body.
        stream: Whether the response is consumed incrementally.
    """
    provider: str
    method: str
    url: str
    headers: Dict[str, str] = field(repr=False)
    body: Dict[str, Any] = field(repr=False)
    stream: bool = False

    def content(self) -> bytes:
        """Serialized body; identical inputs give identical bytes."""
        return json.dumps(self.body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    @property
    def redacted_url(self) -> str:
        return self.url.split("?", 1)[0]

    def __repr__(self) -> str:
        return (
            f"WireRequest(provider={self.provider!r}, method={self.method!r}, "
            f"url={self.redacted_url!r}, stream={self.stream!r})"
        )
