"""
Model -> tool -> model orchestration.

``ToolInvocationLoop`` keeps asking the model until it produces a final
answer, executing every requested tool in between and feeding the results
back. It works on a copy of the caller's history and returns the extended
copy; on any failure nothing is returned.
"""
import asyncio
import inspect
import json
from contextlib import suppress
from dataclasses import replace
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

from . import providers
from .errors import ToolExecutionError, ToolLoopLimitError, TranslationError
from .logger import get_logger
from .models import Provider
from .streaming import check_cancelled
from .types import JSON, Message, Role, Tool, ToolCall, ToolRegistry
from .utils import create_assistant_message_with_tool_calls, create_tool_result

if TYPE_CHECKING:
    from .client import ProviderClient

logger = get_logger(__name__)


class LoopState(Enum):
    AWAITING_MODEL = "awaiting_model"
    DONE = "done"


def as_registry(tools: Union[ToolRegistry, Iterable[Tool]]) -> ToolRegistry:
    if isinstance(tools, ToolRegistry):
        return tools
    return ToolRegistry(tools)


def notify(observer: Optional["asyncio.Queue[str]"], status: str) -> None:
    """Best-effort status message; dropped when the queue is full."""
    if observer is None:
        return
    with suppress(asyncio.QueueFull):
        observer.put_nowait(status)


class ToolInvocationLoop:
    """
    Drive a tool-enabled conversation to a final answer.

    Args:
        client (ProviderClient): Client whose model and transport are used.
        max_iterations (int, optional): Maximum number of model requests.
            ``None`` means unbounded.
    """

    def __init__(self, client: "ProviderClient", max_iterations: Optional[int] = None):
        self.client = client
        self.max_iterations = max_iterations
        self.state = LoopState.AWAITING_MODEL

    async def run(
        self,
        system_prompt: str,
        history: List[Message],
        tools: Union[ToolRegistry, Iterable[Tool]],
        observer: Optional["asyncio.Queue[str]"] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> List[Message]:
        """
        Run the loop.

        Args:
            system_prompt (str): Instructions sent with every request.
            history (List[Message]): Conversation so far; not modified.
            tools: Tools the model may call, as a registry or an iterable.
            observer (asyncio.Queue, optional): Receives ``"calling tool <name>..."``
                before each execution.
            cancel (asyncio.Event, optional): Stops the loop with ``RequestCancelled``.

        Returns:
            List[Message]: The history extended with the assistant turns, tool
            results and the final assistant answer.

        Raises:
            TranslationError: For a provider without tool calling.
            ToolError: For unknown tools, bad arguments or failing tools.
            ProtocolError: For unexpected response shapes.
        """
        provider = self.client.model.provider
        if provider is Provider.GEMINI:
            raise TranslationError("tool calling is not supported for gemini")

        registry = as_registry(tools)
        messages = list(history)
        iterations = 0
        self.state = LoopState.AWAITING_MODEL

        while self.state is LoopState.AWAITING_MODEL:
            check_cancelled(cancel)
            if self.max_iterations is not None and iterations >= self.max_iterations:
                raise ToolLoopLimitError(
                    f"tool loop exceeded {self.max_iterations} model requests"
                )
            iterations += 1

            request = self.client.build_request(system_prompt, messages, tools=list(registry))
            body = await self.client.transport.send_json(request)
            outcome = providers.inspect_turn(provider, body)

            if outcome.finished:
                messages.append(Message(
                    role=Role.ASSISTANT,
                    text=outcome.text,
                    provider_model=self.client.model,
                    input_tokens=outcome.usage.input_tokens,
                    output_tokens=outcome.usage.output_tokens,
                ))
                self.state = LoopState.DONE
                continue

            assistant = create_assistant_message_with_tool_calls(
                outcome.tool_calls, outcome.text, self.client.model
            )
            messages.append(replace(
                assistant,
                input_tokens=outcome.usage.input_tokens,
                output_tokens=outcome.usage.output_tokens,
            ))

            for call in outcome.tool_calls:
                check_cancelled(cancel)
                notify(observer, f"calling tool {call.name}...")
                output = await self._execute(registry, call)
                messages.append(create_tool_result(
                    call.id, output, tool_name=call.name, provider_model=self.client.model
                ))

        return messages

    async def _execute(self, registry: ToolRegistry, call: ToolCall) -> str:
        tool = registry.get(call.name)
        arguments = call.parse_arguments()
        logger.debug("Executing tool %s (call %s)", call.name, call.id)

        try:
            if inspect.iscoroutinefunction(tool.function):
                output: JSON = await tool.function(arguments)
            else:
                output = await asyncio.to_thread(tool.function, arguments)
                if inspect.isawaitable(output):
                    output = await output
            return json.dumps(output)
        except Exception as e:
            logger.error("Tool %s failed: %s", call.name, e)
            raise ToolExecutionError(f"tool {call.name} failed: {e}") from e
