import asyncio

import pytest

from llmwire.errors import (
    ProtocolError,
    RequestCancelled,
    ToolArgumentsError,
    ToolExecutionError,
    ToolLoopLimitError,
    ToolNotFoundError,
    TranslationError,
)
from llmwire.tool_loop import LoopState, ToolInvocationLoop
from llmwire.types import Message, Role, ToolRegistry
from llmwire.utils import create_tool

OPENAI_PATH = "/v1/chat/completions"
ANTHROPIC_PATH = "/v1/messages"


def _openai_tool_call(name="get_weather", arguments='{"city": "Paris"}', call_id="call_1"):
    return {
        "choices": [{"message": {
            "role": "assistant",
            "content": None,
            "tool_calls": [{"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}],
        }}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5},
    }


def _openai_answer(text):
    return {
        "choices": [{"message": {"role": "assistant", "content": text}}],
        "usage": {"prompt_tokens": 30, "completion_tokens": 7},
    }


def _weather_tool(calls=None):
    def get_weather(args):
        if calls is not None:
            calls.append(args)
        return {"temp": 21, "city": args["city"]}

    return create_tool(
        name="get_weather",
        description="Get current weather for a city",
        parameters={"city": {"type": "string"}},
        function=get_weather,
        required=["city"],
    )


class TestOpenAIToolLoop:

    @pytest.mark.asyncio
    async def test_single_tool_round(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_tool_call())
        mock_server.add_json(OPENAI_PATH, _openai_answer("It is 21 degrees in Paris"))
        client = make_client("gpt-4o")
        observer = asyncio.Queue()
        calls = []
        history = [client.new_message("Weather in Paris?")]

        result = await client.prompt_with_tools_with_status(
            observer, "You are helpful", history, [_weather_tool(calls)]
        )

        assert [m.role for m in result] == [Role.USER, Role.ASSISTANT, Role.TOOL_RESULT, Role.ASSISTANT]
        assert result[1].tool_calls[0].name == "get_weather"
        assert result[1].input_tokens == 10
        assert result[2].tool_call_id == "call_1"
        assert result[2].text == '{"temp": 21, "city": "Paris"}'
        assert result[3].text == "It is 21 degrees in Paris"
        assert result[3].output_tokens == 7
        assert calls == [{"city": "Paris"}]

        assert observer.qsize() == 1
        assert observer.get_nowait() == "calling tool get_weather..."

        # caller's history untouched
        assert len(history) == 1

        second = mock_server.bodies_for(OPENAI_PATH)[1]
        assert second["messages"][2]["tool_calls"][0]["id"] == "call_1"
        assert second["messages"][3] == {
            "role": "tool",
            "content": '{"temp": 21, "city": "Paris"}',
            "tool_call_id": "call_1",
        }
        assert second["tools"][0]["function"]["name"] == "get_weather"

    @pytest.mark.asyncio
    async def test_immediate_answer(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_answer("No tools needed"))
        client = make_client("gpt-4o")
        result = await client.prompt_with_tools("sys", [client.new_message("hi")], [_weather_tool()])
        assert [m.role for m in result] == [Role.USER, Role.ASSISTANT]
        assert result[-1].text == "No tools needed"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_tool_call(name="launch_rocket"))
        client = make_client("gpt-4o")
        with pytest.raises(ToolNotFoundError, match="launch_rocket"):
            await client.prompt_with_tools("sys", [client.new_message("hi")], [_weather_tool()])

    @pytest.mark.asyncio
    async def test_bad_arguments(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_tool_call(arguments="{city:"))
        client = make_client("gpt-4o")
        with pytest.raises(ToolArgumentsError):
            await client.prompt_with_tools("sys", [client.new_message("hi")], [_weather_tool()])

    @pytest.mark.asyncio
    async def test_failing_tool(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_tool_call())

        def broken(args):
            raise RuntimeError("service down")

        tool = create_tool("get_weather", "Get weather", {"city": {"type": "string"}}, broken)
        client = make_client("gpt-4o")
        with pytest.raises(ToolExecutionError, match="service down") as exc_info:
            await client.prompt_with_tools("sys", [client.new_message("hi")], [tool])
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert len(mock_server.requests) == 1

    @pytest.mark.asyncio
    async def test_neither_content_nor_tool_calls(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, {"choices": [{"message": {"content": None}}]})
        client = make_client("gpt-4o")
        with pytest.raises(ProtocolError):
            await client.prompt_with_tools("sys", [client.new_message("hi")], [_weather_tool()])

    @pytest.mark.asyncio
    async def test_iteration_limit(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_tool_call())
        client = make_client("gpt-4o")
        with pytest.raises(ToolLoopLimitError):
            await client.prompt_with_tools(
                "sys", [client.new_message("hi")], [_weather_tool()], max_iterations=2
            )
        assert len(mock_server.requests) == 2

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, make_client, mock_server):
        client = make_client("gpt-4o")
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(RequestCancelled):
            await ToolInvocationLoop(client).run("sys", [client.new_message("hi")], [_weather_tool()], cancel=cancel)
        assert mock_server.requests == []

    @pytest.mark.asyncio
    async def test_empty_tool_calls_requests_again(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, {"choices": [{"message": {"content": None, "tool_calls": []}}]})
        mock_server.add_json(OPENAI_PATH, _openai_answer("done"))
        client = make_client("gpt-4o")
        calls = []

        result = await client.prompt_with_tools("sys", [client.new_message("hi")], [_weather_tool(calls)])

        assert [m.role for m in result] == [Role.USER, Role.ASSISTANT, Role.ASSISTANT]
        assert result[1].tool_calls == ()
        assert result[2].text == "done"
        assert calls == []
        assert len(mock_server.requests) == 2
        assert mock_server.bodies_for(OPENAI_PATH)[1]["messages"][2] == {"role": "assistant", "content": ""}

    @pytest.mark.asyncio
    async def test_prompt_with_tools_cancelled(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_answer("never"))
        client = make_client("gpt-4o")
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(RequestCancelled):
            await client.prompt_with_tools("sys", [client.new_message("hi")], [_weather_tool()], cancel=cancel)
        with pytest.raises(RequestCancelled):
            await client.prompt_with_tools_with_status(
                asyncio.Queue(), "sys", [client.new_message("hi")], [_weather_tool()], cancel=cancel
            )
        assert mock_server.requests == []

    @pytest.mark.asyncio
    async def test_full_observer_drops_status(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_tool_call())
        mock_server.add_json(OPENAI_PATH, _openai_answer("done"))
        client = make_client("gpt-4o")
        observer = asyncio.Queue(maxsize=1)
        observer.put_nowait("earlier")

        result = await client.prompt_with_tools_with_status(
            observer, "sys", [client.new_message("hi")], [_weather_tool()]
        )

        assert result[-1].text == "done"
        assert observer.get_nowait() == "earlier"
        assert observer.empty()

    @pytest.mark.asyncio
    async def test_loop_state(self, make_client, mock_server):
        mock_server.add_json(OPENAI_PATH, _openai_answer("done"))
        client = make_client("gpt-4o")
        loop = ToolInvocationLoop(client)
        assert loop.state is LoopState.AWAITING_MODEL
        await loop.run("sys", [client.new_message("hi")], ToolRegistry([_weather_tool()]))
        assert loop.state is LoopState.DONE


class TestAnthropicToolLoop:

    @pytest.mark.asyncio
    async def test_async_tool(self, make_client, mock_server):
        mock_server.add_json(ANTHROPIC_PATH, {
            "stop_reason": "tool_use",
            "content": [
                {"type": "text", "text": "Let me add those"},
                {"type": "tool_use", "id": "toolu_1", "name": "add", "input": {"a": 1, "b": 2}},
            ],
            "usage": {"input_tokens": 15, "output_tokens": 6},
        })
        mock_server.add_json(ANTHROPIC_PATH, {
            "stop_reason": "end_turn",
            "content": [{"type": "text", "text": "1 + 2 = 3"}],
        })

        async def add(args):
            await asyncio.sleep(0)
            return args["a"] + args["b"]

        tool = create_tool("add", "Add two integers", {"a": {"type": "integer"}, "b": {"type": "integer"}}, add)
        client = make_client("claude-sonnet-4-20250514")
        result = await client.prompt_with_tools("Do math", [client.new_message("1+2?")], [tool])

        assert result[1].text == "Let me add those"
        assert result[2].text == "3"
        assert result[3].text == "1 + 2 = 3"

        second = mock_server.bodies_for(ANTHROPIC_PATH)[1]
        assert second["system"] == "Do math"
        assert second["messages"][1] == {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Let me add those"},
                {"type": "tool_use", "id": "toolu_1", "name": "add", "input": {"a": 1, "b": 2}},
            ],
        }
        assert second["messages"][2] == {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "toolu_1", "content": "3"}],
        }


class TestGeminiToolLoop:

    @pytest.mark.asyncio
    async def test_not_supported(self, make_client, mock_server):
        client = make_client("gemini-2.0-flash")
        with pytest.raises(TranslationError):
            await client.prompt_with_tools("sys", [Message(role=Role.USER, text="hi")], [_weather_tool()])
        assert mock_server.requests == []
