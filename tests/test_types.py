import pytest

from llmwire.errors import ToolArgumentsError, ToolNotFoundError, ToolRegistrationError
from llmwire.types import Message, Role, Tool, ToolCall, ToolRegistry, WireRequest


def _tool(name):
    return Tool(name=name, description=f"{name} tool", parameters={"type": "object"}, function=lambda args: None)


class TestToolCall:

    def test_parse_arguments(self):
        call = ToolCall(id="1", name="add", arguments='{"a": 1, "b": 2}')
        assert call.parse_arguments() == {"a": 1, "b": 2}

    def test_empty_arguments_are_empty_object(self):
        assert ToolCall(id="1", name="noop", arguments="").parse_arguments() == {}
        assert ToolCall(id="1", name="noop", arguments="  ").parse_arguments() == {}

    def test_invalid_arguments(self):
        with pytest.raises(ToolArgumentsError, match="add"):
            ToolCall(id="1", name="add", arguments="{not json").parse_arguments()


class TestToolRegistry:

    def test_register_and_get(self):
        registry = ToolRegistry([_tool("a"), _tool("b")])
        assert len(registry) == 2
        assert "a" in registry
        assert registry.get("b").name == "b"
        assert [t.name for t in registry] == ["a", "b"]

    def test_duplicate_name(self):
        registry = ToolRegistry([_tool("a")])
        with pytest.raises(ToolRegistrationError):
            registry.register(_tool("a"))

    def test_unknown_name(self):
        with pytest.raises(ToolNotFoundError, match="tool missing not found"):
            ToolRegistry().get("missing")

    def test_copy_shares_functions(self):
        original = ToolRegistry([_tool("a")])
        clone = original.copy()
        clone.register(_tool("b"))
        assert "b" not in original
        assert clone.get("a").function is original.get("a").function


class TestMessage:

    def test_tool_result_requires_call_id(self):
        with pytest.raises(ValueError):
            Message(role=Role.TOOL_RESULT, text="42")

    def test_tool_calls_coerced_to_tuple(self):
        msg = Message(role=Role.ASSISTANT, tool_calls=[ToolCall(id="1", name="a")])
        assert isinstance(msg.tool_calls, tuple)

    def test_messages_are_immutable(self):
        msg = Message(role=Role.USER, text="hi")
        with pytest.raises(AttributeError):
            msg.text = "changed"


class TestWireRequest:

    def _request(self):
        return WireRequest(
            provider="gemini",
            method="POST",
            url="https://generativelanguage.googleapis.com/v1beta/models/x:generateContent?key=secret",
            headers={"Authorization": "Bearer secret"},
            body={"b": 1, "a": "é"},
        )

    def test_repr_redacts_credentials(self):
        text = repr(self._request())
        assert "secret" not in text
        assert "generateContent" in text

    def test_content_is_deterministic(self):
        assert self._request().content() == self._request().content()
        assert self._request().content() == '{"b":1,"a":"é"}'.encode("utf-8")
