"""
Rich printers for displaying streamed deltas and conversation histories.
"""
import asyncio
import json
from contextlib import suppress
from typing import Any, AsyncIterable, Awaitable, List, Optional, TypeVar

from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from .models import ProviderModel
from .types import Message, Role

T = TypeVar("T")

console = Console()


def _default_console() -> Console:
    return console


_ROLE_STYLES = {
    Role.SYSTEM: "magenta",
    Role.USER: "cyan",
    Role.ASSISTANT: "green",
    Role.TOOL_CALL: "yellow",
    Role.TOOL_RESULT: "dim",
}


class RichStreamPrinter:
    """
    Live display of a stream of text deltas.

    Attributes:
        title: Title for the display panel
        code_theme: Theme for code blocks
        inline_code_theme: Theme for inline code
        refresh_rate: Refresh rate for Live display
        show_final_title: Whether to change title to "Final Response" at the end
        border_style: Border style while streaming
    """

    def __init__(
        self,
        title: str = "Streaming Response",
        code_theme: str = "coffee",
        inline_code_theme: str = "monokai",
        refresh_rate: int = 30,
        show_final_title: bool = True,
        border_style: str = "blue",
        console: Optional[Console] = None,
    ):
        self.title = title
        self.code_theme = code_theme
        self.inline_code_theme = inline_code_theme
        self.refresh_rate = refresh_rate
        self.show_final_title = show_final_title
        self.border_style = border_style
        self.console = console or _default_console()
        self._full_text = ""
        self._model: Optional[ProviderModel] = None

    async def print_stream(
        self,
        deltas: AsyncIterable[str],
        model: Optional[ProviderModel] = None,
    ) -> str:
        """
        Render deltas as they arrive.

        Args:
            deltas: Async iterable of text deltas, e.g. ``ProviderClient.astream()``.
            model: Shown in the panel title when given.

        Returns:
            The full assembled text.
        """
        self._reset(model)
        with Live(self._panel(False), refresh_per_second=self.refresh_rate, console=self.console) as live:
            async for delta in deltas:
                self._full_text += delta
                live.update(self._panel(False))
            live.update(self._panel(True))
        return self._full_text

    async def watch(
        self,
        observer: "asyncio.Queue[str]",
        task: Awaitable[T],
        model: Optional[ProviderModel] = None,
    ) -> T:
        """
        Render everything pushed onto ``observer`` until ``task`` completes.

        Meant for ``prompt_stream`` and ``prompt_with_tools_with_status``,
        which report through a queue.

        Returns:
            The task's result.
        """
        self._reset(model)
        task = asyncio.ensure_future(task)
        with Live(self._panel(False), refresh_per_second=self.refresh_rate, console=self.console) as live:
            while True:
                getter = asyncio.ensure_future(observer.get())
                done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
                if getter in done:
                    self._full_text += getter.result()
                    live.update(self._panel(False))
                    continue
                getter.cancel()
                with suppress(asyncio.CancelledError):
                    await getter
                break

            while not observer.empty():
                self._full_text += observer.get_nowait()
            live.update(self._panel(True))

        return task.result()

    def _reset(self, model: Optional[ProviderModel]) -> None:
        self._full_text = ""
        self._model = model

    def _panel(self, is_final: bool) -> Panel:
        return Panel(
            self._build_content(),
            title=self._build_title(is_final),
            border_style="green" if is_final else self.border_style,
            padding=(1, 2),
        )

    def _build_title(self, is_final: bool) -> str:
        if is_final and self.show_final_title:
            title_parts = ["[bold]Final Response[/bold]"]
        else:
            title_parts = [f"[bold]{self.title}[/bold]"]
        if self._model is not None:
            title_parts.append(f"[dim]({self._model.to_wire_string()})[/dim]")
        return " ".join(title_parts)

    def _build_content(self) -> Any:
        if not self._full_text.strip():
            return Text("(waiting for response...)", style="dim italic")
        return Markdown(
            self._full_text,
            code_theme=self.code_theme,
            inline_code_theme=self.inline_code_theme,
        )

    def get_full_text(self) -> str:
        return self._full_text


class RichPrinter:
    """
    Display messages and whole conversations.

    Attributes:
        show_usage: Whether to show token usage on assistant messages
        code_theme: Theme for code blocks
        inline_code_theme: Theme for inline code
    """

    def __init__(
        self,
        show_usage: bool = True,
        code_theme: str = "coffee",
        inline_code_theme: str = "monokai",
        console: Optional[Console] = None,
    ):
        self.show_usage = show_usage
        self.code_theme = code_theme
        self.inline_code_theme = inline_code_theme
        self.console = console or _default_console()

    def print_message(self, message: Message) -> Message:
        """Print one message as a panel and return it for chaining."""
        self.console.print(
            Panel(
                self._build_content(message),
                title=self._build_title(message),
                border_style=_ROLE_STYLES[message.role],
                padding=(1, 2),
            )
        )
        return message

    def print_history(self, history: List[Message]) -> List[Message]:
        for message in history:
            self.print_message(message)
        return history

    def _build_title(self, message: Message) -> str:
        title_parts = [f"[bold]{message.role.value}[/bold]"]
        if message.role is Role.TOOL_RESULT and message.tool_name:
            title_parts.append(f"[dim]{message.tool_name}[/dim]")
        if message.provider_model is not None and message.role is Role.ASSISTANT:
            title_parts.append(f"[dim]({message.provider_model.to_wire_string()})[/dim]")
        return " ".join(title_parts)

    def _build_content(self, message: Message) -> Any:
        if message.role is Role.TOOL_RESULT:
            return Syntax(message.text, "json", theme="lightbulb", background_color="default")

        parts: List[Any] = []
        if message.text.strip():
            parts.append(Markdown(
                message.text,
                code_theme=self.code_theme,
                inline_code_theme=self.inline_code_theme,
            ))

        for call in message.tool_calls:
            parts.append(Panel(
                Syntax(call.arguments or "{}", "json", theme="lightbulb", background_color="default"),
                title=f"[bold]{call.name}[/bold] [dim]{call.id}[/dim]",
                border_style="yellow",
            ))

        if self.show_usage and (message.input_tokens or message.output_tokens):
            usage = {"input_tokens": message.input_tokens, "output_tokens": message.output_tokens}
            parts.append(Text(json.dumps(usage), style="dim"))

        if not parts:
            return Text("(empty message)", style="dim italic")
        return Group(*parts)
