"""
Demo of buffered, streamed and tool-calling prompts with rich output.

Reads API keys from the environment or a .env file. Pass a model wire
string as the first argument, e.g. ``python demo.py claude-3-5-haiku-20241022``.
"""
import asyncio
import sys

from llmwire import Provider, Role, create_tool, new_client, setup_logging
from llmwire.rich_llm_printer import RichPrinter, RichStreamPrinter


def get_weather(args):
    return {"city": args["city"], "temp_c": 21, "conditions": "sunny"}


async def main(model: str):
    setup_logging()
    printer = RichPrinter()

    async with new_client(model) as client:
        history = [client.new_message("Introduce yourself in one sentence using markdown syntax.")]
        reply = await client.prompt("You are a concise assistant.", history)
        printer.print_history(history + [reply])

        observer = asyncio.Queue()
        stream_printer = RichStreamPrinter(title="Assistant", border_style="cyan")
        history = [client.new_message("Write a haiku about HTTP streaming.")]
        await stream_printer.watch(
            observer,
            client.prompt_stream(history, "You are a poet.", observer),
            model=client.model,
        )

        if client.provider is not Provider.GEMINI:
            weather = create_tool(
                name="get_weather",
                description="Get current weather for a city",
                parameters={"city": {"type": "string", "description": "City name"}},
                function=get_weather,
                required=["city"],
            )
            status = asyncio.Queue()
            result = await client.prompt_with_tools_with_status(
                status,
                "Use tools when they help.",
                [client.new_message("What's the weather in Paris?", role=Role.USER)],
                [weather],
            )
            while not status.empty():
                print(status.get_nowait())
            printer.print_history(result)


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "gpt-4o-mini"))
