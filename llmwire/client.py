import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Dict, Iterable, List, Optional, Union

import httpx

from . import providers
from .config import ClientOptions, Scheme, resolve_api_key
from .errors import ConfigurationError
from .models import Provider, ProviderModel, available_models
from .streaming import collect_deltas
from .tool_loop import ToolInvocationLoop
from .transport import HttpTransport
from .types import Message, Role, Tool, ToolRegistry, WireRequest
from .utils import create_message

Tools = Union[ToolRegistry, Iterable[Tool]]


class ProviderClient:
    """
    Client bound to one model and one transport configuration.

    Construction resolves the API key but performs no network I/O.

    Args:
        model (ProviderModel | str): The model, or its wire string.
        options (ClientOptions, optional): Endpoint, proxy and request shaping.
        api_key (str, optional): Explicit key. Defaults to ``<PROVIDER>_API_KEY``
            from the environment or a ``.env`` file.
        http_client (httpx.AsyncClient, optional): Shared client. When omitted
            one is created and closed by ``aclose``.

    Raises:
        UnknownModelError: If ``model`` is not a known wire string.
        ConfigurationError: If no API key is available.
    """

    def __init__(
        self,
        model: Union[ProviderModel, str],
        options: Optional[ClientOptions] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model if isinstance(model, ProviderModel) else ProviderModel.from_wire_string(model)
        self.options = options or ClientOptions()
        self.api_key = resolve_api_key(self.model.provider, api_key)
        self.endpoint = self.options.resolve_endpoint(self.model.provider)

        self.transport = HttpTransport(self.options, http_client)

    def __repr__(self) -> str:
        return f"ProviderClient(model={self.model.to_wire_string()!r}, endpoint={self.endpoint.origin!r})"

    @property
    def provider(self) -> Provider:
        return self.model.provider

    # ==========================================================================
    # Requests
    # ==========================================================================

    def build_request(
        self,
        system_prompt: str,
        history: List[Message],
        tools: Optional[List[Tool]] = None,
        stream: bool = False,
    ) -> WireRequest:
        """Translate a conversation into this client's wire request without sending it."""
        return providers.build_request(
            self.model,
            self.endpoint,
            self.api_key,
            system_prompt,
            history,
            tools=tools,
            stream=stream,
            options=self.options,
        )

    def new_message(self, text: str, role: Role = Role.USER) -> Message:
        return create_message(text, role=role, provider_model=self.model)

    async def prompt(self, system_prompt: str, history: List[Message]) -> Message:
        """
        Send a buffered request and return the assistant's reply.

        Args:
            system_prompt (str): Instructions for this call.
            history (List[Message]): Conversation so far.

        Returns:
            Message: Assistant message with normalized text and token usage.

        Raises:
            TranslationError: If the history cannot be expressed for the provider.
            TransportError: If the request fails.
            ProtocolError: If the response lacks the expected text.
        """
        request = self.build_request(system_prompt, history)
        body = await self.transport.send_json(request)
        text = providers.read_json_response(self.provider, body)
        usage = providers.extract_usage(self.provider, body)
        return Message(
            role=Role.ASSISTANT,
            text=text,
            provider_model=self.model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )

    async def astream(
        self,
        history: List[Message],
        system_prompt: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """
        Stream the reply as normalized text deltas.

        Raises:
            ConfigurationError: If the endpoint is not https (before connecting).
        """
        if self.endpoint.scheme is not Scheme.HTTPS:
            raise ConfigurationError(
                f"streaming requires an https endpoint, got {self.endpoint.origin}"
            )
        request = self.build_request(system_prompt, history, stream=True)
        async with self.transport.open_stream(request) as response:
            async with aclosing(providers.decode_stream(self.provider, response, cancel)) as deltas:
                async for delta in deltas:
                    yield delta

    async def prompt_stream(
        self,
        history: List[Message],
        system_prompt: str,
        observer: Optional["asyncio.Queue[str]"],
        cancel: Optional[asyncio.Event] = None,
    ) -> Message:
        """
        Stream the reply, pushing each delta onto ``observer``.

        Args:
            history (List[Message]): Conversation so far.
            system_prompt (str): Instructions for this call.
            observer (asyncio.Queue, optional): Receives every delta in order.
            cancel (asyncio.Event, optional): Aborts the stream with ``RequestCancelled``.

        Returns:
            Message: Assistant message holding the concatenated deltas.
        """
        async with aclosing(self.astream(history, system_prompt, cancel)) as deltas:
            text = await collect_deltas(deltas, observer)
        return Message(role=Role.ASSISTANT, text=text, provider_model=self.model)

    async def prompt_with_tools(
        self,
        system_prompt: str,
        history: List[Message],
        tools: Tools,
        max_iterations: Optional[int] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> List[Message]:
        """
        Run the tool loop until the model gives a final answer.

        Returns:
            List[Message]: ``history`` extended with every turn of the loop.
        """
        loop = ToolInvocationLoop(self, max_iterations=max_iterations)
        return await loop.run(system_prompt, history, tools, cancel=cancel)

    async def prompt_with_tools_with_status(
        self,
        observer: Optional["asyncio.Queue[str]"],
        system_prompt: str,
        history: List[Message],
        tools: Tools,
        max_iterations: Optional[int] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> List[Message]:
        """Like ``prompt_with_tools``, announcing each tool call on ``observer``."""
        loop = ToolInvocationLoop(self, max_iterations=max_iterations)
        return await loop.run(system_prompt, history, tools, observer=observer, cancel=cancel)

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def new_client(model: str) -> ProviderClient:
    """Create a client for ``model`` with default options."""
    return ProviderClient(ProviderModel.from_wire_string(model))


def new_client_with_options(model: str, options: ClientOptions) -> ProviderClient:
    """Create a client for ``model`` with custom transport options."""
    return ProviderClient(ProviderModel.from_wire_string(model), options=options)


class UnifiedChatClient:
    """
    One entry point for every supported provider.

    Keys are resolved per provider on first use; ``ProviderClient`` instances
    are cached by model and share one ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        options: Optional[ClientOptions] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            openai_api_key: Defaults to env var OPENAI_API_KEY.
            anthropic_api_key: Defaults to env var ANTHROPIC_API_KEY.
            gemini_api_key: Defaults to env var GEMINI_API_KEY.
            options: Shared by every client handed out.
            http_client: Shared transport. Created lazily when omitted.
        """
        self.api_keys: Dict[Provider, Optional[str]] = {
            Provider.OPENAI: openai_api_key,
            Provider.ANTHROPIC: anthropic_api_key,
            Provider.GEMINI: gemini_api_key,
        }
        self.options = options or ClientOptions()
        self._owns_http_client = http_client is None
        self._http_client = http_client
        self._clients: Dict[ProviderModel, ProviderClient] = {}

    def client_for(self, model: Union[ProviderModel, str]) -> ProviderClient:
        """
        Return the cached client for ``model``, creating it if needed.

        Raises:
            UnknownModelError: If the model is unknown.
            ConfigurationError: If the provider has no API key.
        """
        if not isinstance(model, ProviderModel):
            model = ProviderModel.from_wire_string(model)
        if model not in self._clients:
            if self._http_client is None:
                self._http_client = httpx.AsyncClient(
                    timeout=self.options.timeout,
                    trust_env=not self.options.disable_proxy,
                )
            self._clients[model] = ProviderClient(
                model,
                options=self.options,
                api_key=self.api_keys[model.provider],
                http_client=self._http_client,
            )
        return self._clients[model]

    def list_models(self, provider: Union[Provider, str]) -> List[str]:
        """
        List the models known for a provider.

        Args:
            provider: Provider enum or name, e.g. ``"anthropic"``.
        """
        if not isinstance(provider, Provider):
            provider = Provider.from_string(provider)
        return available_models(provider)

    async def prompt(self, model: str, system_prompt: str, history: List[Message]) -> Message:
        return await self.client_for(model).prompt(system_prompt, history)

    async def prompt_stream(
        self,
        model: str,
        history: List[Message],
        system_prompt: str,
        observer: Optional["asyncio.Queue[str]"],
        cancel: Optional[asyncio.Event] = None,
    ) -> Message:
        return await self.client_for(model).prompt_stream(history, system_prompt, observer, cancel)

    async def astream(
        self,
        model: str,
        history: List[Message],
        system_prompt: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        async for delta in self.client_for(model).astream(history, system_prompt, cancel):
            yield delta

    async def prompt_with_tools(
        self,
        model: str,
        system_prompt: str,
        history: List[Message],
        tools: Tools,
        observer: Optional["asyncio.Queue[str]"] = None,
        max_iterations: Optional[int] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> List[Message]:
        client = self.client_for(model)
        return await client.prompt_with_tools_with_status(
            observer, system_prompt, history, tools, max_iterations=max_iterations, cancel=cancel
        )

    async def aclose(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        self._clients.clear()

    async def __aenter__(self) -> "UnifiedChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
