"""
Transport configuration and credential lookup.

``ClientOptions`` describes where requests go and how they are shaped;
``resolve_api_key`` finds the credential for a provider. Neither performs
network I/O.
"""
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

import dotenv
import httpx

from .errors import ConfigurationError
from .models import Provider

API_KEY_ENV_VARS = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
}

DEFAULT_HOSTS = {
    Provider.OPENAI: "api.openai.com",
    Provider.ANTHROPIC: "api.anthropic.com",
    Provider.GEMINI: "generativelanguage.googleapis.com",
}

DEFAULT_TIMEOUT = 120.0

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


class Scheme(str, Enum):
    HTTP = "http"
    HTTPS = "https"


class ThinkingLevel(str, Enum):
    """Reasoning effort sent to reasoning-class models."""

    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_string(cls, level: str) -> "ThinkingLevel":
        try:
            return cls(level)
        except ValueError:
            raise ConfigurationError(f"Unknown thinking level: {level}") from None


@dataclass(frozen=True)
class Endpoint:
    """
    A concrete ``scheme://host:port`` destination.
    """
    scheme: Scheme
    host: str
    port: int

    @property
    def origin(self) -> str:
        """Origin string, omitting the port when it is the scheme default."""
        if self._default_port:
            return f"{self.scheme.value}://{self.host}"
        return f"{self.scheme.value}://{self.host}:{self.port}"

    @property
    def host_header(self) -> str:
        if self._default_port:
            return self.host
        return f"{self.host}:{self.port}"

    @property
    def _default_port(self) -> bool:
        return (self.scheme, self.port) in ((Scheme.HTTPS, 443), (Scheme.HTTP, 80))

    @classmethod
    def default_for(cls, provider: Provider) -> "Endpoint":
        return cls(scheme=Scheme.HTTPS, host=DEFAULT_HOSTS[provider], port=443)


@dataclass(frozen=True)
class ClientOptions:
    """
    Per-client transport and request-shaping options.

    Attributes:
        endpoint: Override destination. ``None`` means the provider's public API.
        disable_proxy: Ignore proxy environment variables when True.
        thinking_level: Reasoning effort for reasoning-class models.
            ``None`` falls back to ``ThinkingLevel.MINIMAL``.
        max_tokens: Completion limit for providers that require one.
            ``None`` uses the provider default.
        timeout: Per-request timeout in seconds.
    """
    endpoint: Optional[Endpoint] = None
    disable_proxy: bool = False
    thinking_level: Optional[ThinkingLevel] = None
    max_tokens: Optional[int] = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_base_url(cls, base_url: str) -> "ClientOptions":
        """
        Build options that point every request at ``base_url``.

        The proxy is disabled automatically for ``localhost`` and ``127.0.0.1``.

        Args:
            base_url (str): e.g. ``"http://127.0.0.1:8080"``.

        Raises:
            ConfigurationError: If the URL cannot be parsed, has no host, or
                uses a scheme other than http/https.
        """
        try:
            url = httpx.URL(base_url)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"invalid base url: {e}") from e

        try:
            scheme = Scheme(url.scheme)
        except ValueError:
            raise ConfigurationError(f"unsupported url scheme: {url.scheme}") from None

        if not url.host:
            raise ConfigurationError("base url missing host")

        port = url.port or (443 if scheme is Scheme.HTTPS else 80)

        return cls(
            endpoint=Endpoint(scheme=scheme, host=url.host, port=port),
            disable_proxy=url.host in _LOCAL_HOSTS,
        )

    def with_thinking_level(self, thinking_level: ThinkingLevel) -> "ClientOptions":
        return replace(self, thinking_level=thinking_level)

    def resolve_endpoint(self, provider: Provider) -> Endpoint:
        return self.endpoint or Endpoint.default_for(provider)


def resolve_api_key(provider: Provider, api_key: Optional[str] = None) -> str:
    """
    Find the API key for a provider.

    An explicit key wins; otherwise ``<PROVIDER>_API_KEY`` is read from the
    environment after loading a ``.env`` file if one is present (existing
    environment variables are not overridden).

    Args:
        provider (Provider): The provider to look up.
        api_key (str, optional): Explicit key.

    Returns:
        str: The API key.

    Raises:
        ConfigurationError: If no key can be found.
    """
    if api_key:
        return api_key

    env_var = API_KEY_ENV_VARS[provider]
    dotenv_path = dotenv.find_dotenv(usecwd=True)
    if dotenv_path:
        dotenv.load_dotenv(dotenv_path)
    value = os.environ.get(env_var)
    if not value:
        raise ConfigurationError(f"{env_var} environment variable not set")
    return value
