"""
Provider and model registry.

A single table maps every known ``(provider, model)`` pair to the exact
string the provider expects on the wire. Both directions of the mapping are
derived from that table, so adding a model is a one-line change.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import UnknownModelError


class Provider(str, Enum):
    """The closed set of supported provider APIs."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"

    @classmethod
    def from_string(cls, name: str) -> "Provider":
        """
        Resolve a provider name such as ``"openai"``.

        Raises:
            UnknownModelError: If the provider is not supported.
        """
        try:
            return cls(name.lower())
        except ValueError:
            raise UnknownModelError(f"Unknown provider: {name}") from None


class ProviderModel(Enum):
    """
    Every model the library knows about.

    Each member's value is ``(provider, wire_string)``.
    """

    # OpenAI
    GPT_5 = (Provider.OPENAI, "gpt-5")
    GPT_4O = (Provider.OPENAI, "gpt-4o")
    GPT_4O_MINI = (Provider.OPENAI, "gpt-4o-mini")
    O1_PREVIEW = (Provider.OPENAI, "o1-preview")
    O1_MINI = (Provider.OPENAI, "o1-mini")

    # Anthropic
    CLAUDE_OPUS_4_1 = (Provider.ANTHROPIC, "claude-opus-4-1-20250805")
    CLAUDE_OPUS_4 = (Provider.ANTHROPIC, "claude-opus-4-20250514")
    CLAUDE_SONNET_4 = (Provider.ANTHROPIC, "claude-sonnet-4-20250514")
    CLAUDE_3_7_SONNET = (Provider.ANTHROPIC, "claude-3-7-sonnet-20250219")
    CLAUDE_3_5_SONNET_NEW = (Provider.ANTHROPIC, "claude-3-5-sonnet-20241022")
    CLAUDE_3_5_HAIKU = (Provider.ANTHROPIC, "claude-3-5-haiku-20241022")
    CLAUDE_3_5_SONNET_OLD = (Provider.ANTHROPIC, "claude-3-5-sonnet-20240620")
    CLAUDE_3_HAIKU = (Provider.ANTHROPIC, "claude-3-haiku-20240307")
    CLAUDE_3_OPUS = (Provider.ANTHROPIC, "claude-3-opus-20240229")

    # Gemini
    GEMINI_2_5_FLASH_PREVIEW = (Provider.GEMINI, "gemini-2.5-flash-preview-04-17")
    GEMINI_2_0_FLASH = (Provider.GEMINI, "gemini-2.0-flash")
    GEMINI_2_0_FLASH_LITE = (Provider.GEMINI, "gemini-2.0-flash-lite")
    GEMINI_EMBEDDING = (Provider.GEMINI, "gemini-embedding-exp")

    @property
    def provider(self) -> Provider:
        return self.value[0]

    @property
    def is_reasoning(self) -> bool:
        """Whether the model accepts a ``reasoning_effort`` setting."""
        return self in _REASONING_MODELS

    def to_wire_string(self) -> str:
        """Return the exact model string used in requests."""
        return self.value[1]

    def to_strings(self) -> Tuple[str, str]:
        """Return ``(provider, model)`` as plain strings, e.g. for logging."""
        return self.provider.value, self.value[1]

    @classmethod
    def from_wire_string(cls, model: str) -> "ProviderModel":
        """
        Look a model up by its wire string, across all providers.

        Raises:
            UnknownModelError: If the string is not in the table.
        """
        try:
            return _BY_WIRE_STRING[model]
        except KeyError:
            raise UnknownModelError(f"Unknown model: {model}") from None

    @classmethod
    def from_strings(cls, provider: str, model: str) -> "ProviderModel":
        """
        Look a model up by provider and wire string.

        Raises:
            UnknownModelError: If either string is unknown or the model
                belongs to a different provider.
        """
        expected = Provider.from_string(provider)
        resolved = cls.from_wire_string(model)
        if resolved.provider is not expected:
            raise UnknownModelError(
                f"Model {model} belongs to provider {resolved.provider.value}, not {expected.value}"
            )
        return resolved

    def __str__(self) -> str:
        return self.value[1]


_BY_WIRE_STRING: Dict[str, ProviderModel] = {m.value[1]: m for m in ProviderModel}

_REASONING_MODELS = frozenset({ProviderModel.GPT_5})


def available_models(provider: Optional[Provider] = None) -> List[str]:
    """
    List known model wire strings, in table order.

    Args:
        provider (Provider, optional): Restrict the listing to one provider.

    Returns:
        List[str]: Model identifiers.
    """
    return [
        m.to_wire_string()
        for m in ProviderModel
        if provider is None or m.provider is provider
    ]
