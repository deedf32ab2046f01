import pytest

from llmwire.errors import TranslationError, UnknownModelError
from llmwire.models import Provider, ProviderModel, available_models


class TestProviderModel:

    @pytest.mark.parametrize("model", list(ProviderModel))
    def test_wire_string_round_trip(self, model):
        wire = model.to_wire_string()
        assert ProviderModel.from_wire_string(wire) is model
        assert ProviderModel.from_wire_string(wire).to_wire_string() == wire

    def test_table_sizes(self):
        assert len(available_models(Provider.OPENAI)) == 5
        assert len(available_models(Provider.ANTHROPIC)) == 9
        assert len(available_models(Provider.GEMINI)) == 4
        assert len(available_models()) == 18

    def test_to_strings(self):
        assert ProviderModel.GPT_4O.to_strings() == ("openai", "gpt-4o")
        assert ProviderModel.CLAUDE_3_5_HAIKU.to_strings() == ("anthropic", "claude-3-5-haiku-20241022")

    def test_from_strings(self):
        model = ProviderModel.from_strings("gemini", "gemini-2.0-flash")
        assert model is ProviderModel.GEMINI_2_0_FLASH
        assert model.provider is Provider.GEMINI

    def test_from_strings_rejects_other_provider(self):
        with pytest.raises(UnknownModelError, match="belongs to provider openai"):
            ProviderModel.from_strings("anthropic", "gpt-4o")

    def test_unknown_model(self):
        with pytest.raises(UnknownModelError):
            ProviderModel.from_wire_string("gpt-2")
        # unknown models are translation errors
        with pytest.raises(TranslationError):
            ProviderModel.from_wire_string("")

    def test_unknown_provider(self):
        with pytest.raises(UnknownModelError):
            Provider.from_string("mistral")

    def test_only_gpt5_is_reasoning(self):
        assert [m for m in ProviderModel if m.is_reasoning] == [ProviderModel.GPT_5]

    def test_str_is_wire_string(self):
        assert str(ProviderModel.O1_MINI) == "o1-mini"
