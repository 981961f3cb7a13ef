"""Unit tests for the centralized chat model factory."""

import pytest
from langchain_openai import AzureChatOpenAI, ChatOpenAI

from homefinder.config import OrchestratorConfig, Settings
from homefinder.services.llm import get_chat_model


class TestGetChatModel:
    def test_returns_openai_model_by_default(self, settings: Settings):
        model = get_chat_model(settings)
        assert isinstance(model, ChatOpenAI)
        assert not isinstance(model, AzureChatOpenAI)

    def test_uses_orchestrator_config(self):
        settings = Settings(
            openai_api_key="sk-custom-key",
            orchestrator=OrchestratorConfig(model="gpt-4o-mini", temperature=0.2),
        )
        model = get_chat_model(settings)
        assert model.model_name == "gpt-4o-mini"
        assert model.temperature == 0.2
        assert model.openai_api_key.get_secret_value() == "sk-custom-key"

    def test_uses_settings_when_none_provided(self, monkeypatch: pytest.MonkeyPatch):
        # _set_test_env fixture sets OPENAI_API_KEY to "sk-test-fake-key-for-testing"
        from homefinder.config import get_settings

        get_settings.cache_clear()
        model = get_chat_model()
        assert model.openai_api_key.get_secret_value() == "sk-test-fake-key-for-testing"

    def test_azure_endpoint_selects_azure_model(self):
        settings = Settings(
            openai_api_key="azure-key",
            azure_openai_endpoint="https://example.openai.azure.com/",
            azure_openai_deployment="gpt-4o-deployment",
        )
        model = get_chat_model(settings)
        assert isinstance(model, AzureChatOpenAI)
        assert model.deployment_name == "gpt-4o-deployment"

    def test_supports_tool_binding(self, settings: Settings):
        model = get_chat_model(settings)
        assert hasattr(model.bind_tools([]), "ainvoke")
