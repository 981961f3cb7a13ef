"""Centralized chat model factory for the home search agent."""

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import AzureChatOpenAI, ChatOpenAI

from homefinder.config import Settings, get_settings


def get_chat_model(settings: Settings | None = None) -> BaseChatModel:
    """
    Create the chat model that drives the agent.

    Uses Azure OpenAI when AZURE_OPENAI_ENDPOINT is set (the deployment name
    falls back to the orchestrator model name), api.openai.com otherwise.
    LangSmith tracing is picked up by LangChain from the environment.

    Args:
        settings: Application settings. Defaults to get_settings().

    Returns:
        A LangChain chat model supporting tool calling.
    """
    settings = settings or get_settings()
    cfg = settings.orchestrator

    if settings.azure_openai_endpoint:
        return AzureChatOpenAI(
            azure_endpoint=settings.azure_openai_endpoint,
            azure_deployment=settings.azure_openai_deployment or cfg.model,
            api_version=settings.azure_openai_api_version,
            api_key=settings.openai_api_key,
            temperature=cfg.temperature,
            timeout=cfg.request_timeout_seconds,
        )

    return ChatOpenAI(
        model=cfg.model,
        api_key=settings.openai_api_key,
        temperature=cfg.temperature,
        timeout=cfg.request_timeout_seconds,
    )
