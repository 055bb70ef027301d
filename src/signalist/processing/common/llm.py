"""LLM model factory for PydanticAI.

Supports:
- Anthropic (Claude) - default
- OpenAI-compatible APIs
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.openai import OpenAIProvider

from signalist.config import get_settings
from signalist.core.logging import get_logger

if TYPE_CHECKING:
    from signalist.config import Settings

logger = get_logger(__name__)


def create_model(settings: Settings | None = None) -> str | Model:
    """Create a PydanticAI model based on configuration.

    Returns:
        Model string for Anthropic when no explicit key is configured (the
        provider then reads ANTHROPIC_API_KEY), otherwise a model instance.
    """
    settings = settings or get_settings()
    model_name = settings.llm_model

    if settings.llm_provider == "anthropic":
        if settings.anthropic_api_key is None:
            model_str = f"anthropic:{model_name}"
            logger.debug("Using Anthropic model", model=model_str)
            return model_str
        logger.debug("Using Anthropic model", model=model_name)
        return AnthropicModel(
            model_name,
            provider=AnthropicProvider(api_key=settings.anthropic_api_key.get_secret_value()),
        )

    api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None

    if settings.openai_base_url:
        provider = OpenAIProvider(base_url=settings.openai_base_url, api_key=api_key)
        logger.debug(
            "Using OpenAI-compatible model",
            model=model_name,
            base_url=settings.openai_base_url,
        )
    else:
        provider = OpenAIProvider(api_key=api_key)
        logger.debug("Using OpenAI model", model=model_name)

    return OpenAIChatModel(model_name, provider=provider)
