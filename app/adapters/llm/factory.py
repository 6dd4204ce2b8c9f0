"""Factory pattern for creating LLM client instances."""

import logging

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.openai_client import OpenAIClient
from app.core.config import LLMSettings
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


def create_llm_client(llm_settings: LLMSettings) -> AbstractLLMClient | None:
    """Instantiate the LLM client configured in llm_settings.

    Returns None when no provider is configured; callers then serve
    simulated commentary.

    Args:
        llm_settings: Resolved LLM settings.

    Returns:
        AbstractLLMClient | None: Configured client, or None when disabled.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    if not llm_settings.provider:
        logger.info("llm.disabled", extra={"reason": "no_provider_configured"})
        return None

    provider = llm_settings.provider.lower()

    if provider == "openai":
        if not llm_settings.api_key:
            raise ValidationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY environment variable",
            )
        return OpenAIClient(
            api_key=llm_settings.api_key,
            model=llm_settings.model,
            base_url=llm_settings.base_url,
            timeout_seconds=llm_settings.timeout_seconds,
        )

    raise ValidationAppError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: openai",
    )
