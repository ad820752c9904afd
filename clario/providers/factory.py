"""Provider construction from configuration."""

from clario.config.schema import Config
from clario.providers.base import LLMProvider
from clario.providers.responses import ResponsesProvider


def build_provider(config: Config) -> LLMProvider:
    """Build the default provider. An empty base URL yields fixed fallback replies."""
    llm = config.llm
    return ResponsesProvider(
        base_url=llm.base_url,
        api_key=llm.api_key,
        model=llm.model,
        chat_model=llm.chat_model,
        timeout=llm.timeout_seconds,
    )
