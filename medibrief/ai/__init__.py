"""
MediBrief AI Module
Language model providers behind one interface.

    provider = create_provider(config.provider)
    text = await provider.generate(prompt, temperature=0.0)

Variants (selected by ProviderConfig.variant):
- 'keyed': KeyedCloudProvider - Gemini REST API with a static API key
- 'chat':  ChatCloudProvider  - OpenAI-compatible chat completions, bearer key
- 'local': LocalServiceProvider - Ollama on the local network

Callers only ever see LanguageModelProvider; swapping the variant is a
configuration change.
"""

from medibrief.ai.base import LanguageModelProvider
from medibrief.ai.chat_provider import ChatCloudProvider
from medibrief.ai.gemini_provider import KeyedCloudProvider
from medibrief.ai.ollama_provider import LocalServiceProvider
from medibrief.config import ProviderConfig

PROVIDER_REGISTRY: dict[str, type[LanguageModelProvider]] = {
    'keyed': KeyedCloudProvider,
    'chat': ChatCloudProvider,
    'local': LocalServiceProvider,
}


def create_provider(config: ProviderConfig) -> LanguageModelProvider:
    """
    Build the provider selected by config.variant.

    Raises:
        ValueError: If the variant is not registered
    """
    try:
        provider_cls = PROVIDER_REGISTRY[config.variant]
    except KeyError:
        raise ValueError(
            f"Unknown provider '{config.variant}'. Expected one of: {', '.join(PROVIDER_REGISTRY)}"
        ) from None
    return provider_cls(config)


__all__ = [
    'ChatCloudProvider',
    'KeyedCloudProvider',
    'LanguageModelProvider',
    'LocalServiceProvider',
    'PROVIDER_REGISTRY',
    'create_provider',
]
