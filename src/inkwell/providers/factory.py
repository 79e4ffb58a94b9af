"""Provider registry and factory keyed by provider name."""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..logging import JSONLLogger
from .base import ProviderClient, ProviderSettings


@dataclass(frozen=True)
class ProviderInfo:
    """Static description of a supported backend."""

    name: str
    models: tuple[str, ...]
    default_model: str
    api_key_env: str
    base_url: str | None = None


PROVIDERS: dict[str, ProviderInfo] = {
    "groq": ProviderInfo(
        name="Groq",
        models=("llama-3.3-70b-versatile", "llama-3.1-8b-instant"),
        default_model="llama-3.3-70b-versatile",
        api_key_env="GROQ_API_KEY",
    ),
    "openai": ProviderInfo(
        name="OpenAI",
        models=("gpt-4o", "gpt-4o-mini", "gpt-4-turbo"),
        default_model="gpt-4o-mini",
        api_key_env="OPENAI_API_KEY",
    ),
    "anthropic": ProviderInfo(
        name="Anthropic (Claude)",
        models=("claude-sonnet-4-20250514", "claude-3-5-haiku-20241022"),
        default_model="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
    ),
    "gemini": ProviderInfo(
        name="Google Gemini",
        models=("gemini-2.0-flash", "gemini-1.5-flash", "gemini-1.5-pro"),
        default_model="gemini-2.0-flash",
        api_key_env="GEMINI_API_KEY",
    ),
    "deepseek": ProviderInfo(
        name="DeepSeek",
        models=("deepseek-chat", "deepseek-reasoner"),
        default_model="deepseek-chat",
        api_key_env="DEEPSEEK_API_KEY",
        base_url="https://api.deepseek.com",
    ),
    "openrouter": ProviderInfo(
        name="OpenRouter",
        models=("openai/gpt-4o", "anthropic/claude-3.5-sonnet", "meta-llama/llama-3-70b"),
        default_model="openai/gpt-4o-mini",
        api_key_env="OPENROUTER_API_KEY",
        base_url="https://openrouter.ai/api/v1",
    ),
}


def create_provider(
    provider_name: str,
    api_key: str,
    model: str | None,
    system_prompt: str,
    settings: ProviderSettings | None = None,
    event_logger: JSONLLogger | None = None,
) -> ProviderClient:
    """Create a ProviderClient for a named backend.

    Args:
        provider_name: One of PROVIDERS.
        api_key: Backend credentials.
        model: Model id; the backend default when None.
        system_prompt: Session system prompt.
        settings: Generation/transport settings.
        event_logger: Optional JSONL event logger.

    Raises:
        ValueError: If the provider name is unknown.
    """
    info = PROVIDERS.get(provider_name)
    if info is None:
        raise ValueError(
            f"Unknown provider: {provider_name}. Available: {', '.join(PROVIDERS)}"
        )

    selected_model = model or info.default_model
    settings = settings or ProviderSettings()
    if info.base_url and not settings.base_url:
        settings = replace(settings, base_url=info.base_url)

    # Backend SDKs are imported on demand
    if provider_name == "groq":
        from .groq_provider import GroqProvider

        return GroqProvider(api_key, selected_model, system_prompt, settings, event_logger)

    if provider_name in ("openai", "deepseek", "openrouter"):
        from .openai_provider import OpenAIProvider

        return OpenAIProvider(
            api_key, selected_model, system_prompt, settings, event_logger, name=provider_name
        )

    if provider_name == "anthropic":
        from .anthropic_provider import AnthropicProvider

        return AnthropicProvider(api_key, selected_model, system_prompt, settings, event_logger)

    from .gemini_provider import GeminiProvider

    return GeminiProvider(api_key, selected_model, system_prompt, settings, event_logger)
