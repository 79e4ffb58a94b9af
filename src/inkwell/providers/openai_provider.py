"""OpenAI and OpenAI-compatible backends (DeepSeek, OpenRouter)."""

from __future__ import annotations

import openai
from openai import AsyncOpenAI

from ..logging import JSONLLogger
from .base import ProviderSettings
from .chat_completions import ChatCompletionsProvider


class OpenAIProvider(ChatCompletionsProvider):
    """ProviderClient backed by AsyncOpenAI, optionally at a custom base URL."""

    name = "openai"
    _api_error = openai.APIError

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        settings: ProviderSettings | None = None,
        event_logger: JSONLLogger | None = None,
        client: AsyncOpenAI | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(api_key, model, system_prompt, settings, event_logger)
        if name:
            self.name = name
        base_url = self.settings.base_url
        if base_url and base_url.endswith("/"):
            base_url = base_url[:-1]
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=self.settings.timeout,
            max_retries=self.settings.max_retries,
        )
