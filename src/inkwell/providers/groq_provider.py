"""Groq backend."""

from __future__ import annotations

import groq
from groq import AsyncGroq

from ..logging import JSONLLogger
from .base import ProviderSettings
from .chat_completions import ChatCompletionsProvider


class GroqProvider(ChatCompletionsProvider):
    """ProviderClient backed by AsyncGroq.

    Example:
        provider = GroqProvider(api_key, "llama-3.3-70b-versatile", "You are...")
        reply = await provider.chat("Describe the harbor district")
    """

    name = "groq"
    _api_error = groq.APIError

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        settings: ProviderSettings | None = None,
        event_logger: JSONLLogger | None = None,
        client: AsyncGroq | None = None,
    ) -> None:
        super().__init__(api_key, model, system_prompt, settings, event_logger)
        self._client = client or AsyncGroq(
            api_key=api_key,
            timeout=self.settings.timeout,
            max_retries=self.settings.max_retries,
        )
