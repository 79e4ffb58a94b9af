"""Anthropic (Claude) backend."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from ..logging import JSONLLogger
from .base import (
    ConversationTurn,
    ProviderClient,
    ProviderSettings,
    Role,
    provider_error_from_status,
)


class AnthropicProvider(ProviderClient):
    """ProviderClient backed by AsyncAnthropic.

    The Messages API takes the system prompt as a separate argument, so
    history only holds user and assistant turns.
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        settings: ProviderSettings | None = None,
        event_logger: JSONLLogger | None = None,
        client: AsyncAnthropic | None = None,
    ) -> None:
        super().__init__(api_key, model, system_prompt, settings, event_logger)
        self._client = client or AsyncAnthropic(
            api_key=api_key,
            timeout=self.settings.timeout,
            max_retries=self.settings.max_retries,
        )

    def _make_turn(self, role: Role, content: str) -> dict[str, str]:
        return {"role": role, "content": content}

    def _read_turn(self, item: dict[str, str]) -> ConversationTurn:
        return ConversationTurn(role=item["role"], content=item["content"])  # type: ignore[arg-type]

    def _request(
        self, messages: list[dict[str, str]], system: str | None, temperature: float
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.settings.max_tokens,
            "messages": messages,
            "temperature": temperature,
        }
        if system:
            request["system"] = system
        return request

    def _wrap_error(self, error: anthropic.APIError) -> Exception:
        status_code = getattr(error, "status_code", None)
        return provider_error_from_status(self.name, self.model, status_code, str(error))

    async def _send(
        self, messages: list[dict[str, str]], system: str | None, temperature: float
    ) -> str:
        try:
            response = await self._client.messages.create(
                **self._request(messages, system, temperature)
            )
        except anthropic.APIError as e:
            raise self._wrap_error(e) from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    async def _send_stream(
        self, messages: list[dict[str, str]], system: str | None, temperature: float
    ) -> AsyncIterator[str]:
        try:
            async with self._client.messages.stream(
                **self._request(messages, system, temperature)
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APIError as e:
            raise self._wrap_error(e) from e
