"""Shared implementation for chat-completions style SDKs (Groq, OpenAI)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from .base import ConversationTurn, ProviderClient, Role, provider_error_from_status


class ChatCompletionsProvider(ProviderClient):
    """History as role-tagged dicts, system prompt sent as the first message.

    Subclasses set `_client` and `_api_error` (the SDK's base API error
    class).
    """

    _client: Any
    _api_error: type[Exception] = Exception

    def _make_turn(self, role: Role, content: str) -> dict[str, str]:
        return {"role": role, "content": content}

    def _read_turn(self, item: dict[str, str]) -> ConversationTurn:
        return ConversationTurn(role=item["role"], content=item["content"])  # type: ignore[arg-type]

    def _build_messages(
        self, messages: list[dict[str, str]], system: str | None
    ) -> list[dict[str, str]]:
        if system:
            return [{"role": "system", "content": system}, *messages]
        return list(messages)

    def _wrap_error(self, error: Exception) -> Exception:
        status_code = getattr(error, "status_code", None)
        return provider_error_from_status(self.name, self.model, status_code, str(error))

    async def _send(
        self, messages: list[dict[str, str]], system: str | None, temperature: float
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(messages, system),
                temperature=temperature,
                max_tokens=self.settings.max_tokens,
            )
        except self._api_error as e:
            raise self._wrap_error(e) from e

        return response.choices[0].message.content or ""

    async def _send_stream(
        self, messages: list[dict[str, str]], system: str | None, temperature: float
    ) -> AsyncIterator[str]:
        try:
            stream = await self._client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(messages, system),
                temperature=temperature,
                max_tokens=self.settings.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except self._api_error as e:
            raise self._wrap_error(e) from e
