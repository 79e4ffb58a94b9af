"""Google Gemini backend."""

from __future__ import annotations

from collections.abc import AsyncIterator

from google import genai
from google.genai import errors, types

from ..logging import JSONLLogger
from .base import (
    ConversationTurn,
    ProviderClient,
    ProviderSettings,
    Role,
    provider_error_from_status,
)


class GeminiProvider(ProviderClient):
    """ProviderClient backed by the google-genai async client.

    History is kept as types.Content objects; the assistant role is
    called 'model' on this backend.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        settings: ProviderSettings | None = None,
        event_logger: JSONLLogger | None = None,
        client: genai.Client | None = None,
    ) -> None:
        super().__init__(api_key, model, system_prompt, settings, event_logger)
        self._client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self.settings.timeout * 1000)),
        )

    def _make_turn(self, role: Role, content: str) -> types.Content:
        return types.Content(
            role="model" if role == "assistant" else "user",
            parts=[types.Part(text=content)],
        )

    def _read_turn(self, item: types.Content) -> ConversationTurn:
        text = "".join(part.text or "" for part in item.parts or [])
        return ConversationTurn(role="assistant" if item.role == "model" else "user", content=text)

    def _config(self, system: str | None, temperature: float) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=system or None,
            temperature=temperature,
            top_p=0.95,
            top_k=40,
            max_output_tokens=self.settings.max_tokens,
        )

    def _wrap_error(self, error: errors.APIError) -> Exception:
        return provider_error_from_status(self.name, self.model, error.code, str(error))

    async def _send(
        self, messages: list[types.Content], system: str | None, temperature: float
    ) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=messages,
                config=self._config(system, temperature),
            )
        except errors.APIError as e:
            raise self._wrap_error(e) from e

        return response.text or ""

    async def _send_stream(
        self, messages: list[types.Content], system: str | None, temperature: float
    ) -> AsyncIterator[str]:
        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self.model,
                contents=messages,
                config=self._config(system, temperature),
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            raise self._wrap_error(e) from e
