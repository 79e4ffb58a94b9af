"""Backend-agnostic conversational client.

Concrete providers own their own history representation (role-tagged
dicts, SDK content objects, ...) and only implement the raw send and
stream calls. Turn accounting lives here so every backend follows the
same contract:

- chat() commits the user and assistant turns only after the backend
  answered; a failed call leaves history untouched.
- stream() yields chunks as they arrive and commits both turns once the
  backend stream is exhausted. If the consumer stops early, the task is
  cancelled or the backend fails mid-stream, nothing is committed.

A client is not safe for concurrent calls: use one instance per
in-flight conversation.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, Literal

from ..logging import JSONLLogger, get_logger

Role = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class ConversationTurn:
    """One message in a provider session."""

    role: Role
    content: str


@dataclass
class ProviderSettings:
    """Per-backend generation and transport settings."""

    temperature: float = 0.9
    max_tokens: int = 8192
    timeout: float = 120.0
    max_retries: int = 2
    base_url: str | None = None


class ProviderError(Exception):
    """A model backend call failed (auth, rate limit, network, ...).

    str(error) is a single human-readable message.
    """

    def __init__(
        self, message: str, provider: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


def provider_error_from_status(
    provider: str, model: str, status_code: int | None, detail: str
) -> ProviderError:
    """Map a backend failure to a user-facing ProviderError."""
    if status_code == 401:
        message = f"Authentication failed for provider '{provider}'. Please check your API key."
    elif status_code == 404:
        message = f"Model '{model}' not found. Please verify the model name is correct."
    elif status_code == 429:
        message = "Rate limit exceeded. Please try again later."
    else:
        message = f"AI generation failed: {detail or 'Unknown error'}"
    return ProviderError(message, provider=provider, status_code=status_code)


class ProviderClient(ABC):
    """Uniform conversational interface over a model backend."""

    name: str = "base"

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        settings: ProviderSettings | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt
        self.settings = settings or ProviderSettings()
        self._event_logger = event_logger
        self._messages: list[Any] = []

    @abstractmethod
    def _make_turn(self, role: Role, content: str) -> Any:
        """Convert a turn to the backend's native history item."""
        ...

    @abstractmethod
    def _read_turn(self, item: Any) -> ConversationTurn:
        """Convert a native history item back to a ConversationTurn."""
        ...

    @abstractmethod
    async def _send(self, messages: list[Any], system: str | None, temperature: float) -> str:
        """Send native messages and return the full reply text."""
        ...

    @abstractmethod
    def _send_stream(
        self, messages: list[Any], system: str | None, temperature: float
    ) -> AsyncIterator[str]:
        """Send native messages and yield reply chunks."""
        ...

    @property
    def history(self) -> list[ConversationTurn]:
        """Copy of the committed conversation."""
        return [self._read_turn(item) for item in self._messages]

    def clear_history(self) -> None:
        """Forget all turns. System prompt and credentials are kept."""
        self._messages = []

    def _log_call(self, started: float, streamed: bool = False, error: str | None = None) -> None:
        event_logger = self._event_logger or get_logger()
        event_logger.log_llm_call(
            self.name,
            self.model,
            duration_ms=(time.time() - started) * 1000,
            streamed=streamed,
            error=error,
        )

    async def chat(self, message: str) -> str:
        """Send a message in this session and return the assistant text."""
        pending = [*self._messages, self._make_turn("user", message)]
        started = time.time()
        try:
            text = await self._send(pending, self.system_prompt, self.settings.temperature)
        except ProviderError as e:
            self._log_call(started, error=str(e))
            raise

        self._messages = [*pending, self._make_turn("assistant", text)]
        self._log_call(started)
        return text

    async def stream(self, message: str) -> AsyncIterator[str]:
        """Send a message and yield the reply incrementally.

        History is updated only after the final chunk.
        """
        pending = [*self._messages, self._make_turn("user", message)]
        started = time.time()
        chunks: list[str] = []
        try:
            async with aclosing(
                self._send_stream(pending, self.system_prompt, self.settings.temperature)
            ) as parts:
                async for chunk in parts:
                    chunks.append(chunk)
                    yield chunk
        except ProviderError as e:
            self._log_call(started, streamed=True, error=str(e))
            raise

        self._messages = [*pending, self._make_turn("assistant", "".join(chunks))]
        self._log_call(started, streamed=True)

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        """One-shot call that neither reads nor writes session history.

        Args:
            prompt: The user prompt.
            system: System prompt; defaults to the session's.
            temperature: Overrides the configured temperature.
            history: Explicit prior turns to send before the prompt.
                System turns are skipped.
        """
        messages = [
            self._make_turn(turn.role, turn.content) for turn in history if turn.role != "system"
        ]
        messages.append(self._make_turn("user", prompt))
        started = time.time()
        try:
            text = await self._send(
                messages,
                system if system is not None else self.system_prompt,
                self.settings.temperature if temperature is None else temperature,
            )
        except ProviderError as e:
            self._log_call(started, error=str(e))
            raise
        self._log_call(started)
        return text
