"""Provider and storage configuration.

Settings come from ~/.inkwell/config.json and environment variables,
environment winning. API keys are read from the provider's own variable
(GROQ_API_KEY, OPENAI_API_KEY, ...) and are never written back to disk.
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .providers.base import ProviderSettings
from .providers.factory import PROVIDERS

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".inkwell"
DEFAULT_CONFIG_PATH = DEFAULT_HOME / "config.json"

_PERSISTED_FIELDS = ("provider", "model", "base_url", "temperature", "max_tokens", "timeout", "max_retries")


@dataclass
class InkwellConfig:
    """Runtime configuration.

    Attributes:
        provider: Backend name, one of PROVIDERS.
        model: Model id; the provider default when None.
        api_key: Backend credentials.
        base_url: Override for OpenAI-compatible endpoints.
        temperature: Sampling temperature for agent sessions.
        max_tokens: Reply length cap.
        timeout: Per-request timeout in seconds.
        max_retries: SDK-level retries per request.
        data_dir: Where the SQLite project store lives.
        log_dir: Where JSONL event logs are written.
    """

    provider: str = "groq"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.9
    max_tokens: int = 8192
    timeout: float = 120.0
    max_retries: int = 2
    data_dir: Path | None = None
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate config and set defaults."""
        if self.provider not in PROVIDERS:
            raise ValueError(
                f"Unknown provider: {self.provider}. Available: {', '.join(PROVIDERS)}"
            )
        if not 0 <= self.temperature <= 2:
            raise ValueError("temperature must be between 0 and 2")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")

        self.data_dir = Path(self.data_dir).expanduser() if self.data_dir else DEFAULT_HOME
        self.log_dir = Path(self.log_dir).expanduser() if self.log_dir else DEFAULT_HOME / "logs"

    @property
    def resolved_model(self) -> str:
        return self.model or PROVIDERS[self.provider].default_model

    @property
    def api_key_env(self) -> str:
        return PROVIDERS[self.provider].api_key_env

    @property
    def db_path(self) -> Path:
        return Path(self.data_dir) / "inkwell.db"

    def provider_settings(self) -> ProviderSettings:
        return ProviderSettings(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
            max_retries=self.max_retries,
            base_url=self.base_url,
        )


def _env_number(name: str, cast: type, current: Any) -> Any:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return current
    try:
        return cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def config_from_env(base: InkwellConfig | None = None) -> InkwellConfig:
    """Apply INKWELL_* and provider key environment variables over a base config.

    Raises:
        ValueError: If a variable holds an invalid value.
    """
    base = base or InkwellConfig()
    provider = os.getenv("INKWELL_PROVIDER") or base.provider
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown provider: {provider}. Available: {', '.join(PROVIDERS)}")

    api_key = os.getenv(PROVIDERS[provider].api_key_env)
    if not api_key and provider == base.provider:
        api_key = base.api_key

    return InkwellConfig(
        provider=provider,
        model=os.getenv("INKWELL_MODEL") or (base.model if provider == base.provider else None),
        api_key=api_key,
        base_url=os.getenv("INKWELL_BASE_URL") or base.base_url,
        temperature=_env_number("INKWELL_TEMPERATURE", float, base.temperature),
        max_tokens=_env_number("INKWELL_MAX_TOKENS", int, base.max_tokens),
        timeout=_env_number("INKWELL_TIMEOUT", float, base.timeout),
        max_retries=_env_number("INKWELL_MAX_RETRIES", int, base.max_retries),
        data_dir=os.getenv("INKWELL_DATA_DIR") or base.data_dir,
        log_dir=os.getenv("INKWELL_LOG_DIR") or base.log_dir,
    )


def load_config(config_path: Path | None = None) -> InkwellConfig:
    """Load InkwellConfig from a JSON file, then apply the environment.

    The config file should have this structure:
    ```json
    {
      "provider": "openai",
      "model": "gpt-4o-mini",
      "temperature": 0.8,
      "max_tokens": 4096,
      "data_dir": "~/writing/inkwell"
    }
    ```

    A missing or unreadable file falls back to defaults.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return config_from_env()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        return config_from_env()
    except OSError as e:
        logger.warning("Cannot read %s: %s. Using defaults.", path, e)
        return config_from_env()

    return config_from_env(_parse_config(data, path))


def _parse_config(data: Any, path: Path) -> InkwellConfig:
    if not isinstance(data, dict):
        logger.warning("Config in %s is not an object. Using defaults.", path)
        return InkwellConfig()

    known = {f.name for f in fields(InkwellConfig)} - {"api_key"}
    values = {k: v for k, v in data.items() if k in known and v is not None}
    try:
        return InkwellConfig(**values)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid config in %s: %s. Using defaults.", path, e)
        return InkwellConfig()


def save_config(config: InkwellConfig, config_path: Path | None = None) -> Path:
    """Write the non-secret settings to a JSON file."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {name: getattr(config, name) for name in _PERSISTED_FIELDS}
    data["data_dir"] = str(config.data_dir)
    data["log_dir"] = str(config.log_dir)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return path
