"""Model provider abstraction."""

from .base import (
    ConversationTurn,
    ProviderClient,
    ProviderError,
    ProviderSettings,
    provider_error_from_status,
)
from .factory import PROVIDERS, ProviderInfo, create_provider

__all__ = [
    "PROVIDERS",
    "ConversationTurn",
    "ProviderClient",
    "ProviderError",
    "ProviderInfo",
    "ProviderSettings",
    "create_provider",
    "provider_error_from_status",
]
