"""
Model Registry

Maps model IDs to their provider, and builds the set of provider
adapters that could be initialized with the configured credentials.
Used by the orchestrator to select the correct provider per request.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from chatbroker.core.config import Settings
from chatbroker.services.llm.anthropic_messages import AnthropicProvider
from chatbroker.services.llm.base import LLMProvider
from chatbroker.services.llm.exceptions import UnsupportedModelError
from chatbroker.services.llm.models import Provider
from chatbroker.services.llm.openai_chat import OpenAIChatProvider

logger = logging.getLogger(__name__)


# ── Model Registry ────────────────────────────────────────────────────────────
# Each entry maps a model_id (sent as-is to the vendor API) to:
#   - provider:     Which LLMProvider handles it
#   - display_name: Human-readable name for the frontend

MODEL_REGISTRY: dict[str, dict] = {
    # ── OpenAI ──
    "gpt-4o": {"provider": Provider.OPENAI, "display_name": "GPT-4o"},
    "gpt-4o-mini": {"provider": Provider.OPENAI, "display_name": "GPT-4o Mini"},
    "gpt-4.1": {"provider": Provider.OPENAI, "display_name": "GPT-4.1"},
    "gpt-4.1-mini": {"provider": Provider.OPENAI, "display_name": "GPT-4.1 Mini"},
    "gpt-4.1-nano": {"provider": Provider.OPENAI, "display_name": "GPT-4.1 Nano"},
    "gpt-4-turbo": {"provider": Provider.OPENAI, "display_name": "GPT-4 Turbo"},
    "gpt-4": {"provider": Provider.OPENAI, "display_name": "GPT-4"},
    "gpt-3.5-turbo": {"provider": Provider.OPENAI, "display_name": "GPT-3.5 Turbo"},
    # ── Anthropic ──
    "claude-3-5-sonnet-20240620": {
        "provider": Provider.ANTHROPIC,
        "display_name": "Claude 3.5 Sonnet",
    },
    "claude-3-opus-20240229": {
        "provider": Provider.ANTHROPIC,
        "display_name": "Claude 3 Opus",
    },
    "claude-3-sonnet-20240229": {
        "provider": Provider.ANTHROPIC,
        "display_name": "Claude 3 Sonnet",
    },
    "claude-3-haiku-20240307": {
        "provider": Provider.ANTHROPIC,
        "display_name": "Claude 3 Haiku",
    },
}

# Fallback for models missing from the table, checked in order
MODEL_PREFIXES: tuple[tuple[str, Provider], ...] = (
    ("gpt-", Provider.OPENAI),
    ("text-", Provider.OPENAI),
    ("claude-", Provider.ANTHROPIC),
)


def resolve_provider(model_id: str) -> Provider:
    """
    Get the provider for a given model_id.

    Args:
        model_id: The model identifier (e.g., "gpt-4o")

    Returns:
        The Provider that serves this model

    Raises:
        UnsupportedModelError: If the model is neither registered nor matches a known prefix
    """
    if model_id in MODEL_REGISTRY:
        return MODEL_REGISTRY[model_id]["provider"]

    for prefix, provider in MODEL_PREFIXES:
        if model_id.startswith(prefix):
            return provider

    raise UnsupportedModelError(model_id, list(MODEL_REGISTRY.keys()))


def list_available_models(
    adapters: dict[Provider, LLMProvider],
) -> dict[Provider, list[str]]:
    """
    Return registered models grouped by provider.

    Providers without an adapter are left out entirely.
    """
    available: dict[Provider, list[str]] = {}
    for provider in Provider:
        if provider not in adapters:
            continue
        available[provider] = [
            model_id
            for model_id, info in MODEL_REGISTRY.items()
            if info["provider"] == provider
        ]
    return available


# ── Provider Factory ──────────────────────────────────────────────────────────

_PROVIDER_FACTORIES: dict[Provider, Callable[[Settings], LLMProvider]] = {
    Provider.OPENAI: lambda settings: OpenAIChatProvider(settings.openai_api_key),
    Provider.ANTHROPIC: lambda settings: AnthropicProvider(settings.anthropic_api_key),
}


@dataclass
class ProviderSet:
    """Outcome of provider construction: what initialized and why the rest did not."""

    adapters: dict[Provider, LLMProvider] = field(default_factory=dict)
    failures: dict[Provider, str] = field(default_factory=dict)

    def get(self, provider: Provider) -> LLMProvider | None:
        return self.adapters.get(provider)

    @property
    def available(self) -> list[Provider]:
        return list(self.adapters.keys())


def create_providers(settings: Settings) -> ProviderSet:
    """Construct every provider adapter that has credentials."""
    providers = ProviderSet()
    for provider, factory in _PROVIDER_FACTORIES.items():
        try:
            providers.adapters[provider] = factory(settings)
            logger.info("%s provider initialized", provider.value)
        except ValueError as e:
            providers.failures[provider] = str(e)
            logger.warning("%s provider not initialized: %s", provider.value, e)
    return providers
