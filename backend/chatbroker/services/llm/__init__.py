"""
LLM Provider Abstraction Layer

Provides a unified interface for multiple LLM providers (OpenAI, Anthropic)
with a model registry, chunk normalization, history summarization and
shared orchestration logic.
"""

from chatbroker.services.llm.exceptions import (
    ConversationNotFoundError,
    LLMServiceError,
    ProviderUnavailableError,
    StreamFault,
    SummarizationUnavailableError,
    UnsupportedModelError,
)
from chatbroker.services.llm.models import ChatMessage, CompletionOptions, MessageRole, Provider
from chatbroker.services.llm.normalizer import extract_delta
from chatbroker.services.llm.orchestrator import LLMOrchestrator, get_orchestrator
from chatbroker.services.llm.registry import (
    MODEL_REGISTRY,
    ProviderSet,
    create_providers,
    list_available_models,
    resolve_provider,
)

__all__ = [
    "LLMOrchestrator",
    "get_orchestrator",
    "MODEL_REGISTRY",
    "ProviderSet",
    "create_providers",
    "list_available_models",
    "resolve_provider",
    "extract_delta",
    "ChatMessage",
    "CompletionOptions",
    "MessageRole",
    "Provider",
    "LLMServiceError",
    "UnsupportedModelError",
    "ProviderUnavailableError",
    "StreamFault",
    "SummarizationUnavailableError",
    "ConversationNotFoundError",
]
