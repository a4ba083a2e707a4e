"""
LLM service errors.

Each error carries the context a caller needs to react (model, provider,
known models) without querying the registry again.
"""


class LLMServiceError(Exception):
    """Base class for all orchestration errors."""


class UnsupportedModelError(LLMServiceError):
    """The model is neither in the registry nor matches a known prefix."""

    def __init__(self, model: str, known_models: list[str]):
        self.model = model
        self.known_models = known_models
        super().__init__(
            f"Unsupported model: {model}. "
            f"Available models: {', '.join(known_models)}"
        )


class ProviderUnavailableError(LLMServiceError):
    """The model resolved to a provider whose adapter was never constructed."""

    def __init__(self, provider: str, model: str, available_providers: list[str]):
        self.provider = provider
        self.model = model
        self.available_providers = available_providers
        super().__init__(
            f"Provider {provider} is not initialized. "
            f"Available providers: {', '.join(available_providers)}. "
            f"Please provide a valid API key for {provider}."
        )


class StreamFault(LLMServiceError):
    """The vendor failed while a completion was being requested or streamed."""

    def __init__(self, provider: str, model: str, message: str):
        self.provider = provider
        self.model = model
        self.message = message
        super().__init__(f"{provider} stream failed for model {model}: {message}")


class SummarizationUnavailableError(LLMServiceError):
    """The fixed summarization provider has no adapter."""

    def __init__(self, provider: str, model: str):
        self.provider = provider
        self.model = model
        super().__init__(
            f"Summarization requires provider {provider} (model {model}), "
            f"which is not initialized."
        )


class ConversationNotFoundError(LLMServiceError):
    def __init__(self, conversation_id):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation with ID {conversation_id} not found")
