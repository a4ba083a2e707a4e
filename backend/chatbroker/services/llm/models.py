"""
Pydantic models shared by the orchestrator and every provider.

Providers receive canonical ChatMessage lists and translate them
to their own wire format.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class CompletionOptions(BaseModel):
    max_tokens: int | None = None
    temperature: float | None = None
