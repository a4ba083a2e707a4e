from chatbroker.models.conversation import Conversation
from chatbroker.models.message import Message

__all__ = [
    "Conversation",
    "Message",
]
