"""Chat entities package."""
from api.features.chat.entities.conversation import Conversation
from api.features.chat.entities.message import Message, Sender

__all__ = ["Conversation", "Message", "Sender"]
