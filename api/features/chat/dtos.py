"""DTOs for the Chat feature."""
from typing import Optional

from pydantic import Field

from api.shared.dtos import BaseDTO


class SendMessageRequest(BaseDTO):
    """Inbound chat message; an absent session id starts a new conversation."""

    message: Optional[str] = Field(default=None, description="User message text")
    session_id: Optional[str] = Field(
        default=None, alias="sessionId", description="Existing session identifier"
    )


class SendMessageResponse(BaseDTO):
    """Reply to a chat message."""

    reply: str = Field(description="Assistant reply")
    session_id: str = Field(alias="sessionId", description="Session identifier")


class HistoryMessageDTO(BaseDTO):
    """One transcript entry."""

    sender: str = Field(description="Message sender: user or ai")
    text: str = Field(description="Message text")
