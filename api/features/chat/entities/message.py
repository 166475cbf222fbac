"""Message entity: one immutable turn of a conversation."""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class Sender(str, Enum):
    """Who authored a message."""

    USER = "user"
    AI = "ai"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseEntity):
    """A stored chat message.

    ``conversation_id`` carries no foreign key: a client-supplied session id is
    trusted as-is, so messages may reference a conversation that was never
    created. Turn order is ``(timestamp, id)``.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_id_timestamp", "conversation_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    conversation_id: Mapped[str] = mapped_column(String(255), nullable=False)
    sender: Mapped[str] = mapped_column(String(10), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
