"""Repository for conversation persistence operations.

Every write commits immediately: a reply insert that follows a failed
completion call never happens, and an earlier user message stays committed.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.entities import Conversation, Message, Sender


class ChatRepository:
    """Conversation store backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_conversation(self) -> str:
        conversation = Conversation()
        self.session.add(conversation)
        await self.session.commit()
        return conversation.id

    async def insert_message(
        self,
        *,
        conversation_id: str,
        sender: Sender,
        text: str,
    ) -> None:
        self.session.add(
            Message(
                conversation_id=conversation_id,
                sender=sender.value,
                text=text,
            )
        )
        await self.session.commit()

    async def select_messages(
        self,
        *,
        conversation_id: str,
        order: Literal["asc", "desc"] = "asc",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch ``sender``, ``text`` and ``timestamp`` rows in turn order."""
        if order == "desc":
            ordering = (Message.timestamp.desc(), Message.id.desc())
        else:
            ordering = (Message.timestamp.asc(), Message.id.asc())

        stmt = (
            select(Message.sender, Message.text, Message.timestamp)
            .where(Message.conversation_id == conversation_id)
            .order_by(*ordering)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        res = await self.session.execute(stmt)
        return [dict(r) for r in res.mappings().all()]
