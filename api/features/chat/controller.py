"""Controller for the Chat feature."""
import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.dtos import (
    HistoryMessageDTO,
    SendMessageRequest,
    SendMessageResponse,
)
from api.features.chat.service import ChatService

logger = logging.getLogger("chat.controller")


class ChatController:
    """Controller handling message exchange and transcript reads."""

    def __init__(self, chat_service: ChatService):
        self.chat_service = chat_service

    async def send_message(
        self,
        *,
        request: SendMessageRequest,
        db_session: AsyncSession,
    ) -> SendMessageResponse:
        reply, session_id = await self.chat_service.handle_message(
            db_session,
            message=request.message,
            session_id=request.session_id,
        )
        return SendMessageResponse(reply=reply, session_id=session_id)

    async def get_history(
        self,
        *,
        session_id: str,
        db_session: AsyncSession,
    ) -> List[HistoryMessageDTO]:
        rows = await self.chat_service.get_history(db_session, session_id=session_id)
        logger.debug("Loaded %d messages for session %s", len(rows), session_id)
        return [HistoryMessageDTO(sender=r["sender"], text=r["text"]) for r in rows]
