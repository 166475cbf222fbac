"""Chat service: the message exchange and the transcript reader.

``handle_message`` runs strictly in sequence: validate, resolve the session,
store the user turn, read the last turns, ask the completion provider, store
the reply. Nothing is rolled back across steps; each insert is committed on
its own.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.entities import Sender
from api.features.chat.exceptions import (
    CompletionUnavailableError,
    InvalidMessageError,
    StorageUnavailableError,
)
from api.features.chat.prompts import build_system_prompt
from api.features.chat.repository import ChatRepository
from infra.resources import CompletionProviderResource

logger = structlog.get_logger("chat.service")

MAX_MESSAGE_LENGTH = 2000
CONTEXT_WINDOW = 10
FALLBACK_REPLY = "I am currently over capacity."

# Driver-level connection failures surface as OSError before SQLAlchemy wraps them
STORAGE_ERRORS = (SQLAlchemyError, OSError)


def normalize_message(message: Optional[str]) -> str:
    """Trim and truncate an inbound message, rejecting empty input."""
    cleaned = (message or "").strip()
    if not cleaned:
        raise InvalidMessageError()
    return cleaned[:MAX_MESSAGE_LENGTH]


def to_completion_messages(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Map stored turns to role-tagged entries; any non-user sender is the assistant."""
    return [
        {
            "role": "user" if row["sender"] == Sender.USER.value else "assistant",
            "content": row["text"],
        }
        for row in rows
    ]


class ChatService:
    """Orchestrates persistence, context windowing and the completion call."""

    def __init__(
        self,
        completion_provider: CompletionProviderResource,
        store_name: str,
        store_knowledge: str,
    ):
        self.completion_provider = completion_provider
        self.system_prompt = build_system_prompt(
            store_name=store_name, store_knowledge=store_knowledge
        )

    async def handle_message(
        self,
        db_session: AsyncSession,
        *,
        message: Optional[str],
        session_id: Optional[str] = None,
    ) -> Tuple[str, str]:
        """Store the user turn, fetch a reply and store it.

        Returns ``(reply, session_id)``. Raises ``InvalidMessageError`` before any
        write, ``CompletionUnavailableError`` after the user turn is stored, and
        ``StorageUnavailableError`` on any store failure.
        """
        text = normalize_message(message)
        repository = ChatRepository(db_session)

        try:
            if not session_id:
                session_id = await repository.create_conversation()
                logger.info("chat.conversation_created", session_id=session_id)

            await repository.insert_message(
                conversation_id=session_id, sender=Sender.USER, text=text
            )
            recent = await repository.select_messages(
                conversation_id=session_id, order="desc", limit=CONTEXT_WINDOW
            )
        except STORAGE_ERRORS as e:
            logger.error(
                "chat.storage_failed", session_id=session_id, error=str(e), exc_info=True
            )
            raise StorageUnavailableError(operation="store_user_message") from e

        history = to_completion_messages(reversed(recent))
        reply = await self._complete(history, session_id=session_id)

        try:
            await repository.insert_message(
                conversation_id=session_id, sender=Sender.AI, text=reply
            )
        except STORAGE_ERRORS as e:
            logger.error(
                "chat.storage_failed", session_id=session_id, error=str(e), exc_info=True
            )
            raise StorageUnavailableError(operation="store_ai_message") from e

        return reply, session_id

    async def _complete(self, history: List[Dict[str, str]], *, session_id: str) -> str:
        messages = [{"role": "system", "content": self.system_prompt}, *history]
        try:
            content = await self.completion_provider.complete(messages)
        except Exception as e:
            logger.error(
                "chat.completion_failed",
                session_id=session_id,
                error=str(e),
                exc_info=True,
            )
            raise CompletionUnavailableError(
                model=getattr(self.completion_provider, "model", None)
            ) from e

        if not content:
            logger.warning("chat.empty_completion", session_id=session_id)
            return FALLBACK_REPLY
        return content

    async def get_history(
        self, db_session: AsyncSession, *, session_id: str
    ) -> List[Dict[str, Any]]:
        """Full transcript, oldest first; unknown sessions yield an empty list."""
        repository = ChatRepository(db_session)
        try:
            rows = await repository.select_messages(conversation_id=session_id)
        except STORAGE_ERRORS as e:
            logger.error(
                "chat.history_failed", session_id=session_id, error=str(e), exc_info=True
            )
            raise StorageUnavailableError(
                "Could not load history", operation="load_history"
            ) from e
        return [{"sender": r["sender"], "text": r["text"]} for r in rows]
