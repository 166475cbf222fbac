"""Router for the Chat feature."""
from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from di.container import ApplicationContainer as DependencyContainer
from api.features.chat.controller import ChatController
from api.features.chat.dtos import (
    HistoryMessageDTO,
    SendMessageRequest,
    SendMessageResponse,
)
from api.shared.db import get_db_session
from api.shared.dtos import ErrorResponse

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Empty message"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
    503: {"model": ErrorResponse, "description": "Completion provider failure"},
}


@router.post(
    "/message",
    response_model=SendMessageResponse,
    responses=ERROR_RESPONSES,
)
@inject
async def send_message(
    request: SendMessageRequest,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.send_message(request=request, db_session=db_session)


@router.get(
    "/history/{session_id}",
    response_model=List[HistoryMessageDTO],
    responses={500: ERROR_RESPONSES[500]},
)
@inject
async def get_history(
    session_id: str,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.get_history(session_id=session_id, db_session=db_session)
