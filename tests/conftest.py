"""Shared fixtures: a SQLite-backed store, a scripted completion provider, an API client."""
from __future__ import annotations

from typing import Dict, List, Optional

import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient

from api.features.chat.controller import ChatController
from api.features.chat.service import ChatService
from api.main import app
from api.shared.db import get_db_session
from api.shared.entities.registry import BaseEntity
from infra.resources import DatabaseResource


class FakeCompletionProvider:
    """Records every request and answers with a scripted reply or error."""

    model = "fake-model"

    def __init__(self, reply: Optional[str] = "Happy to help!", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[List[Dict[str, str]]] = []

    async def complete(self, messages: List[Dict[str, str]]) -> Optional[str]:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
async def database(tmp_path):
    db = DatabaseResource(database_url=f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    await db.init()
    async with db.engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    yield db
    await db.shutdown()


@pytest.fixture
async def db_session(database):
    session = database.get_session()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def completion_provider():
    return FakeCompletionProvider()


@pytest.fixture
def chat_service(completion_provider):
    return ChatService(
        completion_provider=completion_provider,
        store_name="Spur Gadgets",
        store_knowledge="Returns: 30 days.",
    )


@pytest.fixture
async def client(database, chat_service):
    async def override_session():
        session = database.get_session()
        try:
            yield session
        finally:
            await session.close()

    controller = ChatController(chat_service=chat_service)
    app.dependency_overrides[get_db_session] = override_session
    with app.container.controllers.chat_controller.override(providers.Object(controller)):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    app.dependency_overrides.pop(get_db_session, None)
