"""ChatService: validation, context window, degradation and failure semantics."""
import httpx
import openai
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from api.features.chat.entities import Message, Sender
from api.features.chat.exceptions import (
    CompletionUnavailableError,
    InvalidMessageError,
    StorageUnavailableError,
)
from api.features.chat.repository import ChatRepository
from api.features.chat.service import (
    CONTEXT_WINDOW,
    FALLBACK_REPLY,
    MAX_MESSAGE_LENGTH,
    normalize_message,
    to_completion_messages,
)


async def _count_messages(db_session) -> int:
    res = await db_session.execute(select(func.count()).select_from(Message))
    return res.scalar_one()


@pytest.mark.parametrize("message", [None, "", "   ", "\n\t  \n"])
async def test_empty_message_is_rejected_without_writes(
    chat_service, completion_provider, db_session, message
):
    with pytest.raises(InvalidMessageError) as exc_info:
        await chat_service.handle_message(db_session, message=message)

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Empty message"
    assert completion_provider.calls == []
    assert await _count_messages(db_session) == 0


def test_normalize_message_trims_and_truncates():
    assert normalize_message("  hello  ") == "hello"
    long_text = "  " + "x" * (MAX_MESSAGE_LENGTH + 500) + "  "
    assert normalize_message(long_text) == "x" * MAX_MESSAGE_LENGTH


async def test_long_message_is_stored_truncated(chat_service, db_session):
    text = "a" * 1999 + "bcdef"
    _, session_id = await chat_service.handle_message(db_session, message=f"  {text}  ")

    history = await chat_service.get_history(db_session, session_id=session_id)
    assert history[0]["sender"] == "user"
    assert history[0]["text"] == text[:MAX_MESSAGE_LENGTH]
    assert len(history[0]["text"]) == MAX_MESSAGE_LENGTH


async def test_new_session_records_user_then_ai(chat_service, completion_provider, db_session):
    reply, session_id = await chat_service.handle_message(db_session, message="Hi")

    assert reply == "Happy to help!"
    assert session_id
    history = await chat_service.get_history(db_session, session_id=session_id)
    assert history == [
        {"sender": "user", "text": "Hi"},
        {"sender": "ai", "text": "Happy to help!"},
    ]


async def test_existing_session_id_is_reused(chat_service, db_session):
    _, session_id = await chat_service.handle_message(db_session, message="Hi")
    _, same_id = await chat_service.handle_message(
        db_session, message="Do you ship to Canada?", session_id=session_id
    )

    assert same_id == session_id
    history = await chat_service.get_history(db_session, session_id=session_id)
    assert [m["sender"] for m in history] == ["user", "ai", "user", "ai"]


async def test_empty_session_id_starts_new_conversation(chat_service, db_session):
    _, session_id = await chat_service.handle_message(db_session, message="Hi", session_id="")
    assert session_id


async def test_unknown_session_id_is_trusted(chat_service, db_session):
    _, session_id = await chat_service.handle_message(
        db_session, message="Hello?", session_id="not-a-real-session"
    )

    assert session_id == "not-a-real-session"
    history = await chat_service.get_history(db_session, session_id="not-a-real-session")
    assert len(history) == 2


async def test_completion_request_starts_with_store_preamble(
    chat_service, completion_provider, db_session
):
    await chat_service.handle_message(db_session, message="What is your return policy?")

    messages = completion_provider.calls[0]
    assert messages[0] == {
        "role": "system",
        "content": "You are a support agent for Spur Gadgets. Returns: 30 days.",
    }
    assert messages[1:] == [{"role": "user", "content": "What is your return policy?"}]


async def test_context_window_keeps_last_ten_turns_in_order(
    chat_service, completion_provider, db_session
):
    repository = ChatRepository(db_session)
    session_id = await repository.create_conversation()
    for i in range(12):
        sender = Sender.USER if i % 2 == 0 else Sender.AI
        await repository.insert_message(
            conversation_id=session_id, sender=sender, text=f"turn {i}"
        )

    await chat_service.handle_message(db_session, message="latest", session_id=session_id)

    history = completion_provider.calls[0][1:]
    assert len(history) == CONTEXT_WINDOW
    assert [m["content"] for m in history] == [f"turn {i}" for i in range(3, 12)] + ["latest"]
    assert history[0]["role"] == "assistant"
    assert history[1]["role"] == "user"
    assert history[-1] == {"role": "user", "content": "latest"}


def test_non_user_senders_map_to_assistant():
    rows = [
        {"sender": "user", "text": "a"},
        {"sender": "ai", "text": "b"},
        {"sender": "agent", "text": "c"},
    ]
    assert [m["role"] for m in to_completion_messages(rows)] == [
        "user",
        "assistant",
        "assistant",
    ]


@pytest.mark.parametrize("empty_reply", ["", None])
async def test_empty_completion_falls_back(
    chat_service, completion_provider, db_session, empty_reply
):
    completion_provider.reply = empty_reply

    reply, session_id = await chat_service.handle_message(db_session, message="Hi")

    assert reply == FALLBACK_REPLY == "I am currently over capacity."
    history = await chat_service.get_history(db_session, session_id=session_id)
    assert history[-1] == {"sender": "ai", "text": FALLBACK_REPLY}


@pytest.mark.parametrize(
    "error",
    [
        RuntimeError("malformed response"),
        openai.APITimeoutError(request=httpx.Request("POST", "https://llm.test/chat")),
    ],
)
async def test_provider_failure_keeps_user_message_only(
    chat_service, completion_provider, db_session, error
):
    completion_provider.error = error
    repository = ChatRepository(db_session)
    session_id = await repository.create_conversation()

    with pytest.raises(CompletionUnavailableError) as exc_info:
        await chat_service.handle_message(db_session, message="Hi", session_id=session_id)

    assert exc_info.value.status_code == 503
    assert len(completion_provider.calls) == 1
    history = await chat_service.get_history(db_session, session_id=session_id)
    assert history == [{"sender": "user", "text": "Hi"}]


async def test_storage_failure_on_user_insert(chat_service, completion_provider, db_session, monkeypatch):
    async def failing_insert(self, **kwargs):
        raise OperationalError("INSERT INTO messages", {}, ConnectionError("connection lost"))

    monkeypatch.setattr(ChatRepository, "insert_message", failing_insert)

    with pytest.raises(StorageUnavailableError) as exc_info:
        await chat_service.handle_message(db_session, message="Hi", session_id="s-1")

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Database connection lost."
    assert completion_provider.calls == []


async def test_storage_failure_on_reply_insert_keeps_user_message(
    chat_service, db_session, monkeypatch
):
    original_insert = ChatRepository.insert_message

    async def insert_user_only(self, *, conversation_id, sender, text):
        if sender is Sender.AI:
            raise OperationalError("INSERT INTO messages", {}, ConnectionError("connection lost"))
        await original_insert(self, conversation_id=conversation_id, sender=sender, text=text)

    monkeypatch.setattr(ChatRepository, "insert_message", insert_user_only)
    session_id = await ChatRepository(db_session).create_conversation()

    with pytest.raises(StorageUnavailableError):
        await chat_service.handle_message(db_session, message="Hi", session_id=session_id)

    monkeypatch.undo()
    history = await chat_service.get_history(db_session, session_id=session_id)
    assert history == [{"sender": "user", "text": "Hi"}]


async def test_history_of_unknown_session_is_empty(chat_service, db_session):
    assert await chat_service.get_history(db_session, session_id="missing") == []


async def test_history_storage_failure(chat_service, db_session, monkeypatch):
    async def failing_select(self, **kwargs):
        raise OperationalError("SELECT", {}, ConnectionError("connection lost"))

    monkeypatch.setattr(ChatRepository, "select_messages", failing_select)

    with pytest.raises(StorageUnavailableError) as exc_info:
        await chat_service.get_history(db_session, session_id="s-1")

    assert exc_info.value.message == "Could not load history"
