"""Unit tests for the chat storage module."""
from datetime import datetime, timedelta, timezone

import pytest

from focu.errors import PersistenceError
from focu.storage import (
    Chat,
    ChatRepository,
    ChatType,
    InMemoryChatRepository,
    Message,
    MessageRole,
    create_chat_repository,
)
from focu.storage.sqlite import SQLiteChatRepository


@pytest.fixture(params=["memory", "sqlite"])
async def repo(request, tmp_path):
    """Connected repository for each backend."""
    if request.param == "sqlite":
        repository = create_chat_repository("sqlite", path=tmp_path / "chats.db")
    else:
        repository = create_chat_repository("memory")
    await repository.connect()
    yield repository
    await repository.disconnect()


def make_chat(created_at=None, **kwargs) -> Chat:
    fields = {
        "model": "llama3.2",
        "provider": "ollama",
        "type": ChatType.GENERAL,
        "date_string": "2025-01-15",
    }
    fields.update(kwargs)
    if created_at is not None:
        fields["created_at"] = created_at
    return Chat(**fields)


async def add(repo, chat_id, role, text) -> int:
    return await repo.add_message(Message(chat_id=chat_id, role=role, text=text))


class TestFactory:
    """Tests for create_chat_repository."""

    def test_repository_is_abstract(self):
        """Test that ChatRepository cannot be instantiated directly."""
        with pytest.raises(TypeError):
            ChatRepository()  # type: ignore

    def test_backends(self, tmp_path):
        """Test that each backend name maps to its class."""
        assert isinstance(create_chat_repository(), InMemoryChatRepository)
        sqlite = create_chat_repository("sqlite", path=tmp_path / "x.db")
        assert isinstance(sqlite, SQLiteChatRepository)
        assert sqlite.backend_type == "sqlite"

    def test_unknown_backend(self):
        """Test that unknown backends are rejected."""
        with pytest.raises(ValueError, match="Unsupported storage backend"):
            create_chat_repository("postgres")


class TestChats:
    """Tests for chat records on every backend."""

    @pytest.mark.asyncio
    async def test_add_and_get(self, repo):
        """Test that a chat round-trips with its fields."""
        chat_id = await repo.add_chat(make_chat(type=ChatType.YEAR_END, title="Review"))

        chat = await repo.get_chat(chat_id)

        assert chat.id == chat_id
        assert chat.type == ChatType.YEAR_END
        assert chat.title == "Review"
        assert chat.summary is None

    @pytest.mark.asyncio
    async def test_get_missing(self, repo):
        """Test that a missing chat is None."""
        assert await repo.get_chat(12345) is None

    @pytest.mark.asyncio
    async def test_update_chat(self, repo):
        """Test updating title, summary and model binding."""
        chat_id = await repo.add_chat(make_chat())
        stamp = datetime(2025, 1, 15, 20, 30, tzinfo=timezone.utc)

        await repo.update_chat(
            chat_id,
            title="Evening",
            summary="Talked about work.",
            summary_created_at=stamp,
            model="gpt-4o",
            provider="openai",
        )

        chat = await repo.get_chat(chat_id)
        assert chat.title == "Evening"
        assert chat.summary == "Talked about work."
        assert chat.summary_created_at == stamp
        assert (chat.model, chat.provider) == ("gpt-4o", "openai")

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, repo):
        """Test that immutable fields cannot be updated."""
        chat_id = await repo.add_chat(make_chat())
        with pytest.raises(ValueError):
            await repo.update_chat(chat_id, date_string="2030-01-01")

    @pytest.mark.asyncio
    async def test_previous_chats_by_recency(self, repo):
        """Test that previous chats are newest first and exclude one id."""
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        ids = [
            await repo.add_chat(make_chat(created_at=base + timedelta(days=i)))
            for i in range(7)
        ]

        previous = await repo.get_previous_chats(5, exclude_id=ids[-1])

        assert [c.id for c in previous] == list(reversed(ids[1:6]))

    @pytest.mark.asyncio
    async def test_delete_cascades(self, repo):
        """Test that deleting a chat deletes its messages."""
        chat_id = await repo.add_chat(make_chat())
        await add(repo, chat_id, MessageRole.USER, "hello")

        await repo.delete_chat(chat_id)

        assert await repo.get_chat(chat_id) is None
        assert await repo.get_chat_messages(chat_id) == []


class TestMessages:
    """Tests for message records on every backend."""

    @pytest.mark.asyncio
    async def test_ids_increase(self, repo):
        """Test that messages come back ordered by increasing id."""
        chat_id = await repo.add_chat(make_chat())
        ids = [await add(repo, chat_id, MessageRole.USER, str(i)) for i in range(5)]

        messages = await repo.get_chat_messages(chat_id)

        assert ids == sorted(ids)
        assert [m.id for m in messages] == ids
        assert [m.text for m in messages] == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_ids_never_reused(self, repo):
        """Test that a deleted message id is not handed out again."""
        chat_id = await repo.add_chat(make_chat())
        first = await add(repo, chat_id, MessageRole.USER, "a")
        second = await add(repo, chat_id, MessageRole.USER, "b")
        await repo.delete_message(second)

        third = await add(repo, chat_id, MessageRole.USER, "c")

        assert first < second < third

    @pytest.mark.asyncio
    async def test_update_message(self, repo):
        """Test that message text can be replaced."""
        chat_id = await repo.add_chat(make_chat())
        message_id = await add(repo, chat_id, MessageRole.ASSISTANT, "")

        await repo.update_message(message_id, "streamed")

        assert (await repo.get_chat_messages(chat_id))[0].text == "streamed"

    @pytest.mark.asyncio
    async def test_update_missing_message(self, repo):
        """Test that updating a missing message raises PersistenceError."""
        with pytest.raises(PersistenceError):
            await repo.update_message(999, "text")

    @pytest.mark.asyncio
    async def test_add_to_missing_chat(self, repo):
        """Test that messages need an existing chat."""
        with pytest.raises(PersistenceError):
            await add(repo, 999, MessageRole.USER, "orphan")

    @pytest.mark.asyncio
    async def test_recent_messages(self, repo):
        """Test that recent messages skip system and blank text."""
        chat_id = await repo.add_chat(make_chat())
        await add(repo, chat_id, MessageRole.SYSTEM, "persona")
        for i in range(12):
            await add(repo, chat_id, MessageRole.USER, f"m{i}")
        await add(repo, chat_id, MessageRole.ASSISTANT, " \n\t")

        recent = await repo.get_recent_chat_messages(chat_id, limit=10)
        everything = await repo.get_recent_chat_messages(chat_id)

        assert [m.text for m in recent] == [f"m{i}" for i in range(2, 12)]
        assert len(everything) == 12

    @pytest.mark.asyncio
    async def test_clear_keeps_system(self, repo):
        """Test that clearing a chat keeps its system message."""
        chat_id = await repo.add_chat(make_chat())
        await add(repo, chat_id, MessageRole.SYSTEM, "persona")
        await add(repo, chat_id, MessageRole.USER, "hello")
        await add(repo, chat_id, MessageRole.ASSISTANT, "hi")

        await repo.clear_chat(chat_id)

        messages = await repo.get_chat_messages(chat_id)
        assert [(m.role, m.text) for m in messages] == [(MessageRole.SYSTEM, "persona")]


class TestSQLite:
    """Tests specific to the SQLite backend."""

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        """Test that data survives reconnecting to the same file."""
        path = tmp_path / "focu.db"
        first = SQLiteChatRepository(path)
        await first.connect()
        chat_id = await first.add_chat(make_chat())
        await add(first, chat_id, MessageRole.USER, "remember me")
        await first.disconnect()

        second = SQLiteChatRepository(path)
        await second.connect()
        try:
            messages = await second.get_chat_messages(chat_id)
        finally:
            await second.disconnect()

        assert [m.text for m in messages] == ["remember me"]

    @pytest.mark.asyncio
    async def test_requires_connection(self, tmp_path):
        """Test that using a disconnected repository fails clearly."""
        repository = SQLiteChatRepository(tmp_path / "focu.db")
        with pytest.raises(PersistenceError, match="not connected"):
            await repository.get_chat(1)
