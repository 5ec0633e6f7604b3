"""SQLite chat repository.

Provides persistent chat storage using a SQLite database file.
Uses aiosqlite for async access.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from ..errors import PersistenceError
from .base import ChatRepository
from .models import CHAT_UPDATABLE_FIELDS, Chat, ChatType, Message, MessageRole

_CHAT_COLUMNS = "id, model, provider, type, date_string, title, summary, summary_created_at, created_at"
_MESSAGE_COLUMNS = "id, chat_id, role, text, created_at"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _row_to_chat(row: tuple) -> Chat:
    chat_id, model, provider, chat_type, date_string, title, summary, summary_at, created_at = row
    return Chat(
        id=chat_id,
        model=model,
        provider=provider,
        type=ChatType(chat_type),
        date_string=date_string,
        title=title,
        summary=summary,
        summary_created_at=datetime.fromisoformat(summary_at) if summary_at else None,
        created_at=datetime.fromisoformat(created_at),
    )


def _row_to_message(row: tuple) -> Message:
    message_id, chat_id, role, text, created_at = row
    return Message(
        id=message_id,
        chat_id=chat_id,
        role=MessageRole(role),
        text=text,
        created_at=datetime.fromisoformat(created_at),
    )


class SQLiteChatRepository(ChatRepository):
    """SQLite-backed chat repository.

    Stores chats and messages in a SQLite database file. Message ids come
    from an AUTOINCREMENT key, so they never decrease or get reused.
    Deleting a chat cascades to its messages.
    """

    def __init__(self, path: str | Path = "./focu.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise PersistenceError("repository is not connected")
        return self._connection

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_schema()

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS chats (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                model TEXT NOT NULL,
                provider TEXT NOT NULL,
                type TEXT NOT NULL,
                date_string TEXT NOT NULL,
                title TEXT,
                summary TEXT,
                summary_created_at TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                chat_id INTEGER NOT NULL,
                role TEXT NOT NULL,
                text TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                FOREIGN KEY (chat_id) REFERENCES chats(id) ON DELETE CASCADE
            )
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_chat
            ON messages(chat_id, id)
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_chats_created
            ON chats(created_at)
        """)

        await self._conn.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def add_chat(self, chat: Chat) -> int:
        cursor = await self._conn.execute(
            """
            INSERT INTO chats
            (model, provider, type, date_string, title, summary, summary_created_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                chat.model,
                chat.provider,
                chat.type.value,
                chat.date_string,
                chat.title,
                chat.summary,
                _iso(chat.summary_created_at),
                chat.created_at.isoformat(),
            )
        )
        await self._conn.commit()
        return cursor.lastrowid

    async def get_chat(self, chat_id: int) -> Chat | None:
        async with self._conn.execute(
            f"SELECT {_CHAT_COLUMNS} FROM chats WHERE id = ?",
            (chat_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_chat(row) if row else None

    async def update_chat(self, chat_id: int, **fields: Any) -> None:
        unknown = set(fields) - CHAT_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update chat fields: {sorted(unknown)}")
        if not fields:
            return

        columns = sorted(fields)
        values = [
            _iso(fields[c]) if c == "summary_created_at" else fields[c]
            for c in columns
        ]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        cursor = await self._conn.execute(
            f"UPDATE chats SET {assignments} WHERE id = ?",
            (*values, chat_id)
        )
        await self._conn.commit()
        if cursor.rowcount == 0:
            raise PersistenceError(f"chat {chat_id} not found")

    async def delete_chat(self, chat_id: int) -> None:
        await self._conn.execute("DELETE FROM chats WHERE id = ?", (chat_id,))
        await self._conn.commit()

    async def get_previous_chats(
        self,
        limit: int = 5,
        exclude_id: int | None = None
    ) -> list[Chat]:
        async with self._conn.execute(
            f"""
            SELECT {_CHAT_COLUMNS} FROM chats
            WHERE id IS NOT ?
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            (exclude_id, limit)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_chat(row) for row in rows]

    async def add_message(self, message: Message) -> int:
        try:
            cursor = await self._conn.execute(
                "INSERT INTO messages (chat_id, role, text, created_at) VALUES (?, ?, ?, ?)",
                (message.chat_id, message.role.value, message.text, message.created_at.isoformat())
            )
        except aiosqlite.IntegrityError as e:
            raise PersistenceError(f"chat {message.chat_id} not found") from e
        await self._conn.commit()
        return cursor.lastrowid

    async def update_message(self, message_id: int, text: str) -> None:
        cursor = await self._conn.execute(
            "UPDATE messages SET text = ? WHERE id = ?",
            (text, message_id)
        )
        await self._conn.commit()
        if cursor.rowcount == 0:
            raise PersistenceError(f"message {message_id} not found")

    async def delete_message(self, message_id: int) -> None:
        await self._conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
        await self._conn.commit()

    async def get_chat_messages(self, chat_id: int) -> list[Message]:
        async with self._conn.execute(
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE chat_id = ? ORDER BY id ASC",
            (chat_id,)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_message(row) for row in rows]

    async def get_recent_chat_messages(
        self,
        chat_id: int,
        limit: int | None = None
    ) -> list[Message]:
        async with self._conn.execute(
            f"""
            SELECT {_MESSAGE_COLUMNS} FROM messages
            WHERE chat_id = ? AND role != ? AND TRIM(text, ' ' || char(9) || char(10) || char(13)) != ''
            ORDER BY id DESC
            LIMIT ?
            """,
            (chat_id, MessageRole.SYSTEM.value, -1 if limit is None else limit)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_message(row) for row in reversed(rows)]

    async def clear_chat(self, chat_id: int) -> None:
        await self._conn.execute(
            "DELETE FROM messages WHERE chat_id = ? AND role != ?",
            (chat_id, MessageRole.SYSTEM.value)
        )
        await self._conn.commit()

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
