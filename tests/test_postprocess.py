"""Unit tests for title, summary and task post-processors."""
import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fakes import CLOUD_MODEL, LOCAL_MODEL
from focu.context import InMemoryDailyContextProvider, Task
from focu.errors import ParseError
from focu.postprocess import (
    Summarizer,
    TaskExtractor,
    TitleGenerator,
    clean_title,
    extract_json_array,
    parse_task_list,
)
from focu.storage import Chat, ChatType, Message, MessageRole

TODAY = "2025-01-15"


async def make_chat(repository, model=CLOUD_MODEL, turns=(("user", "I need to buy milk"), ("assistant", "Noted."))):
    chat_id = await repository.add_chat(Chat(
        model=model,
        provider="openrouter" if model == CLOUD_MODEL else "ollama",
        type=ChatType.MORNING,
        date_string=TODAY,
    ))
    await repository.add_message(Message(chat_id=chat_id, role=MessageRole.SYSTEM, text="persona"))
    for role, text in turns:
        await repository.add_message(Message(chat_id=chat_id, role=MessageRole(role), text=text))
    return chat_id


class TestTaskParsing:
    """Tests for extracting task lists from model output."""

    def test_array_after_prose(self):
        """Test that prose around the array is ignored."""
        output = "Buy milk\n[\"Buy milk\", \"Walk dog\"]\nthanks!"
        assert parse_task_list(output) == ["Buy milk", "Walk dog"]

    def test_no_array(self):
        """Test that prose without an array yields no tasks."""
        assert parse_task_list("I couldn't find any tasks.") == []

    def test_task_objects_flattened(self):
        """Test that {"task": ...} items become their text."""
        output = 'Here you go: [{"task": "Email Sam"}, {"title": "Book dentist"}, "Stretch", 3, {"x": 1}]'
        assert parse_task_list(output) == ["Email Sam", "Book dentist", "Stretch"]

    def test_markdown_fence(self):
        """Test arrays wrapped in a code fence."""
        output = '```json\n["Pay rent"]\n```'
        assert parse_task_list(output) == ["Pay rent"]

    def test_broken_brackets_before_array(self):
        """Test that an unparseable bracket does not hide a later array."""
        assert extract_json_array('See [note] then ["a"]') == ["a"]

    def test_extract_raises_without_array(self):
        """Test that extract_json_array reports missing arrays."""
        with pytest.raises(ParseError):
            extract_json_array("[not json")

    @given(st.lists(st.text(min_size=1, max_size=30).filter(lambda s: s.strip()), max_size=8))
    def test_embedded_array(self, tasks):
        """Property test: any JSON array of task strings survives surrounding prose."""
        output = f"Sure! {json.dumps(tasks)} Let me know if you need more."
        assert parse_task_list(output) == [t.strip() for t in tasks]


class TestCleanTitle:
    """Tests for title cleanup."""

    def test_strips_quotes_and_markdown(self):
        """Test that decorations around the title are removed."""
        assert clean_title('"Morning plans"') == "Morning plans"
        assert clean_title("## **Evening walk**\nextra") == "Evening walk"
        assert clean_title("\n\n  Plain  ") == "Plain"
        assert clean_title("") == ""


class TestTitleGenerator:
    """Tests for TitleGenerator."""

    @pytest.mark.asyncio
    async def test_generates_and_stores(self, repository, registry, cloud_adapter):
        """Test that the title is generated from the transcript and stored."""
        cloud_adapter.completion = '"Shopping list"'
        chat_id = await make_chat(repository)

        title = await TitleGenerator(repository, registry).generate(chat_id)

        assert title == "Shopping list"
        assert (await repository.get_chat(chat_id)).title == "Shopping list"
        prompt = cloud_adapter.generate_calls[0]
        assert prompt[0].role == "system"
        assert "persona" not in [m.content for m in prompt]
        assert prompt[1].content == "I need to buy milk"

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, repository, registry, cloud_adapter):
        """Test that a generation failure leaves the title unset."""
        cloud_adapter.completion = RuntimeError("offline")
        chat_id = await make_chat(repository)

        assert await TitleGenerator(repository, registry).generate(chat_id) is None
        assert (await repository.get_chat(chat_id)).title is None

    @pytest.mark.asyncio
    async def test_missing_chat(self, repository, registry):
        """Test that a missing chat yields None."""
        assert await TitleGenerator(repository, registry).generate(404) is None


class TestSummarizer:
    """Tests for Summarizer."""

    @pytest.mark.asyncio
    async def test_summarizes_with_chat_model(self, repository, registry, cloud_adapter):
        """Test that the summary and its timestamp are stored."""
        cloud_adapter.completion = "  The user plans to shop.  "
        chat_id = await make_chat(repository)

        summary = await Summarizer(repository, registry).summarize(chat_id)

        chat = await repository.get_chat(chat_id)
        assert summary == "The user plans to shop."
        assert chat.summary == summary
        assert chat.summary_created_at is not None
        request = cloud_adapter.generate_calls[0][-1].content
        assert '"content": "I need to buy milk"' in request
        assert "persona" not in request

    @pytest.mark.asyncio
    async def test_falls_back_to_active_model(self, repository, registry, local_adapter, cloud_adapter):
        """Test that an unavailable chat model falls back to the active model."""
        chat_id = await make_chat(repository, model=LOCAL_MODEL)
        local_adapter.installed.clear()

        assert await Summarizer(repository, registry).summarize(chat_id) is not None
        assert local_adapter.generate_calls == []
        assert len(cloud_adapter.generate_calls) == 1

    @pytest.mark.asyncio
    async def test_too_short(self, repository, registry, cloud_adapter):
        """Test that chats with fewer than two messages are skipped."""
        chat_id = await make_chat(repository, turns=())

        assert await Summarizer(repository, registry).summarize(chat_id) is None
        assert cloud_adapter.generate_calls == []

    @pytest.mark.asyncio
    async def test_no_model(self, repository, registry, local_adapter):
        """Test that summarizing without any usable model is skipped."""
        chat_id = await make_chat(repository, model=LOCAL_MODEL)
        local_adapter.installed.clear()
        registry.set_active_model(None)

        assert await Summarizer(repository, registry).summarize(chat_id) is None


class TestTaskExtractor:
    """Tests for TaskExtractor."""

    @pytest.mark.asyncio
    async def test_extracts_tasks(self, repository, registry, cloud_adapter):
        """Test the full extraction with existing tasks excluded in the prompt."""
        cloud_adapter.completion = "Buy milk\n[\"Buy milk\", \"Walk dog\"]\nthanks!"
        daily = InMemoryDailyContextProvider(tasks=[Task(title="Water plants", date_string=TODAY)])
        chat_id = await make_chat(repository)

        tasks = await TaskExtractor(repository, registry, daily).extract(chat_id)

        assert tasks == ["Buy milk", "Walk dog"]
        assert "Water plants" in cloud_adapter.generate_calls[0][0].content

    @pytest.mark.asyncio
    async def test_no_tasks(self, repository, registry, cloud_adapter):
        """Test that prose-only output yields an empty list."""
        cloud_adapter.completion = "I couldn't find any tasks."
        chat_id = await make_chat(repository)

        assert await TaskExtractor(repository, registry).extract(chat_id) == []

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, repository, registry, cloud_adapter):
        """Test that a generation failure yields an empty list."""
        cloud_adapter.completion = RuntimeError("offline")
        chat_id = await make_chat(repository)

        assert await TaskExtractor(repository, registry).extract(chat_id) == []
