import json
import logging
import re

from ..context.daily import DailyContextProvider
from ..context.personas import TASK_INSTRUCTION, task_extraction_persona
from ..errors import ParseError
from ..llm.models import ChatMessage
from ..registry import ProviderRegistry
from ..storage.base import ChatRepository
from .base import PostProcessor, transcript

logger = logging.getLogger(__name__)

_ARRAY_START = re.compile(r"\[")
_decoder = json.JSONDecoder()


def _task_text(item: object) -> str | None:
    if isinstance(item, str):
        text = item
    elif isinstance(item, dict):
        text = item.get("task") or item.get("title")
    else:
        return None
    if not isinstance(text, str) or not text.strip():
        return None
    return text.strip()


def extract_json_array(text: str) -> list:
    """First top-level JSON array embedded in free text.

    Raises:
        ParseError: If no "[" starts a decodable array
    """
    for match in _ARRAY_START.finditer(text):
        try:
            value, _ = _decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, list):
            return value
    raise ParseError("no JSON array in model output")


def parse_task_list(text: str) -> list[str]:
    """Task titles from model output; anything unparseable yields []."""
    try:
        items = extract_json_array(text or "")
    except ParseError as e:
        logger.info("%s", e)
        return []
    return [t for t in (_task_text(item) for item in items) if t]


class TaskExtractor(PostProcessor):
    """Pulls new action items out of a conversation."""

    def __init__(
        self,
        repository: ChatRepository,
        registry: ProviderRegistry,
        daily: DailyContextProvider | None = None
    ):
        super().__init__(repository, registry)
        self._daily = daily

    async def extract(self, chat_id: int, date_string: str | None = None) -> list[str]:
        """Suggest tasks mentioned in a chat that are not already listed.

        Args:
            chat_id: Chat to analyze
            date_string: Day whose existing tasks are excluded (default: the chat's date)

        Returns:
            Task titles; empty on any failure
        """
        try:
            chat = await self._repository.get_chat(chat_id)
            if chat is None:
                logger.warning("Cannot extract tasks from chat %s: not found", chat_id)
                return []

            date_string = date_string or chat.date_string
            existing = []
            if self._daily is not None:
                existing = [t.title for t in await self._daily.get_tasks_for_day(date_string)]

            messages = await self._repository.get_chat_messages(chat_id)
            prompt = [
                ChatMessage(role="system", content=task_extraction_persona(existing)),
                *transcript(messages),
                ChatMessage(role="user", content=TASK_INSTRUCTION),
            ]
            output = await self._generate(prompt, chat.model)
        except Exception:
            logger.exception("Task extraction failed for chat %s", chat_id)
            return []

        return parse_task_list(output)
