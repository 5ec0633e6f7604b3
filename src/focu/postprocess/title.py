import logging

from ..context.personas import TITLE_INSTRUCTION, TITLE_PERSONA
from ..llm.models import ChatMessage
from .base import PostProcessor, transcript

logger = logging.getLogger(__name__)

_QUOTES = "\"'`“”‘’"


def clean_title(text: str) -> str:
    """First non-empty line, without surrounding quotes or markdown markers."""
    for line in text.splitlines():
        line = line.strip().strip("#* ").strip(_QUOTES).strip()
        if line:
            return line
    return ""


class TitleGenerator(PostProcessor):
    """Names a chat after its first exchange."""

    async def generate(self, chat_id: int) -> str | None:
        """Generate and store a title for a chat.

        Returns:
            The title, or None if generation failed (the failure is logged)
        """
        try:
            chat = await self._repository.get_chat(chat_id)
            if chat is None:
                logger.warning("Cannot title chat %s: not found", chat_id)
                return None

            messages = await self._repository.get_chat_messages(chat_id)
            prompt = [
                ChatMessage(role="system", content=TITLE_PERSONA),
                *transcript(messages),
                ChatMessage(role="user", content=TITLE_INSTRUCTION),
            ]
            title = clean_title(await self._generate(prompt, chat.model))
            await self._repository.update_chat(chat_id, title=title)
            return title
        except Exception:
            logger.exception("Title generation failed for chat %s", chat_id)
            return None
