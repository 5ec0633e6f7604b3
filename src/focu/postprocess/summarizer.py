import json
import logging

from ..context.personas import SUMMARY_PERSONA, SUMMARY_REQUEST
from ..llm.models import ChatMessage
from ..storage.models import MessageRole, utcnow
from .base import PostProcessor

logger = logging.getLogger(__name__)

MIN_MESSAGES = 2


class Summarizer(PostProcessor):
    """Writes a short summary of a chat, on demand."""

    async def summarize(self, chat_id: int) -> str | None:
        """Summarize a chat and store the result with its timestamp.

        Uses the chat's model when available, otherwise the registry's
        active model. Chats with fewer than two messages are skipped.

        Returns:
            The summary, or None if skipped or failed
        """
        try:
            chat = await self._repository.get_chat(chat_id)
            if chat is None:
                logger.warning("Cannot summarize chat %s: not found", chat_id)
                return None

            messages = await self._repository.get_chat_messages(chat_id)
            if len(messages) < MIN_MESSAGES:
                return None

            model = chat.model
            if not await self._registry.is_available(model):
                model = self._registry.active_model
            if not model:
                logger.warning("Cannot summarize chat %s: no model available", chat_id)
                return None

            conversation = [
                {"role": m.role.value, "content": m.text}
                for m in messages
                if m.role != MessageRole.SYSTEM
            ]
            prompt = [
                ChatMessage(role="system", content=SUMMARY_PERSONA),
                ChatMessage(
                    role="user",
                    content=SUMMARY_REQUEST.format(
                        conversation=json.dumps(conversation, indent=2, ensure_ascii=False)
                    ),
                ),
            ]
            summary = (await self._generate(prompt, model)).strip()
            await self._repository.update_chat(
                chat_id,
                summary=summary,
                summary_created_at=utcnow(),
            )
            return summary
        except Exception:
            logger.exception("Summarization failed for chat %s", chat_id)
            return None
