"""Conversation session: one user turn from typed text to persisted reply.

A turn persists the user message and an empty assistant placeholder,
assembles the prompt, then streams the reply into the placeholder with
one write per chunk. Each chat has its own cancellation token and
loading flag; turns in different chats share no mutable state.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import aclosing
from datetime import date
from typing import Any

from ..cancellation import CancellationToken
from ..config import ERROR_REPLY_TEXT, ChatSettings
from ..context.assembler import ContextAssembler
from ..context.memory import MemoryContextProvider
from ..context.models import AssemblyOptions
from ..context.personas import resolve_persona, session_opener
from ..errors import ConfigurationError
from ..llm.models import ChatMessage, StreamingResponse
from ..postprocess.title import TitleGenerator
from ..registry import ProviderRegistry, ResolvedModel
from ..storage.base import ChatRepository
from ..storage.models import Chat, ChatType, Message, MessageRole

logger = logging.getLogger(__name__)

# Message counts (system message included) at which a missing title is generated
TITLE_TRIGGER_MIN = 2
TITLE_TRIGGER_MAX = 3


async def iterate_until_cancelled(
    stream: StreamingResponse,
    token: CancellationToken
) -> AsyncIterator[str]:
    """Yield chunks until the stream ends or the token is cancelled.

    Cancellation also interrupts a chunk that is still pending, so a
    stalled backend cannot keep a stopped turn alive.
    """
    waiter = asyncio.ensure_future(token.wait())
    pending = None
    try:
        while not token.cancelled:
            pending = asyncio.ensure_future(stream.__anext__())
            await asyncio.wait({pending, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if not pending.done():
                pending.cancel()
                await asyncio.wait({pending})
            if pending.cancelled():
                return
            if token.cancelled:
                # Retrieve and drop whatever arrived after the stop
                pending.exception()
                return
            try:
                chunk = pending.result()
            except StopAsyncIteration:
                return
            yield chunk
    finally:
        waiter.cancel()
        if pending is not None and not pending.done():
            pending.cancel()


class ConversationSession:
    """Orchestrates chat turns against any configured provider.

    Example:
        session = ConversationSession(registry, repository, memory, settings)
        chat_id = await session.create_chat(ChatType.MORNING)
        await session.send(chat_id, "Hello")
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        repository: ChatRepository,
        memory: MemoryContextProvider | None = None,
        settings: ChatSettings | None = None,
        title_generator: TitleGenerator | None = None,
    ):
        """Initialize session.

        Args:
            registry: Resolves chat models to adapters
            repository: Durable chat storage
            memory: Source of daily context and chat history (None disables memory)
            settings: Bio, memory switch, context hint and language
            title_generator: Used after the first exchange of an untitled chat
        """
        self._registry = registry
        self._repository = repository
        self._assembler = ContextAssembler(memory)
        self._settings = settings or ChatSettings()
        self._titles = title_generator or TitleGenerator(repository, registry)
        self._tokens: dict[int, CancellationToken] = {}
        self._loading: set[int] = set()
        self._turn_messages: dict[CancellationToken, set[int]] = {}
        self._background: set[asyncio.Task] = set()

    @property
    def settings(self) -> ChatSettings:
        return self._settings

    @settings.setter
    def settings(self, value: ChatSettings) -> None:
        self._settings = value

    # Chat lifecycle

    async def create_chat(
        self,
        chat_type: ChatType = ChatType.GENERAL,
        date_string: str | None = None,
        model: str | None = None,
    ) -> int:
        """Create a chat and freeze its persona as the leading system message.

        Args:
            chat_type: Selects the persona
            date_string: Calendar date of the chat (default: today)
            model: Model to bind (default: the registry's active model)

        Raises:
            ConfigurationError: If no model is given or selected, or its
                provider is unknown
        """
        model = model or self._registry.active_model
        if not model:
            raise ConfigurationError("no active model selected")
        provider = self._registry.model_provider(model)
        if provider is None:
            raise ConfigurationError(f"could not determine provider for model '{model}'")

        persona = resolve_persona(chat_type, self._settings.language, self._settings.generic_template)
        chat_id = await self._repository.add_chat(Chat(
            model=model,
            provider=provider.value,
            type=chat_type,
            date_string=date_string or date.today().isoformat(),
        ))
        await self._repository.add_message(Message(
            chat_id=chat_id,
            role=MessageRole.SYSTEM,
            text=persona,
        ))
        logger.info("Created %s chat %s on %s", chat_type.value, chat_id, model)
        return chat_id

    async def start_session(self, chat_id: int) -> int | None:
        """Open a guided session by sending its opening line."""
        chat = await self._repository.get_chat(chat_id)
        if chat is None:
            logger.warning("Cannot start session: chat %s not found", chat_id)
            return None
        return await self.send(chat_id, session_opener(chat.type))

    async def clear_chat(self, chat_id: int) -> None:
        """Stop any reply and delete every non-system message."""
        self.stop_reply(chat_id)
        await self._repository.clear_chat(chat_id)

    async def delete_chat(self, chat_id: int) -> None:
        """Stop any reply and delete the chat with its messages."""
        self.stop_reply(chat_id)
        await self._repository.delete_chat(chat_id)

    async def delete_message(self, message_id: int) -> None:
        """Delete one message, stopping the turn that is writing it."""
        for token, ids in list(self._turn_messages.items()):
            if message_id in ids:
                token.cancel()
        await self._repository.delete_message(message_id)

    # Turns

    def is_loading(self, chat_id: int) -> bool:
        """Whether a reply is being generated for this chat."""
        return chat_id in self._loading

    def stop_reply(self, chat_id: int) -> None:
        """Cancel the chat's in-flight reply. No-op if there is none."""
        token = self._tokens.get(chat_id)
        if token is not None and token.cancel():
            logger.debug("Stop requested for chat %s", chat_id)

    async def send(self, chat_id: int, text: str) -> int | None:
        """Run one turn: persist the message and stream the reply into storage.

        Never raises. Failures while replying are written into the
        assistant message as a short error text.

        Returns:
            The assistant message id, or None when the turn was abandoned
            because neither the chat's model nor the active model is usable,
            or was stopped before its reply placeholder was written
        """
        token = self._issue_token(chat_id)

        try:
            chat, resolved = await self._resolve_target(chat_id)
        except ConfigurationError as e:
            # Abandoned turns leave no trace in the chat
            logger.warning("Send to chat %s abandoned: %s", chat_id, e)
            self._release(chat_id, token)
            return None
        except Exception:
            logger.exception("Send to chat %s abandoned", chat_id)
            self._release(chat_id, token)
            return None

        if token.cancelled:
            logger.debug("Send to chat %s stopped before it started", chat_id)
            self._release(chat_id, token)
            return None

        self._loading.add(chat_id)
        assistant_id = None
        try:
            user_id = await self._repository.add_message(Message(
                chat_id=chat_id,
                role=MessageRole.USER,
                text=text,
            ))
            self._turn_messages[token] = {user_id}
            if token.cancelled:
                return None
            assistant_id = await self._repository.add_message(Message(
                chat_id=chat_id,
                role=MessageRole.ASSISTANT,
                text="",
            ))
            self._turn_messages[token].add(assistant_id)

            history = [
                m for m in await self._repository.get_chat_messages(chat_id)
                if m.id not in (user_id, assistant_id)
            ]
            options = AssemblyOptions(
                user_bio=self._settings.user_bio,
                use_memory=self._settings.use_ai_memory,
                context_length=self._registry.context_length(
                    chat.model, self._settings.context_window_size
                ),
            )
            prompt = await self._assembler.build(chat, history, text, options)
            await self._stream_reply(resolved, prompt, options, token, assistant_id)
        except asyncio.CancelledError:
            token.cancel()
            raise
        except Exception:
            if token.cancelled:
                logger.debug("Reply in chat %s failed after stop", chat_id, exc_info=True)
            else:
                logger.exception("Reply failed in chat %s", chat_id)
                await self._write_error(chat_id, assistant_id)
        finally:
            self._turn_messages.pop(token, None)
            self._release(chat_id, token)

        await self._after_turn(chat_id)
        return assistant_id

    async def regenerate_reply(self, chat_id: int) -> int | None:
        """Drop the last exchange and send the last user message again."""
        self.stop_reply(chat_id)
        messages = await self._repository.get_chat_messages(chat_id)
        if not messages:
            return None

        last = messages[-1]
        if last.role == MessageRole.ASSISTANT:
            if len(messages) < 2 or messages[-2].role != MessageRole.USER:
                return None
            user_message = messages[-2]
            await self._repository.delete_message(last.id)
        elif last.role == MessageRole.USER:
            user_message = last
        else:
            return None

        await self._repository.delete_message(user_message.id)
        return await self.send(chat_id, user_message.text)

    async def _resolve_target(self, chat_id: int) -> tuple[Chat, ResolvedModel]:
        """Chat and adapter for a turn, falling back to the active model.

        Raises:
            ConfigurationError: If no usable model is left
        """
        chat = await self._repository.get_chat(chat_id)
        if chat is None:
            raise ConfigurationError(f"chat {chat_id} not found")

        if not await self._registry.is_available(chat.model):
            fallback = self._registry.active_model
            if not fallback or not await self._registry.is_available(fallback):
                raise ConfigurationError(
                    f"model '{chat.model}' is unavailable and no active model can replace it"
                )
            provider = self._registry.model_provider(fallback)
            logger.info("Chat %s moved from %s to %s", chat_id, chat.model, fallback)
            await self._repository.update_chat(chat_id, model=fallback, provider=provider.value)
            chat = chat.model_copy(update={"model": fallback, "provider": provider.value})

        return chat, await self._registry.resolve(chat.model)

    async def _stream_reply(
        self,
        resolved: ResolvedModel,
        prompt: list[ChatMessage],
        options: AssemblyOptions,
        token: CancellationToken,
        assistant_id: int,
    ) -> str:
        stream = await resolved.adapter.stream(
            prompt,
            resolved.model.id,
            cancel_token=token,
            context_length=options.context_length,
        )
        content = ""
        try:
            async with aclosing(iterate_until_cancelled(stream, token)) as chunks:
                async for chunk in chunks:
                    if token.cancelled:
                        break
                    content += chunk
                    await self._repository.update_message(assistant_id, content)
        finally:
            await stream.aclose()

        if token.cancelled:
            logger.debug("Reply stopped after %d characters", len(content))
            return content

        await self._repository.update_message(assistant_id, content)
        return content

    async def _write_error(self, chat_id: int, assistant_id: int | None) -> None:
        if assistant_id is None:
            return
        try:
            await self._repository.update_message(assistant_id, ERROR_REPLY_TEXT)
        except Exception:
            logger.exception("Could not record reply error in chat %s", chat_id)

    async def _after_turn(self, chat_id: int) -> None:
        try:
            chat = await self._repository.get_chat(chat_id)
            if chat is None or chat.title:
                return
            count = len(await self._repository.get_chat_messages(chat_id))
        except Exception:
            logger.exception("Post-turn check failed for chat %s", chat_id)
            return
        if TITLE_TRIGGER_MIN <= count <= TITLE_TRIGGER_MAX:
            self._spawn(self._titles.generate(chat_id))

    # Per-chat state

    def _issue_token(self, chat_id: int) -> CancellationToken:
        previous = self._tokens.get(chat_id)
        if previous is not None and previous.cancel():
            logger.debug("Superseded in-flight reply in chat %s", chat_id)
        token = CancellationToken()
        self._tokens[chat_id] = token
        return token

    def _release(self, chat_id: int, token: CancellationToken) -> None:
        # A superseding turn owns the chat's state from here on
        if self._tokens.get(chat_id) is token:
            del self._tokens[chat_id]
            self._loading.discard(chat_id)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_background_tasks(self) -> None:
        """Wait for post-turn work such as title generation."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def close(self) -> None:
        """Stop every reply and let background work finish."""
        for token in list(self._tokens.values()):
            token.cancel()
        await self.wait_for_background_tasks()
