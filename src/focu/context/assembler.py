"""Builds the ordered prompt for one chat turn.

Order is fixed:
1. persisted system messages (the frozen persona)
2. user bio exchange, if a bio is set
3. memory exchange, if memory is on and there is something to inject
4. prior non-system messages with non-blank text
5. the new user message

The bio and memory blocks are injected as a user message followed by an
assistant acknowledgment, so instruction-tuned models treat them as
context that was already accepted rather than a question to answer.
"""

import json

from ..llm.models import ChatMessage
from ..storage.models import Chat, Message, MessageRole
from .memory import MemoryContextProvider
from .models import AssemblyOptions, MemoryContext

BIO_PROMPT = "Please keep in mind the following information about me when responding:\n\n{bio}"
BIO_ACK = "I understand. Let's proceed."

MEMORY_PROMPT = (
    "Here is the current context of other recent chats we've had. You should be aware of "
    "this context when responding. Keep in mind today's date and the dates of the previous "
    "chats: {context}"
)
MEMORY_ACK = (
    "I understand the context. I will focus on our current conversation and only refer to "
    "the context when it is relevant to this conversation. Let's proceed."
)


class ContextAssembler:
    """Merges persona, bio, memory and history into one message list.

    The assembled list is never truncated here: ``options.context_length``
    is only a hint forwarded to the adapter.
    """

    def __init__(self, memory: MemoryContextProvider | None = None):
        self._memory = memory

    async def build(
        self,
        chat: Chat,
        history: list[Message],
        new_message: str,
        options: AssemblyOptions | None = None
    ) -> list[ChatMessage]:
        """Assemble the prompt for a turn.

        Args:
            chat: Chat being replied in
            history: Persisted messages of the chat, excluding the new one
            new_message: Text the user just sent
            options: Bio, memory switch and context hint

        Returns:
            Ordered messages ready for an adapter
        """
        options = options or AssemblyOptions()
        memory = None
        if options.use_memory and self._memory is not None:
            memory = await self._memory.gather(chat)
        return assemble(history, new_message, options.user_bio, memory)


def assemble(
    history: list[Message],
    new_message: str,
    user_bio: str = "",
    memory: MemoryContext | None = None
) -> list[ChatMessage]:
    """Pure ordering step of ContextAssembler.build."""
    messages = [
        ChatMessage(role=m.role.value, content=m.text)
        for m in history
        if m.role == MessageRole.SYSTEM
    ]

    if user_bio.strip():
        messages.append(ChatMessage(role="user", content=BIO_PROMPT.format(bio=user_bio)))
        messages.append(ChatMessage(role="assistant", content=BIO_ACK))

    if memory is not None and not memory.is_empty:
        context = json.dumps(memory.to_payload(), indent=2, ensure_ascii=False)
        messages.append(ChatMessage(role="user", content=MEMORY_PROMPT.format(context=context)))
        messages.append(ChatMessage(role="assistant", content=MEMORY_ACK))

    messages.extend(
        ChatMessage(role=m.role.value, content=m.text)
        for m in history
        if m.role != MessageRole.SYSTEM and m.text.strip()
    )
    messages.append(ChatMessage(role="user", content=new_message))
    return messages
