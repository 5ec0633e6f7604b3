"""Prompt context assembly for focu.

Combines the frozen persona, user bio, cross-chat memory and transcript
into the ordered message list sent to a model.
"""

from .assembler import ContextAssembler, assemble
from .daily import DailyContextProvider, InMemoryDailyContextProvider
from .memory import MemoryContextProvider
from .models import AssemblyOptions, MemoryContext, Note, Task
from .personas import resolve_persona, session_opener

__all__ = [
    "AssemblyOptions",
    "ContextAssembler",
    "DailyContextProvider",
    "InMemoryDailyContextProvider",
    "MemoryContext",
    "MemoryContextProvider",
    "Note",
    "Task",
    "assemble",
    "resolve_persona",
    "session_opener",
]
