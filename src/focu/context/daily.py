"""Read-only access to a user's tasks and notes for one date."""

from abc import ABC, abstractmethod

from .models import Note, Task


class DailyContextProvider(ABC):
    """Looks up the tasks and notes recorded for a calendar date."""

    @abstractmethod
    async def get_tasks_for_day(self, date_string: str) -> list[Task]:
        """Tasks scheduled on the date, in display order."""

    @abstractmethod
    async def get_notes_for_day(self, date_string: str) -> list[Note]:
        """Notes written on the date."""


class InMemoryDailyContextProvider(DailyContextProvider):
    """Dict-backed provider, filled with add_task/add_note."""

    def __init__(self, tasks: list[Task] | None = None, notes: list[Note] | None = None):
        self._tasks: list[Task] = list(tasks or [])
        self._notes: list[Note] = list(notes or [])

    def add_task(self, task: Task) -> None:
        self._tasks.append(task)

    def add_note(self, note: Note) -> None:
        self._notes.append(note)

    async def get_tasks_for_day(self, date_string: str) -> list[Task]:
        return [t for t in self._tasks if t.date_string == date_string]

    async def get_notes_for_day(self, date_string: str) -> list[Note]:
        return [n for n in self._notes if n.date_string == date_string]
