"""One-shot generation tasks run on a chat after (or outside) a turn."""

from .summarizer import Summarizer
from .tasks import TaskExtractor, extract_json_array, parse_task_list
from .title import TitleGenerator, clean_title

__all__ = [
    "Summarizer",
    "TaskExtractor",
    "TitleGenerator",
    "clean_title",
    "extract_json_array",
    "parse_task_list",
]
