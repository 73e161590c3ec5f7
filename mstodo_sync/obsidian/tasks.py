"""Task manager for Obsidian vault operations."""

import asyncio
import os
from datetime import date
from typing import List, Optional, Tuple
import logging

from ..core.exceptions import DocumentError
from ..core.models import LocalTask
from ..utils.date import today_string
from .parser import add_task_to_content, parse_tasks, update_task_in_content
from .vault import VaultStore


class ObsidianTaskManager:
    """Collects tasks from a vault and rewrites individual task lines."""

    TASK_FILE_NAMES = ("Tasks.md", "tasks.md", "TODO.md", "todo.md")
    DEFAULT_TASK_FILE = "Tasks.md"
    DEFAULT_TASK_FILE_HEADER = "# Tasks\n\n"

    def __init__(self, store: VaultStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    async def _read_document_tasks(self, rel_path: str) -> List[LocalTask]:
        content = await self.store.read(rel_path)
        tasks = parse_tasks(content, rel_path)
        if tasks:
            self.logger.debug("Found %d tasks in %s", len(tasks), rel_path)
        return tasks

    async def list_tasks(self) -> List[LocalTask]:
        """Read every document concurrently and parse its tasks.

        A document that cannot be read is logged and skipped.
        """
        documents = await self.store.list_documents()
        results = await asyncio.gather(
            *(self._read_document_tasks(doc) for doc in documents),
            return_exceptions=True,
        )

        tasks: List[LocalTask] = []
        for doc, result in zip(documents, results):
            if isinstance(result, DocumentError):
                self.logger.warning("Failed to read %s: %s", doc, result)
                continue
            if isinstance(result, BaseException):
                raise result
            tasks.extend(result)

        self.logger.info("Total Obsidian tasks found: %d", len(tasks))
        return tasks

    async def rewrite_task(self, task: LocalTask, new_text: str, completed: bool) -> None:
        """Replace the line recorded for ``task`` with new text and checkbox state."""
        def transform(content: str) -> Tuple[str, None]:
            return update_task_in_content(content, task, new_text, completed), None

        await self.store.edit(task.file_path, transform)

    async def append_task(
        self,
        rel_path: str,
        text: str,
        completed: bool = False,
        guard_marker: Optional[str] = None,
    ) -> Optional[int]:
        """
        Append a task line to a document.

        Args:
            rel_path: Destination document
            text: Task text (without checkbox)
            completed: Checkbox state
            guard_marker: If this substring already appears in the document,
                nothing is written

        Returns:
            0-based line index of the new task, or None when the guard matched
        """
        def transform(content: str) -> Tuple[str, Optional[int]]:
            if guard_marker and guard_marker in content:
                return content, None
            return add_task_to_content(content, text, completed)

        return await self.store.edit(rel_path, transform)

    async def find_target_document(self, preferred: Optional[str] = None, today: Optional[date] = None) -> str:
        """
        Pick the document that receives tasks created from Microsoft To Do.

        Preference order: configured document, an existing tasks file, today's
        daily note, then a new ``Tasks.md``.
        """
        if preferred:
            if not await self.store.exists(preferred):
                await self.store.create(preferred, self.DEFAULT_TASK_FILE_HEADER)
            return preferred

        documents = await self.store.list_documents()
        by_name = {}
        for doc in documents:
            by_name.setdefault(os.path.basename(doc), doc)

        for file_name in self.TASK_FILE_NAMES:
            if file_name in by_name:
                return by_name[file_name]

        date_str = today_string(today)
        for doc in documents:
            if date_str in os.path.basename(doc):
                return doc

        return await self.store.create(self.DEFAULT_TASK_FILE, self.DEFAULT_TASK_FILE_HEADER)
