"""Task manager for Microsoft To Do operations."""

import asyncio
from typing import List, Optional, Tuple
import logging

from ..core.exceptions import TaskNotFoundError
from ..core.models import BACK_REFERENCE_RE, RemoteTask, RemoteTaskDraft, TaskList
from .gateway import GraphGateway


class RemoteTaskManager:
    """Converts Graph payloads into domain records and resolves lists."""

    FALLBACK_LIST_NAME = "Tasks"

    def __init__(
        self,
        gateway: GraphGateway,
        default_list: str = "",
        logger: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway
        self.default_list = default_list
        self.logger = logger or logging.getLogger(__name__)

    async def list_lists(self) -> List[TaskList]:
        return [TaskList.from_graph(item) for item in await self.gateway.list_lists()]

    async def _list_tasks_for(self, task_list: TaskList) -> List[RemoteTask]:
        items = await self.gateway.list_tasks(task_list.id)
        self.logger.debug("Found %d tasks in list %s", len(items), task_list.name)
        return [RemoteTask.from_graph(item, task_list.id) for item in items]

    async def fetch_all(self) -> Tuple[List[TaskList], List[RemoteTask]]:
        """Fetch every list and, concurrently, every list's tasks.

        Any Graph failure propagates: a partial remote view would make
        linked tasks look deleted.
        """
        lists = await self.list_lists()
        per_list = await asyncio.gather(*(self._list_tasks_for(task_list) for task_list in lists))

        tasks = [task for list_tasks in per_list for task in list_tasks]
        self.logger.info("Total Microsoft To Do tasks found: %d in %d lists", len(tasks), len(lists))
        return lists, tasks

    def resolve_default_list(self, lists: List[TaskList]) -> TaskList:
        """
        Pick the list that receives tasks created from the vault.

        Preference order: configured list (id or display name), the
        well-known default list or a list named "Tasks", then the first list.

        Raises:
            TaskNotFoundError: If the account has no lists
        """
        if self.default_list:
            for task_list in lists:
                if self.default_list in (task_list.id, task_list.name):
                    return task_list
            self.logger.warning("Configured default list '%s' not found", self.default_list)

        for task_list in lists:
            if task_list.is_default or task_list.name == self.FALLBACK_LIST_NAME:
                return task_list

        if lists:
            return lists[0]

        raise TaskNotFoundError("No task lists found")

    async def create_task(self, list_id: str, draft: RemoteTaskDraft) -> RemoteTask:
        data = await self.gateway.create_task(list_id, draft.to_graph_payload())
        created = RemoteTask.from_graph(data, list_id)
        self.logger.debug("Created Microsoft To Do task %s in list %s", created.id, list_id)
        return created

    async def _owning_list(self, task: RemoteTask) -> str:
        if task.list_id:
            return task.list_id
        return await self.gateway.find_list_containing(task.id)

    async def update_task(self, task: RemoteTask, draft: RemoteTaskDraft) -> RemoteTask:
        """Patch title, status, importance and due date; the body is left alone
        so the back-reference survives."""
        list_id = await self._owning_list(task)
        data = await self.gateway.patch_task(list_id, task.id, draft.to_graph_payload(include_body=False))
        return RemoteTask.from_graph(data, list_id) if data else task

    async def set_back_reference(self, task: RemoteTask, document_path: str, line: int) -> None:
        """Record where the task lives in the vault, in the task body."""
        reference = f"Obsidian: {document_path}:{line}"
        remainder = BACK_REFERENCE_RE.sub('', task.body or '').strip()
        content = f"{reference}\n{remainder}" if remainder else reference

        list_id = await self._owning_list(task)
        await self.gateway.patch_task(
            list_id,
            task.id,
            {"body": {"content": content, "contentType": "text"}},
        )
