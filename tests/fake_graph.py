#!/usr/bin/env python3
"""
In-memory stand-in for GraphGateway.

Implements the subset of the gateway API that RemoteTaskManager calls and
stores tasks as Graph-shaped JSON dictionaries, so tests can assert on the
state "on the service" after a sync pass.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from mstodo_sync.core.exceptions import GraphAPIError, TaskNotFoundError


def now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.0000000Z")


class FakeGraphGateway:
    def __init__(self, lists: Optional[List[Dict[str, Any]]] = None):
        self.lists: List[Dict[str, Any]] = lists if lists is not None else [
            {"id": "list-tasks", "displayName": "Tasks", "wellknownListName": "defaultList"},
        ]
        self.tasks: Dict[str, Dict[str, Dict[str, Any]]] = {item["id"]: {} for item in self.lists}
        self.calls: List[tuple] = []
        # method name -> exception raised on every call
        self.failures: Dict[str, Exception] = {}
        # task ids whose PATCH fails
        self.failing_patches: Set[str] = set()
        self._counter = 0

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------
    def add_task(
        self,
        title: str,
        list_id: str = "list-tasks",
        task_id: Optional[str] = None,
        status: str = "notStarted",
        importance: str = "normal",
        due: Optional[str] = None,
        body: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._counter += 1
        task = {
            "id": task_id or f"task-{self._counter}",
            "title": title,
            "status": status,
            "importance": importance,
            "dueDateTime": {"dateTime": f"{due}T00:00:00.0000000", "timeZone": "UTC"} if due else None,
            "body": {"content": body or "", "contentType": "text"},
            "createdDateTime": now_iso(),
            "lastModifiedDateTime": now_iso(),
        }
        self.tasks.setdefault(list_id, {})[task["id"]] = task
        return task

    def task(self, task_id: str) -> Dict[str, Any]:
        for tasks in self.tasks.values():
            if task_id in tasks:
                return tasks[task_id]
        raise KeyError(task_id)

    def all_tasks(self) -> List[Dict[str, Any]]:
        return [task for tasks in self.tasks.values() for task in tasks.values()]

    def calls_to(self, method: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == method]

    def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method,) + args)
        if method in self.failures:
            raise self.failures[method]

    def _list(self, list_id: str) -> Dict[str, Dict[str, Any]]:
        if list_id not in self.tasks:
            raise GraphAPIError(404, "list not found", f"/me/todo/lists/{list_id}")
        return self.tasks[list_id]

    # ------------------------------------------------------------------
    # Gateway API
    # ------------------------------------------------------------------
    async def list_lists(self) -> List[Dict[str, Any]]:
        self._enter("list_lists")
        return copy.deepcopy(self.lists)

    async def list_tasks(self, list_id: str) -> List[Dict[str, Any]]:
        self._enter("list_tasks", list_id)
        return copy.deepcopy(list(self._list(list_id).values()))

    async def get_task(self, list_id: str, task_id: str) -> Dict[str, Any]:
        self._enter("get_task", list_id, task_id)
        tasks = self._list(list_id)
        if task_id not in tasks:
            raise GraphAPIError(404, "task not found")
        return copy.deepcopy(tasks[task_id])

    async def create_task(self, list_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._enter("create_task", list_id, copy.deepcopy(payload))
        tasks = self._list(list_id)
        self._counter += 1
        task = {
            "id": f"task-{self._counter}",
            "status": "notStarted",
            "importance": "normal",
            "dueDateTime": None,
            "body": {"content": "", "contentType": "text"},
            "createdDateTime": now_iso(),
            "lastModifiedDateTime": now_iso(),
        }
        task.update(copy.deepcopy(payload))
        tasks[task["id"]] = task
        return copy.deepcopy(task)

    async def patch_task(self, list_id: str, task_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._enter("patch_task", list_id, task_id, copy.deepcopy(payload))
        if task_id in self.failing_patches:
            raise GraphAPIError(503, "service unavailable")
        tasks = self._list(list_id)
        if task_id not in tasks:
            raise GraphAPIError(404, "task not found")
        tasks[task_id].update(copy.deepcopy(payload))
        tasks[task_id]["lastModifiedDateTime"] = now_iso()
        return copy.deepcopy(tasks[task_id])

    async def find_list_containing(self, task_id: str) -> str:
        self._enter("find_list_containing", task_id)
        for list_id, tasks in self.tasks.items():
            if task_id in tasks:
                return list_id
        raise TaskNotFoundError(f"Task {task_id} not found in any list")
