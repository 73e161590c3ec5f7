"""Conflict resolution for linked task pairs."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from ..core.models import LedgerEntry, LocalTask, Priority, ProjectedState, RemoteTask
from ..obsidian.parser import clean_task_text


class Action(Enum):
    """What to do with a linked pair."""

    NONE = "none"
    PUSH_LOCAL = "push_local"    # Obsidian -> Microsoft To Do
    PUSH_REMOTE = "push_remote"  # Microsoft To Do -> Obsidian


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one pair.

    ``completed`` is the value to record in the ledger (None leaves the
    ledger untouched) and ``suppress`` marks the remote id as just written.
    """

    action: Action
    reason: str
    completed: Optional[bool] = None
    suppress: bool = False


class ConflictResolver:
    """Decides the sync direction for a linked (local, remote) pair.

    Modification timestamps are never consulted: clock skew and other
    editors make them unreliable. Direction comes from content precedence
    and from which side moved away from the ledger's last agreed state.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def project_local(task: LocalTask) -> ProjectedState:
        return ProjectedState(
            completed=task.completed,
            title=clean_task_text(task.text),
            priority=task.priority or Priority.NORMAL,
            due_date=task.due_date,
        )

    @staticmethod
    def project_remote(task: RemoteTask) -> ProjectedState:
        return ProjectedState(
            completed=task.completed,
            title=task.title.strip(),
            priority=task.importance,
            due_date=task.due_date,
        )

    def resolve(self, local: LocalTask, remote: RemoteTask, entry: Optional[LedgerEntry]) -> Resolution:
        local_state = self.project_local(local)
        remote_state = self.project_remote(remote)

        if local_state == remote_state:
            return Resolution(Action.NONE, "states match", completed=local_state.completed)

        completion_differs = local_state.completed != remote_state.completed
        content_differs = (
            local_state.title != remote_state.title
            or local_state.priority != remote_state.priority
            or local_state.due_date != remote_state.due_date
        )

        self.logger.debug(
            "Task %s differs: completion=%s content=%s local=%s remote=%s",
            remote.id,
            completion_differs,
            content_differs,
            local_state,
            remote_state,
        )

        if content_differs:
            return Resolution(
                Action.PUSH_LOCAL,
                "content changed",
                completed=local_state.completed,
                suppress=True,
            )

        if completion_differs:
            return self.resolve_completion(local_state.completed, remote_state.completed, entry)

        return Resolution(Action.NONE, "no actionable difference")

    def resolve_completion(
        self,
        local_completed: bool,
        remote_completed: bool,
        entry: Optional[LedgerEntry],
    ) -> Resolution:
        """Resolve a pair whose only difference is the completion flag."""
        if entry is None:
            return self._completion_bias(local_completed, remote_completed, "no previous state")

        local_changed = entry.completed != local_completed
        remote_changed = entry.completed != remote_completed

        if local_changed and not remote_changed:
            return Resolution(Action.PUSH_LOCAL, "Obsidian state changed", completed=local_completed, suppress=True)
        if remote_changed and not local_changed:
            return Resolution(Action.PUSH_REMOTE, "Microsoft To Do state changed", completed=remote_completed, suppress=True)
        if local_changed and remote_changed:
            return self._completion_bias(local_completed, remote_completed, "both changed")

        return Resolution(Action.NONE, "ledger matches both sides")

    @staticmethod
    def _completion_bias(local_completed: bool, remote_completed: bool, context: str) -> Resolution:
        """The side reporting completed wins."""
        if local_completed and not remote_completed:
            return Resolution(Action.PUSH_LOCAL, f"{context}: completion bias (Obsidian)", completed=True, suppress=True)
        if remote_completed and not local_completed:
            return Resolution(Action.PUSH_REMOTE, f"{context}: completion bias (Microsoft To Do)", completed=True, suppress=True)
        return Resolution(Action.NONE, f"{context}: nothing to resolve")
