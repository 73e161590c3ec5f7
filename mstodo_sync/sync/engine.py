"""Main sync engine orchestrating the synchronization process."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple
import logging

from ..core.exceptions import GraphAPIError, MSToDoSyncError, SyncError
from ..core.models import LocalTask, RemoteTask, TaskList
from ..obsidian.parser import (
    append_remote_link,
    merge_task,
    remote_link,
    strip_remote_link,
    to_local_text,
    to_remote_draft,
)
from ..obsidian.tasks import ObsidianTaskManager
from ..todo.tasks import RemoteTaskManager
from .ledger import SyncLedger
from .resolver import Action, ConflictResolver


# Write operation kinds
PUSH_LOCAL = "push_local"
PUSH_REMOTE = "push_remote"
CREATE_REMOTE = "create_remote"
CREATE_LOCAL = "create_local"
UNLINK = "unlink"

# Outcomes reported by write operations
APPLIED = "applied"
DUPLICATE = "duplicate"


@dataclass
class SyncResult:
    """Counters for one sync pass."""

    local_tasks: int = 0
    remote_tasks: int = 0
    pairs: int = 0
    remote_updated: int = 0
    local_updated: int = 0
    remote_created: int = 0
    local_created: int = 0
    unlinked: int = 0
    skipped_suppressed: int = 0
    skipped_duplicates: int = 0
    failures: int = 0
    dry_run: bool = False
    planned: List[str] = field(default_factory=list)

    @property
    def total_writes(self) -> int:
        return (
            self.remote_updated
            + self.local_updated
            + self.remote_created
            + self.local_created
            + self.unlinked
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_tasks": self.local_tasks,
            "remote_tasks": self.remote_tasks,
            "pairs": self.pairs,
            "remote_updated": self.remote_updated,
            "local_updated": self.local_updated,
            "remote_created": self.remote_created,
            "local_created": self.local_created,
            "unlinked": self.unlinked,
            "skipped_suppressed": self.skipped_suppressed,
            "skipped_duplicates": self.skipped_duplicates,
            "failures": self.failures,
            "dry_run": self.dry_run,
        }


@dataclass
class WriteOperation:
    """One planned write-back.

    ``ledger_completed`` and ``suppress`` are committed only after ``run``
    succeeds.
    """

    kind: str
    description: str
    run: Callable[[], Awaitable[str]]
    remote_id: Optional[str] = None
    ledger_completed: Optional[bool] = None
    suppress: bool = False


def _once(factory: Callable[[], Awaitable[Any]]) -> Callable[[], Awaitable[Any]]:
    """Share one evaluation of ``factory`` between every awaiting operation."""
    future: Optional[asyncio.Future] = None

    async def get() -> Any:
        nonlocal future
        if future is None:
            future = asyncio.ensure_future(factory())
        return await future

    return get


class SyncEngine:
    """Main engine for bidirectional task synchronization.

    Holds the last-known-state ledger and the suppression set for the
    lifetime of the process. One engine must not run two passes at once;
    the caller serializes passes.
    """

    def __init__(
        self,
        obs_manager: ObsidianTaskManager,
        remote_manager: RemoteTaskManager,
        read_delay: float = 0.5,
        suppression_window: float = 2.0,
        target_document: Optional[str] = None,
        ledger: Optional[SyncLedger] = None,
        resolver: Optional[ConflictResolver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.obs_manager = obs_manager
        self.remote_manager = remote_manager
        self.read_delay = read_delay
        self.suppression_window = suppression_window
        self.target_document = target_document
        self.logger = logger or logging.getLogger(__name__)
        self.ledger = ledger or SyncLedger(logger=self.logger)
        self.resolver = resolver or ConflictResolver(logger=self.logger)

    async def perform_sync(self, dry_run: bool = False) -> SyncResult:
        """
        Run one reconciliation pass.

        Args:
            dry_run: Plan and report writes without performing them

        Returns:
            SyncResult with per-pass counters

        Raises:
            SyncError: If Microsoft To Do could not be indexed
        """
        self.logger.info("Starting sync (dry_run=%s)", dry_run)
        result = SyncResult(dry_run=dry_run)

        if self.read_delay > 0:
            await asyncio.sleep(self.read_delay)

        try:
            local_tasks, (lists, remote_tasks) = await asyncio.gather(
                self.obs_manager.list_tasks(),
                self.remote_manager.fetch_all(),
            )
        except GraphAPIError as exc:
            raise SyncError(f"Failed to index Microsoft To Do: {exc}") from exc

        result.local_tasks = len(local_tasks)
        result.remote_tasks = len(remote_tasks)

        try:
            operations = self._plan(local_tasks, lists, remote_tasks, result, dry_run)
            result.planned = [op.description for op in operations]

            if dry_run:
                for op in operations:
                    self.logger.info("Would %s", op.description)
            else:
                await self._execute(operations, result)
        finally:
            self.ledger.schedule_release(self.suppression_window)

        self.logger.info("Sync complete: %s", result.to_dict())
        return result

    def close(self) -> None:
        """Cancel the pending suppression release timer."""
        self.ledger.cancel_release()

    # ------------------------------------------------------------------
    # Planning (sequential)
    # ------------------------------------------------------------------
    def _plan(
        self,
        local_tasks: List[LocalTask],
        lists: List[TaskList],
        remote_tasks: List[RemoteTask],
        result: SyncResult,
        dry_run: bool,
    ) -> List[WriteOperation]:
        remote_by_id: Dict[str, RemoteTask] = {}
        for remote in remote_tasks:
            remote_by_id[remote.id] = remote

        local_by_remote_id: Dict[str, LocalTask] = {}
        for local in local_tasks:
            if local.remote_id:
                if local.remote_id in local_by_remote_id:
                    self.logger.warning(
                        "Task %s is linked from more than one line; using %s",
                        local.remote_id,
                        local.location,
                    )
                local_by_remote_id[local.remote_id] = local

        operations: List[WriteOperation] = []
        refreshes: List[Tuple[str, bool]] = []
        default_list = _once(self._default_list_factory(lists))

        for local in local_tasks:
            if not local.remote_id:
                operations.append(self._create_remote_op(local, default_list))
                continue

            remote = remote_by_id.get(local.remote_id)
            if remote is None:
                operations.append(self._unlink_op(local))
                continue

            if local_by_remote_id[local.remote_id] is not local:
                continue

            result.pairs += 1
            op = self._resolve_pair(local, remote, result, refreshes)
            if op:
                operations.append(op)

        remote_only = [remote for remote_id, remote in remote_by_id.items() if remote_id not in local_by_remote_id]
        if remote_only:
            creation_context = _once(self._creation_context)
            for remote in remote_only:
                operations.append(self._create_local_op(remote, creation_context))

        if not dry_run:
            for remote_id, completed in refreshes:
                self.ledger.record(remote_id, completed)

        self.logger.debug("Planned %d write operations", len(operations))
        return operations

    def _resolve_pair(
        self,
        local: LocalTask,
        remote: RemoteTask,
        result: SyncResult,
        refreshes: List[Tuple[str, bool]],
    ) -> Optional[WriteOperation]:
        if self.ledger.is_suppressed(remote.id):
            self.logger.debug("Skipping %s: written during the suppression window", remote.id)
            result.skipped_suppressed += 1
            return None

        resolution = self.resolver.resolve(local, remote, self.ledger.get(remote.id))

        if resolution.action == Action.NONE:
            if resolution.completed is not None:
                refreshes.append((remote.id, resolution.completed))
            return None

        self.logger.debug("Resolved %s at %s: %s", remote.id, local.location, resolution.reason)

        if resolution.action == Action.PUSH_LOCAL:
            draft = to_remote_draft(local)

            async def push_local() -> str:
                await self.remote_manager.update_task(remote, draft)
                return APPLIED

            return WriteOperation(
                kind=PUSH_LOCAL,
                description=f"update Microsoft To Do task '{draft.title}' ({resolution.reason})",
                run=push_local,
                remote_id=remote.id,
                ledger_completed=resolution.completed,
                suppress=resolution.suppress,
            )

        merged = merge_task(local, remote)

        async def push_remote() -> str:
            await self.obs_manager.rewrite_task(local, merged.text, merged.completed)
            return APPLIED

        return WriteOperation(
            kind=PUSH_REMOTE,
            description=f"update Obsidian task at {local.location} ({resolution.reason})",
            run=push_remote,
            remote_id=remote.id,
            ledger_completed=resolution.completed,
            suppress=resolution.suppress,
        )

    def _default_list_factory(self, lists: List[TaskList]) -> Callable[[], Awaitable[TaskList]]:
        async def resolve() -> TaskList:
            task_list = self.remote_manager.resolve_default_list(lists)
            self.logger.debug("New Microsoft To Do tasks go to list '%s'", task_list.name)
            return task_list

        return resolve

    def _create_remote_op(self, local: LocalTask, default_list: Callable[[], Awaitable[TaskList]]) -> WriteOperation:
        draft = to_remote_draft(local)

        async def create_remote() -> str:
            task_list = await default_list()
            created = await self.remote_manager.create_task(task_list.id, draft)
            await self.obs_manager.rewrite_task(local, append_remote_link(local.text, created.id), local.completed)
            self.logger.info("Created Microsoft To Do task %s for %s", created.id, local.location)
            return APPLIED

        return WriteOperation(
            kind=CREATE_REMOTE,
            description=f"create Microsoft To Do task '{draft.title}' from {local.location}",
            run=create_remote,
        )

    async def _creation_context(self) -> Tuple[Set[str], str]:
        """Fresh set of linked ids plus the document receiving new tasks."""
        linked = {task.remote_id for task in await self.obs_manager.list_tasks() if task.remote_id}
        target = await self.obs_manager.find_target_document(self.target_document)
        return linked, target

    def _create_local_op(
        self,
        remote: RemoteTask,
        creation_context: Callable[[], Awaitable[Tuple[Set[str], str]]],
    ) -> WriteOperation:
        async def create_local() -> str:
            linked, target = await creation_context()
            if remote.id in linked:
                self.logger.debug("Task %s is already linked in the vault", remote.id)
                return DUPLICATE

            line = await self.obs_manager.append_task(
                target,
                to_local_text(remote),
                remote.completed,
                guard_marker=f"ms-todo:{remote.id}",
            )
            if line is None:
                self.logger.debug("Task %s already present in %s", remote.id, target)
                return DUPLICATE

            self.logger.info("Created Obsidian task for %s in %s:%d", remote.id, target, line)
            try:
                await self.remote_manager.set_back_reference(remote, target, line)
            except MSToDoSyncError as exc:
                self.logger.warning("Could not store back-reference on %s: %s", remote.id, exc)
            return APPLIED

        return WriteOperation(
            kind=CREATE_LOCAL,
            description=f"create Obsidian task '{remote.title}' from Microsoft To Do",
            run=create_local,
            remote_id=remote.id,
        )

    def _unlink_op(self, local: LocalTask) -> WriteOperation:
        async def unlink() -> str:
            await self.obs_manager.rewrite_task(local, strip_remote_link(local.text), local.completed)
            self.logger.info("Removed link %s from %s", remote_link(local.remote_id), local.location)
            return APPLIED

        return WriteOperation(
            kind=UNLINK,
            description=f"unlink {local.location} from deleted Microsoft To Do task",
            run=unlink,
            remote_id=local.remote_id,
        )

    # ------------------------------------------------------------------
    # Write-back (concurrent) and commit (sequential)
    # ------------------------------------------------------------------
    async def _execute(self, operations: List[WriteOperation], result: SyncResult) -> None:
        if not operations:
            return

        outcomes = await asyncio.gather(*(op.run() for op in operations), return_exceptions=True)

        for op, outcome in zip(operations, outcomes):
            if isinstance(outcome, Exception):
                self.logger.error("Failed to %s: %s", op.description, outcome)
                result.failures += 1
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            self._commit(op, outcome, result)

    def _commit(self, op: WriteOperation, outcome: str, result: SyncResult) -> None:
        if outcome == DUPLICATE:
            result.skipped_duplicates += 1
            return

        if op.kind == PUSH_LOCAL:
            result.remote_updated += 1
        elif op.kind == PUSH_REMOTE:
            result.local_updated += 1
        elif op.kind == CREATE_REMOTE:
            result.remote_created += 1
        elif op.kind == CREATE_LOCAL:
            result.local_created += 1
        elif op.kind == UNLINK:
            result.unlinked += 1
            if op.remote_id:
                self.ledger.forget(op.remote_id)

        if op.remote_id and op.ledger_completed is not None:
            self.ledger.record(op.remote_id, op.ledger_completed)
        if op.remote_id and op.suppress:
            self.ledger.suppress(op.remote_id)
