"""Sync command - perform bidirectional task synchronization."""

import asyncio
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Set
import logging

import httpx

from ..core.config import save_config
from ..core.exceptions import AuthenticationError, ConfigurationError, MSToDoSyncError, SyncError
from ..core.models import SyncConfig
from ..obsidian.tasks import ObsidianTaskManager
from ..obsidian.vault import VaultStore
from ..sync.engine import SyncEngine, SyncResult
from ..todo.gateway import GraphGateway
from ..todo.tasks import RemoteTaskManager


class SyncCommand:
    """Command for synchronizing tasks between Obsidian and Microsoft To Do.

    One command instance owns one engine, so the ledger and suppression set
    survive between passes of ``watch``. Passes never overlap: a trigger
    that fires while a pass is running is skipped.
    """

    def __init__(
        self,
        config: SyncConfig,
        verbose: bool = False,
        config_path: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.verbose = verbose
        self.config_path = config_path
        self.transport = transport
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)
        self.engine: Optional[SyncEngine] = None
        self._lock = asyncio.Lock()

    def run(self, dry_run: bool = False) -> bool:
        """Run a single sync pass."""
        return asyncio.run(self.run_async(dry_run=dry_run))

    def watch(self, interval: Optional[int] = None) -> bool:
        """Run sync passes every ``interval`` seconds until interrupted."""
        return asyncio.run(self.watch_async(interval=interval))

    async def run_async(self, dry_run: bool = False) -> bool:
        if not self._check_config():
            return False
        async with self._session():
            return await self.trigger(dry_run=dry_run)

    async def watch_async(self, interval: Optional[int] = None, max_passes: Optional[int] = None) -> bool:
        if not self._check_config():
            return False
        if not self.config.auto_sync:
            print("⚠️  Automatic sync is disabled in config (sync.auto_sync).")
            return False

        interval = interval if interval is not None else self.config.sync_interval
        print(f"🔄 Watching for changes every {interval}s (Ctrl-C to stop)")

        running: Set[asyncio.Future] = set()
        async with self._session():
            try:
                passes = 0
                while max_passes is None or passes < max_passes:
                    task = asyncio.ensure_future(self.trigger())
                    running.add(task)
                    task.add_done_callback(running.discard)
                    passes += 1
                    await asyncio.sleep(interval)
            finally:
                if running:
                    await asyncio.gather(*running, return_exceptions=True)
        return True

    async def trigger(self, dry_run: bool = False) -> bool:
        """Run one pass unless one is already in progress."""
        if self.engine is None:
            raise RuntimeError("SyncCommand.trigger() called outside a session")
        if self._lock.locked():
            self.logger.info("Sync already in progress, skipping this trigger")
            return False

        async with self._lock:
            try:
                result = await self.engine.perform_sync(dry_run=dry_run)
            except SyncError as exc:
                print(f"❌ Sync failed: {exc}")
                if isinstance(exc.__cause__, AuthenticationError):
                    print("Run 'mstodo-sync auth' to sign in again.")
                return False
            except MSToDoSyncError as exc:
                print(f"❌ Sync failed: {exc}")
                return False

            self._print_summary(result)
            if not dry_run:
                self._record_sync_time()
            return True

    def _check_config(self) -> bool:
        if not self.config.has_vault:
            print("No Obsidian vault configured. Set vault.path in your config file.")
            return False
        if not os.path.isdir(self.config.vault_path):
            print(f"Configured vault does not exist: {self.config.vault_path}")
            return False
        if not self.config.access_token:
            print("Not authenticated. Run 'mstodo-sync auth' first.")
            return False
        return True

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[SyncEngine]:
        store = VaultStore(self.config.vault_path, logger=self.logger)
        store.validate()
        gateway = GraphGateway.from_config(self.config, transport=self.transport, logger=self.logger)
        async with gateway:
            self.engine = SyncEngine(
                ObsidianTaskManager(store, logger=self.logger),
                RemoteTaskManager(gateway, default_list=self.config.default_list, logger=self.logger),
                read_delay=self.config.read_delay,
                suppression_window=self.config.suppression_window,
                target_document=self.config.target_document,
                logger=self.logger,
            )
            try:
                yield self.engine
            finally:
                self.engine.close()
                self.engine = None

    def _record_sync_time(self) -> None:
        self.config.last_sync_time = time.time()
        try:
            save_config(self.config, self.config_path)
        except ConfigurationError as exc:
            self.logger.warning("Could not record last sync time: %s", exc)

    def _print_summary(self, result: SyncResult) -> None:
        print(f"\nSync {'Preview' if result.dry_run else 'Complete'}:")
        print(f"  Obsidian tasks: {result.local_tasks}")
        print(f"  Microsoft To Do tasks: {result.remote_tasks}")
        print(f"  Linked pairs: {result.pairs}")

        if result.dry_run:
            if result.planned:
                print("\nPlanned changes:")
                for description in result.planned:
                    print(f"  • {description}")
            else:
                print("\n✓ Everything is in sync")
            print("\nDry run only. Run without --dry-run to apply changes.")
            return

        if result.total_writes == 0 and not result.failures:
            print("\n✓ Everything is in sync")
            return

        print("\nChanges:")
        if result.remote_updated:
            print(f"  Microsoft To Do updated: {result.remote_updated}")
        if result.local_updated:
            print(f"  Obsidian updated: {result.local_updated}")
        if result.remote_created:
            print(f"  Microsoft To Do created: {result.remote_created}")
        if result.local_created:
            print(f"  Obsidian created: {result.local_created}")
        if result.unlinked:
            print(f"  Links removed: {result.unlinked}")
        if result.failures:
            print(f"  ⚠️  Failed writes: {result.failures} (see log for details)")
