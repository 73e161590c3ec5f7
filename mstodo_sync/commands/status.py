"""Status and lists commands - show configuration and remote lists."""

import asyncio
import os
from datetime import datetime
from typing import Optional
import logging

import httpx

from ..core.config import get_default_config_path
from ..core.exceptions import AuthenticationError, MSToDoSyncError
from ..core.models import SyncConfig
from ..todo.auth import TokenManager
from ..todo.gateway import GraphGateway
from ..todo.tasks import RemoteTaskManager


class StatusCommand:
    """Command for showing authentication and sync status."""

    def __init__(self, config: SyncConfig, verbose: bool = False, config_path: Optional[str] = None):
        self.config = config
        self.verbose = verbose
        self.config_path = config_path

    def run(self) -> bool:
        print("📊 mstodo-sync status")
        print("=" * 50)
        print(f"\n📂 Config: {self.config_path or get_default_config_path()}")

        tokens = TokenManager(
            client_id=self.config.client_id,
            tenant_id=self.config.tenant_id,
            access_token=self.config.access_token,
        )
        if not tokens.is_authenticated():
            print("🔒 Authentication: not signed in (run 'mstodo-sync auth')")
        elif tokens.is_expired():
            print("⚠️  Authentication: token expired (run 'mstodo-sync auth')")
        else:
            expiry = tokens.token_expiry()
            suffix = f" until {datetime.fromtimestamp(expiry):%Y-%m-%d %H:%M}" if expiry else ""
            print(f"🔓 Authentication: signed in{suffix}")

        if self.config.has_vault:
            marker = "" if os.path.isdir(self.config.vault_path) else " (missing!)"
            print(f"📁 Vault: {self.config.vault_path}{marker}")
        else:
            print("📁 Vault: not configured")

        print(f"📋 Default list: {self.config.default_list or 'automatic'}")
        print(f"📝 New tasks from Microsoft To Do go to: {self.config.target_document or 'automatic'}")

        if self.config.auto_sync:
            print(f"⏱  Watch interval: {self.config.sync_interval}s")
        else:
            print("⏱  Automatic sync: disabled")

        if self.config.last_sync_time:
            print(f"🕒 Last sync: {datetime.fromtimestamp(self.config.last_sync_time):%Y-%m-%d %H:%M:%S}")
        else:
            print("🕒 Last sync: never")
        return True


class ListsCommand:
    """Command for listing Microsoft To Do lists."""

    def __init__(
        self,
        config: SyncConfig,
        verbose: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.verbose = verbose
        self.transport = transport
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self) -> bool:
        return asyncio.run(self.run_async())

    async def run_async(self) -> bool:
        if not self.config.access_token:
            print("Not authenticated. Run 'mstodo-sync auth' first.")
            return False

        async with GraphGateway.from_config(self.config, transport=self.transport, logger=self.logger) as gateway:
            manager = RemoteTaskManager(gateway, default_list=self.config.default_list, logger=self.logger)
            try:
                lists = await manager.list_lists()
            except AuthenticationError as exc:
                print(f"❌ {exc}")
                return False
            except MSToDoSyncError as exc:
                print(f"❌ Could not fetch lists: {exc}")
                return False

        if not lists:
            print("No Microsoft To Do lists found.")
            return True

        default = manager.resolve_default_list(lists)
        print("📋 Microsoft To Do lists:")
        for task_list in lists:
            marker = "  ← new tasks go here" if task_list.id == default.id else ""
            print(f"  • {task_list.name} ({task_list.id}){marker}")
        return True
