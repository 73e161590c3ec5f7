#!/usr/bin/env python3
"""
Global pytest configuration and fixtures.

This module provides:
- Isolated working directory (MSTODO_SYNC_HOME) for every test
- Temporary Obsidian vaults
- An in-memory Microsoft To Do service and a sync engine wired to it
"""

import os
import sys
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mstodo_sync.core.paths import reset_path_manager
from mstodo_sync.obsidian.tasks import ObsidianTaskManager
from mstodo_sync.obsidian.vault import VaultStore
from mstodo_sync.sync.engine import SyncEngine
from mstodo_sync.todo.tasks import RemoteTaskManager
from tests.fake_graph import FakeGraphGateway


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Point the config/log directory at a per-test temp dir."""
    home = tmp_path / "mstodo-home"
    monkeypatch.setenv("MSTODO_SYNC_HOME", str(home))
    reset_path_manager()
    yield home
    reset_path_manager()


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """An empty Obsidian vault directory."""
    path = tmp_path / "vault"
    path.mkdir()
    return path


@pytest.fixture
def write_note(vault_dir: Path) -> Callable[[str, str], Path]:
    """Write a note into the vault and return its path."""
    def _write(rel_path: str, content: str) -> Path:
        note = vault_dir / rel_path
        note.parent.mkdir(parents=True, exist_ok=True)
        note.write_text(content, encoding="utf-8")
        return note

    return _write


@pytest.fixture
def mock_obsidian_vault(write_note, vault_dir: Path) -> Path:
    """A vault with a daily note, a project note and hidden folders."""
    write_note(
        "2023-12-15.md",
        """# Daily Note 2023-12-15

## Tasks
- [ ] Buy groceries 📅 2023-12-15 #personal
- [ ] Finish project report 📅 2023-12-16 #work ⏫
- [x] Call dentist ✅ 2023-12-14

## Notes
Some notes here.
""",
    )
    write_note(
        "Projects/Project Alpha.md",
        """# Project Alpha

- [ ] Design phase 🛫 2023-12-01 📅 2023-12-20 #work #design
    - [x] Planning phase ✅ 2023-11-30 #work
""",
    )
    write_note(".obsidian/workspace.md", "- [ ] Not a real task\n")
    write_note(".trash/Old.md", "- [ ] Deleted task\n")
    return vault_dir


@pytest.fixture
def vault_store(vault_dir: Path) -> VaultStore:
    return VaultStore(str(vault_dir))


@pytest.fixture
def obs_manager(vault_store: VaultStore) -> ObsidianTaskManager:
    return ObsidianTaskManager(vault_store)


@pytest.fixture
def graph() -> FakeGraphGateway:
    return FakeGraphGateway()


@pytest.fixture
def remote_manager(graph: FakeGraphGateway) -> RemoteTaskManager:
    return RemoteTaskManager(graph)


@pytest.fixture
def engine(obs_manager: ObsidianTaskManager, remote_manager: RemoteTaskManager) -> Generator[SyncEngine, None, None]:
    """Sync engine with no read delay and an immediate suppression release."""
    sync_engine = SyncEngine(
        obs_manager,
        remote_manager,
        read_delay=0,
        suppression_window=0,
    )
    yield sync_engine
    sync_engine.close()
