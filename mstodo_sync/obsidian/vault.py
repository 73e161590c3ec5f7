"""
Obsidian vault document store.

All file system work runs in worker threads so a sync pass can read many
documents concurrently. Read-modify-write cycles on one document are
serialized with a per-document lock.
"""

import asyncio
import os
from typing import Callable, Dict, List, Optional, Tuple, TypeVar
import logging

from mstodo_sync.core.exceptions import DocumentError, VaultNotFoundError
from mstodo_sync.utils.io import atomic_write

T = TypeVar("T")

MARKDOWN_SUFFIX = ".md"


class VaultStore:
    """Reads and writes Markdown documents inside one vault directory."""

    def __init__(self, vault_path: str, logger: Optional[logging.Logger] = None):
        self.vault_path = os.path.abspath(os.path.expanduser(vault_path))
        self.logger = logger or logging.getLogger(__name__)
        self._locks: Dict[str, asyncio.Lock] = {}

    def validate(self) -> None:
        """Raise VaultNotFoundError when the vault directory is missing."""
        if not os.path.isdir(self.vault_path):
            raise VaultNotFoundError(f"Vault directory does not exist: {self.vault_path}")

    def _full_path(self, rel_path: str) -> str:
        full_path = os.path.normpath(os.path.join(self.vault_path, rel_path))
        if os.path.commonpath([full_path, self.vault_path]) != self.vault_path:
            raise DocumentError(rel_path, "path escapes the vault")
        return full_path

    def _lock_for(self, rel_path: str) -> asyncio.Lock:
        lock = self._locks.get(rel_path)
        if lock is None:
            lock = self._locks[rel_path] = asyncio.Lock()
        return lock

    def _walk_documents(self) -> List[str]:
        documents: List[str] = []
        for root, dirs, files in os.walk(self.vault_path):
            # Skip .obsidian, .trash and other hidden folders
            dirs[:] = sorted(d for d in dirs if not d.startswith('.'))
            for filename in sorted(files):
                if filename.endswith(MARKDOWN_SUFFIX) and not filename.startswith('.'):
                    documents.append(os.path.relpath(os.path.join(root, filename), self.vault_path))
        return documents

    def _read_sync(self, rel_path: str) -> str:
        try:
            with open(self._full_path(rel_path), "r", encoding="utf-8", newline="") as handle:
                return handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentError(rel_path, f"read failed: {exc}") from exc

    def _write_sync(self, rel_path: str, content: str) -> None:
        try:
            atomic_write(self._full_path(rel_path), content, use_lock=False)
        except (OSError, TimeoutError) as exc:
            raise DocumentError(rel_path, f"write failed: {exc}") from exc

    async def list_documents(self) -> List[str]:
        """Vault-relative paths of every Markdown document."""
        return await asyncio.to_thread(self._walk_documents)

    async def exists(self, rel_path: str) -> bool:
        return await asyncio.to_thread(os.path.isfile, self._full_path(rel_path))

    async def read(self, rel_path: str) -> str:
        return await asyncio.to_thread(self._read_sync, rel_path)

    async def write(self, rel_path: str, content: str) -> None:
        async with self._lock_for(rel_path):
            await asyncio.to_thread(self._write_sync, rel_path, content)

    async def create(self, rel_path: str, initial_text: str = "") -> str:
        """Create a document unless it already exists; returns its path."""
        async with self._lock_for(rel_path):
            if not await asyncio.to_thread(os.path.exists, self._full_path(rel_path)):
                await asyncio.to_thread(self._write_sync, rel_path, initial_text)
                self.logger.info("Created document %s", rel_path)
        return rel_path

    async def edit(self, rel_path: str, transform: Callable[[str], Tuple[str, T]]) -> T:
        """
        Read, transform and write back one document under its lock.

        Args:
            rel_path: Vault-relative document path
            transform: Receives the current text, returns (new text, result)

        Returns:
            Whatever ``transform`` returned as its result
        """
        async with self._lock_for(rel_path):
            content = await asyncio.to_thread(self._read_sync, rel_path)
            new_content, result = transform(content)
            if new_content != content:
                await asyncio.to_thread(self._write_sync, rel_path, new_content)
            return result
