"""Last-known-state ledger and echo suppression for the sync engine."""

import asyncio
import time
from typing import Callable, Dict, FrozenSet, Optional, Set
import logging

from ..core.models import LedgerEntry


class SyncLedger:
    """Process-local memory of what the engine last agreed on and just wrote.

    Two structures live here:

    * entries: remote id -> last agreed completion state. Never persisted;
      after a restart every pair starts without an entry.
    * suppressed ids: remote ids written during the current pass. A pass
      that starts before they are released skips those pairs entirely, so
      a lagging remote read-view cannot bounce our own write back.

    Only the engine's sequential resolution and commit steps touch it.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self._entries: Dict[str, LedgerEntry] = {}
        self._suppressed: Set[str] = set()
        self._release_handle: Optional[asyncio.TimerHandle] = None

    # ------------------------------------------------------------------
    # Last-known state
    # ------------------------------------------------------------------
    def get(self, remote_id: str) -> Optional[LedgerEntry]:
        return self._entries.get(remote_id)

    def record(self, remote_id: str, completed: bool) -> LedgerEntry:
        entry = LedgerEntry(completed=completed, last_sync=self.clock())
        self._entries[remote_id] = entry
        return entry

    def forget(self, remote_id: str) -> None:
        self._entries.pop(remote_id, None)

    def __contains__(self, remote_id: object) -> bool:
        return remote_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Suppression
    # ------------------------------------------------------------------
    def is_suppressed(self, remote_id: str) -> bool:
        return remote_id in self._suppressed

    def suppress(self, remote_id: str) -> None:
        self._suppressed.add(remote_id)

    @property
    def suppressed(self) -> FrozenSet[str]:
        return frozenset(self._suppressed)

    @property
    def release_pending(self) -> bool:
        return self._release_handle is not None

    def release_suppressed(self) -> None:
        if self._suppressed:
            self.logger.debug("Releasing %d suppressed task ids", len(self._suppressed))
        self._suppressed.clear()
        self._release_handle = None

    def schedule_release(self, delay: float, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Release suppressed ids after ``delay`` seconds.

        A newer schedule replaces a pending one, so ids suppressed by the
        latest pass always get the full window.
        """
        self.cancel_release()
        if delay <= 0:
            self.release_suppressed()
            return
        loop = loop or asyncio.get_running_loop()
        self._release_handle = loop.call_later(delay, self.release_suppressed)

    def cancel_release(self) -> None:
        if self._release_handle is not None:
            self._release_handle.cancel()
            self._release_handle = None
