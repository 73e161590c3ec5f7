"""
File writes that never leave a half-written file behind.

The config file is additionally guarded by an advisory lock file so two
mstodo-sync processes (``sync`` from a shell while ``watch`` runs) do not
interleave reads and writes. Vault notes are written without the lock.
"""

import contextlib
import errno
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

try:  # fcntl is only available on POSIX platforms
    import fcntl  # type: ignore
except ImportError:  # pragma: no cover - Windows fallback
    fcntl = None  # type: ignore


LOCK_TIMEOUT = 8.0  # seconds
LOCK_RETRY_DELAY = 0.05  # seconds

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def locked(path: Path, exclusive: bool = True, timeout: float = LOCK_TIMEOUT) -> Iterator[None]:
    """Hold an advisory lock on ``.<name>.lock`` next to ``path``.

    Without fcntl this is a no-op.

    Raises:
        TimeoutError: If the lock is still held by someone else after ``timeout``
    """
    if fcntl is None:
        yield
        return

    lock_path = path.parent / f".{path.name}.lock"
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    mode = (fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH) | fcntl.LOCK_NB
    give_up_at = time.monotonic() + timeout

    with open(lock_path, "a") as handle:
        while True:
            try:
                fcntl.flock(handle.fileno(), mode)
            except OSError as exc:  # pragma: no cover - depends on timing
                if exc.errno not in (errno.EACCES, errno.EAGAIN):
                    raise
                if time.monotonic() > give_up_at:
                    raise TimeoutError(f"Lock on {path} not released within {timeout}s") from exc
                time.sleep(LOCK_RETRY_DELAY)
            else:
                break
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def safe_read_json(file_path: str, default: Optional[Dict] = None, *, lock_timeout: float = LOCK_TIMEOUT) -> Dict[str, Any]:
    """Load a JSON file, returning ``default`` (or ``{}``) when it is missing or unreadable."""
    fallback = {} if default is None else default
    path = Path(file_path).expanduser()
    if not path.exists():
        return fallback

    try:
        with locked(path, exclusive=False, timeout=lock_timeout):
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, TimeoutError, ValueError) as exc:
        logger.warning("Could not read %s: %s", file_path, exc)
        return fallback


def safe_write_json(file_path: str, data: Dict[str, Any], indent: int = 2, *, lock_timeout: float = LOCK_TIMEOUT) -> bool:
    """Write JSON atomically under the lock; returns False on failure."""
    text = json.dumps(data, indent=indent, ensure_ascii=False, sort_keys=True)
    try:
        atomic_write(file_path, text, lock_timeout=lock_timeout)
    except (OSError, TimeoutError) as exc:
        logger.error("Could not write %s: %s", file_path, exc)
        return False
    return True


def atomic_write(
    file_path: str,
    content: str,
    *,
    lock_timeout: float = LOCK_TIMEOUT,
    use_lock: bool = True,
) -> None:
    """
    Replace ``file_path`` with ``content`` in one step.

    Content goes to a temporary sibling first, which is then renamed over
    the target. Newlines are written exactly as given.

    Args:
        file_path: Destination file
        content: Full new text
        use_lock: Take the advisory lock file (vault notes pass False)

    Raises:
        OSError: If the file could not be written
        TimeoutError: If the lock could not be acquired
    """
    target = Path(file_path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)

    guard = locked(target, timeout=lock_timeout) if use_lock else contextlib.nullcontext()
    with guard:
        fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=".tmp_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
