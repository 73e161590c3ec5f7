"""
Markdown task parsing and formatting.

Converts checkbox lines such as::

    - [ ] Draft report 🔺 📅 2024-05-02 #work [🔗 MS To Do](ms-todo:AAMk...)

to and from the structured records used by the sync engine.
"""

import re
from dataclasses import replace
from typing import List, Optional, Tuple, Union

from mstodo_sync.core.models import (
    LocalTask,
    Priority,
    RemoteStatus,
    RemoteTask,
    RemoteTaskDraft,
)
from mstodo_sync.utils.date import format_date, parse_date


# Regular expressions for parsing tasks
TASK_RE = re.compile(r'^(\s*)[-*]\s*\[([ xX])\]\s*(.+)$')
LINE_PREFIX_RE = re.compile(r'^(\s*)([-*])?')
DUE_DATE_RE = re.compile(r'📅\s*(\d{4}-\d{1,2}-\d{1,2})')
PRIORITY_RE = re.compile(r'(🔺|⏫|🔻|🔽)')
# A tag runs to the next whitespace or hash, so #café and #日本 stay whole
TAG_RE = re.compile(r'#([^\s#]+)')

# Link markers: legacy bracket form and current link-label form
REMOTE_ID_RE = re.compile(r'\[ms-todo:([^\]]+)\]')
REMOTE_LINK_RE = re.compile(r'\[🔗 MS To Do\]\(ms-todo:([^)]+)\)')
STRIP_REMOTE_ID_RE = re.compile(r'\s*\[ms-todo:[^\]]+\]')
STRIP_REMOTE_LINK_RE = re.compile(r'\s*\[🔗 MS To Do\]\(ms-todo:[^)]+\)')

# Tasks plugin metadata that Microsoft To Do has no field for
COMPLETION_DATE_RE = re.compile(r'✅\s*(\d{4}-\d{2}-\d{2})')
START_DATE_RE = re.compile(r'🛫\s*(\d{4}-\d{2}-\d{2})')
SCHEDULED_DATE_RE = re.compile(r'⏰\s*(\d{4}-\d{2}-\d{2})')
RECURRENCE_RE = re.compile(r'🔁\s*[^🔗\s]+')

WHITESPACE_RE = re.compile(r'\s+')

PRIORITY_SYMBOLS = {
    '🔺': Priority.HIGH,
    '⏫': Priority.HIGH,
    '🔻': Priority.LOW,
    '🔽': Priority.LOW,
}

TAGS_BODY_PREFIX = "Tags: "

RemoteLike = Union[RemoteTask, RemoteTaskDraft]


def remote_link(remote_id: str) -> str:
    """Return the link marker appended to a linked task."""
    return f"[🔗 MS To Do](ms-todo:{remote_id})"


def extract_remote_id(text: str) -> Optional[str]:
    """Return the remote id carried by a task text, preferring the link form."""
    link_match = REMOTE_LINK_RE.search(text)
    if link_match:
        return link_match.group(1)
    id_match = REMOTE_ID_RE.search(text)
    if id_match:
        return id_match.group(1)
    return None


def parse_task_line(line: str, file_path: str, line_number: int) -> Optional[LocalTask]:
    """
    Parse a markdown line into a LocalTask.

    Args:
        line: Raw markdown line (without trailing newline)
        file_path: Vault-relative path of the document
        line_number: 0-based index of the line in the document

    Returns:
        LocalTask or None if the line is not a checkbox task
    """
    match = TASK_RE.match(line)
    if not match:
        return None

    indent, status_char, content = match.groups()
    text = content.strip()

    due_date = None
    due_match = DUE_DATE_RE.search(text)
    if due_match:
        due_date = parse_date(due_match.group(1))

    priority = None
    priority_match = PRIORITY_RE.search(text)
    if priority_match:
        priority = PRIORITY_SYMBOLS.get(priority_match.group(1))

    # Tags are collected from the text without link markers so ids never leak in
    tags = [m.group(1) for m in TAG_RE.finditer(strip_remote_link(text))]

    return LocalTask(
        file_path=file_path,
        line_number=line_number,
        text=text,
        completed=status_char.lower() == 'x',
        raw_line=line,
        indent=indent,
        due_date=due_date,
        priority=priority,
        tags=tags,
        remote_id=extract_remote_id(text),
    )


def parse_tasks(content: str, file_path: str) -> List[LocalTask]:
    """Parse every checkbox task in a document."""
    tasks: List[LocalTask] = []
    for line_number, line in enumerate(content.split('\n')):
        task = parse_task_line(line.rstrip('\r'), file_path, line_number)
        if task:
            tasks.append(task)
    return tasks


def clean_task_text(text: str) -> str:
    """Strip link markers and all known metadata, leaving the bare title."""
    for pattern in (
        REMOTE_ID_RE,
        REMOTE_LINK_RE,
        DUE_DATE_RE,
        PRIORITY_RE,
        TAG_RE,
        COMPLETION_DATE_RE,
        START_DATE_RE,
        SCHEDULED_DATE_RE,
        RECURRENCE_RE,
    ):
        text = pattern.sub('', text)
    return WHITESPACE_RE.sub(' ', text).strip()


def strip_remote_link(text: str) -> str:
    """Remove both link marker forms from a task text."""
    return STRIP_REMOTE_LINK_RE.sub('', STRIP_REMOTE_ID_RE.sub('', text)).strip()


def append_remote_link(text: str, remote_id: str) -> str:
    return f"{text} {remote_link(remote_id)}"


def to_remote_draft(task: LocalTask) -> RemoteTaskDraft:
    """Convert a local task into the fields Microsoft To Do stores."""
    body = None
    if task.tags:
        body = TAGS_BODY_PREFIX + ' '.join(f"#{tag}" for tag in task.tags)

    return RemoteTaskDraft(
        title=clean_task_text(task.text),
        status=RemoteStatus.COMPLETED if task.completed else RemoteStatus.NOT_STARTED,
        importance=task.priority or Priority.NORMAL,
        due_date=task.due_date,
        body=body,
        document_path=task.file_path,
        document_line=task.line_number,
    )


def _remote_metadata(remote: RemoteLike) -> List[str]:
    parts = []
    if remote.importance == Priority.HIGH:
        parts.append('🔺')
    elif remote.importance == Priority.LOW:
        parts.append('🔻')
    if remote.due_date:
        parts.append(f"📅 {format_date(remote.due_date)}")
    return parts


def to_local_text(remote: RemoteLike) -> str:
    """Render a remote task as checkbox text (without the checkbox).

    A draft has no id yet, so no link marker is added for it.
    """
    parts = [remote.title] + _remote_metadata(remote)
    remote_id = getattr(remote, 'id', None)
    if remote_id:
        parts.append(remote_link(remote_id))
    return ' '.join(parts)


def merge_task(local: LocalTask, remote: RemoteTask) -> LocalTask:
    """Apply the remote state to a local task, keeping local-only metadata.

    Start/scheduled dates, recurrence and tags have no remote counterpart and
    are carried over; the completion date is kept only while the remote task
    is completed. The existing link marker form is preserved.
    """
    original = local.text
    parts = [remote.title]

    completion_match = COMPLETION_DATE_RE.search(original)
    if completion_match and remote.completed:
        parts.append(completion_match.group(0))
    for pattern in (START_DATE_RE, SCHEDULED_DATE_RE, RECURRENCE_RE):
        preserved = pattern.search(original)
        if preserved:
            parts.append(preserved.group(0))

    parts.extend(_remote_metadata(remote))
    parts.extend(f"#{tag}" for tag in local.tags)

    link_match = REMOTE_LINK_RE.search(original)
    id_match = REMOTE_ID_RE.search(original)
    if link_match:
        parts.append(link_match.group(0))
    elif id_match:
        parts.append(id_match.group(0))
    else:
        parts.append(remote_link(remote.id))

    return replace(
        local,
        text=' '.join(parts),
        completed=remote.completed,
        priority=None if remote.importance == Priority.NORMAL else remote.importance,
        due_date=remote.due_date,
        remote_id=remote.id,
    )


def format_task_line(text: str, completed: bool = False, indent: str = "", bullet: str = "-") -> str:
    """Format a task into a markdown checkbox line."""
    checkbox = '[x]' if completed else '[ ]'
    return f"{indent}{bullet} {checkbox} {text}"


def update_task_in_content(content: str, task: LocalTask, new_text: str, completed: bool) -> str:
    """Rewrite the line recorded for ``task``, keeping its indentation and bullet.

    The rewrite is positional: if the document gained or lost lines since the
    task was read, the line at the recorded index is replaced regardless.
    """
    lines = content.split('\n')
    if 0 <= task.line_number < len(lines):
        indent, bullet = LINE_PREFIX_RE.match(lines[task.line_number]).groups()
        ending = "\r" if lines[task.line_number].endswith("\r") else ""
        lines[task.line_number] = format_task_line(new_text, completed, indent, bullet or "-") + ending
    return '\n'.join(lines)


def add_task_to_content(content: str, text: str, completed: bool = False, position: str = 'bottom') -> Tuple[str, int]:
    """
    Add a task line to a document.

    Returns:
        Tuple of (new content, 0-based line index of the added task)
    """
    task_line = format_task_line(text, completed)

    if position == 'top':
        return f"{task_line}\n{content}", 0

    if not content:
        return f"{task_line}\n", 0

    base = content if content.endswith('\n') else content + '\n'
    return f"{base}{task_line}\n", base.count('\n')
