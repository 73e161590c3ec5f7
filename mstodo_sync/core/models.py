"""
Domain models for mstodo-sync.

This module contains the core data structures shared by the vault side,
the Microsoft To Do side and the sync engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import os
import re

from ..utils.date import graph_due_date, parse_timestamp, to_graph_due
from ..utils.io import safe_read_json, safe_write_json


DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# Back-reference stored in the remote task body: "Obsidian: notes/Tasks.md:12"
BACK_REFERENCE_RE = re.compile(r'^Obsidian:\s*(.+):(\d+)\s*$', re.MULTILINE)


def _normalize_path(path: str) -> str:
    """Expand user and convert to absolute path."""
    return os.path.abspath(os.path.expanduser(path))


class Priority(Enum):
    """Task priority, using Microsoft To Do importance values."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Priority:
        try:
            return cls(value) if value else cls.NORMAL
        except ValueError:
            return cls.NORMAL


class RemoteStatus(Enum):
    """Microsoft To Do task status."""

    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"

    @classmethod
    def from_value(cls, value: Optional[str]) -> RemoteStatus:
        try:
            return cls(value) if value else cls.NOT_STARTED
        except ValueError:
            return cls.NOT_STARTED


@dataclass
class LocalTask:
    """A checkbox task found in a vault document.

    ``line_number`` is the 0-based index of the line at read time and is
    only meaningful until the document changes.
    """

    file_path: str
    line_number: int
    text: str
    completed: bool
    raw_line: str
    indent: str = ""
    due_date: Optional[date] = None
    priority: Optional[Priority] = None
    tags: List[str] = field(default_factory=list)
    remote_id: Optional[str] = None

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.line_number}"


@dataclass
class RemoteTaskDraft:
    """Fields sent to Microsoft To Do when creating or patching a task."""

    title: str
    status: RemoteStatus = RemoteStatus.NOT_STARTED
    importance: Priority = Priority.NORMAL
    due_date: Optional[date] = None
    body: Optional[str] = None
    document_path: Optional[str] = None
    document_line: Optional[int] = None

    @property
    def completed(self) -> bool:
        return self.status == RemoteStatus.COMPLETED

    def to_graph_payload(self, include_body: bool = True) -> Dict[str, Any]:
        """Serialize to a Graph ``todoTask`` payload.

        ``dueDateTime`` is always present so that a due date removed locally
        is also cleared remotely.
        """
        payload: Dict[str, Any] = {
            "title": self.title,
            "status": self.status.value,
            "importance": self.importance.value,
            "dueDateTime": to_graph_due(self.due_date),
        }
        if include_body and self.body:
            payload["body"] = {"content": self.body, "contentType": "text"}
        return payload


@dataclass
class RemoteTask:
    """A task stored in a Microsoft To Do list."""

    id: str
    list_id: Optional[str]
    title: str
    status: RemoteStatus = RemoteStatus.NOT_STARTED
    importance: Priority = Priority.NORMAL
    due_date: Optional[date] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    body: Optional[str] = None
    document_path: Optional[str] = None
    document_line: Optional[int] = None

    @property
    def completed(self) -> bool:
        return self.status == RemoteStatus.COMPLETED

    @classmethod
    def from_graph(cls, data: Dict[str, Any], list_id: Optional[str] = None) -> RemoteTask:
        body = (data.get("body") or {}).get("content") or None
        document_path = None
        document_line = None
        if body:
            match = BACK_REFERENCE_RE.search(body)
            if match:
                document_path = match.group(1).strip()
                document_line = int(match.group(2))

        return cls(
            id=data["id"],
            list_id=list_id,
            title=data.get("title") or "",
            status=RemoteStatus.from_value(data.get("status")),
            importance=Priority.from_value(data.get("importance")),
            due_date=graph_due_date(data.get("dueDateTime")),
            created_at=parse_timestamp(data.get("createdDateTime")),
            modified_at=parse_timestamp(data.get("lastModifiedDateTime")),
            body=body,
            document_path=document_path,
            document_line=document_line,
        )


@dataclass
class TaskList:
    """A Microsoft To Do list."""

    id: str
    name: str
    wellknown_name: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self.wellknown_name == "defaultList"

    @classmethod
    def from_graph(cls, data: Dict[str, Any]) -> TaskList:
        return cls(
            id=data["id"],
            name=data.get("displayName") or "",
            wellknown_name=data.get("wellknownListName"),
        )


@dataclass(frozen=True)
class ProjectedState:
    """The comparable view of one side of a linked pair."""

    completed: bool
    title: str
    priority: Priority
    due_date: Optional[date]


@dataclass
class LedgerEntry:
    """Last agreed completion state for one remote task id."""

    completed: bool
    last_sync: float


@dataclass
class SyncConfig:
    """Configuration for sync operations."""

    vault_path: Optional[str] = None
    # Authentication
    client_id: str = ""
    tenant_id: str = "consumers"
    access_token: str = ""
    # Remote side
    default_list: str = ""
    graph_base_url: str = DEFAULT_GRAPH_BASE_URL
    request_timeout: float = 30.0
    # Vault side
    target_document: Optional[str] = None
    # Scheduling
    auto_sync: bool = True
    sync_interval: int = 300  # seconds
    read_delay: float = 0.5  # seconds before reading at pass start
    suppression_window: float = 2.0  # seconds before suppressed ids are released
    last_sync_time: float = 0.0

    def __post_init__(self) -> None:
        if self.vault_path:
            self.vault_path = _normalize_path(self.vault_path)

    @property
    def has_vault(self) -> bool:
        return bool(self.vault_path)

    @classmethod
    def load_from_file(cls, config_path: str) -> SyncConfig:
        config_path = _normalize_path(config_path)
        if not os.path.exists(config_path):
            return cls()

        data = safe_read_json(config_path)
        if not isinstance(data, dict):
            return cls()

        auth = data.get("auth", {})
        sync_settings = data.get("sync", {})
        vault = data.get("vault", {})

        return cls(
            vault_path=vault.get("path"),
            target_document=vault.get("target_document"),
            client_id=auth.get("client_id", ""),
            tenant_id=auth.get("tenant_id", "consumers"),
            access_token=auth.get("access_token", ""),
            default_list=sync_settings.get("default_list", ""),
            graph_base_url=sync_settings.get("graph_base_url", DEFAULT_GRAPH_BASE_URL),
            request_timeout=float(sync_settings.get("request_timeout", 30.0)),
            auto_sync=sync_settings.get("auto_sync", True),
            sync_interval=int(sync_settings.get("sync_interval", 300)),
            read_delay=float(sync_settings.get("read_delay", 0.5)),
            suppression_window=float(sync_settings.get("suppression_window", 2.0)),
            last_sync_time=float(sync_settings.get("last_sync_time", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vault": {
                "path": self.vault_path,
                "target_document": self.target_document,
            },
            "auth": {
                "client_id": self.client_id,
                "tenant_id": self.tenant_id,
                "access_token": self.access_token,
            },
            "sync": {
                "default_list": self.default_list,
                "graph_base_url": self.graph_base_url,
                "request_timeout": self.request_timeout,
                "auto_sync": self.auto_sync,
                "sync_interval": self.sync_interval,
                "read_delay": self.read_delay,
                "suppression_window": self.suppression_window,
                "last_sync_time": self.last_sync_time,
            },
        }

    def save_to_file(self, config_path: str) -> bool:
        return safe_write_json(_normalize_path(config_path), self.to_dict())

