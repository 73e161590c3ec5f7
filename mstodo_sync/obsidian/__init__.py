"""
Obsidian integration module for mstodo-sync.
"""

from .vault import VaultStore
from .tasks import ObsidianTaskManager
from .parser import parse_tasks, clean_task_text, format_task_line

__all__ = [
    'VaultStore',
    'ObsidianTaskManager',
    'parse_tasks',
    'clean_task_text',
    'format_task_line'
]
