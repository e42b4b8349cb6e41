"""
Taskflow for Obsidian vaults

Moves notes between folders when a boolean frontmatter property changes,
optionally stamping a completion date. Also mints [TASK-NNN] notes and
moves them to the icebox or out of the backlog.
"""

from .errors import (
    FolderCollisionError,
    FrontmatterParseError,
    ReclassificationError,
    TaskflowError,
    TaskflowIOError,
)
from .guard import InFlightGuard
from .models import MoveResult, Note, TaskflowSettings
from .paths import build_path
from .plugin import TaskflowPlugin
from .reclassifier import Reclassifier, classify, completed_timestamp

__version__ = "0.3.0"

__all__ = [
    'FolderCollisionError',
    'FrontmatterParseError',
    'ReclassificationError',
    'TaskflowError',
    'TaskflowIOError',
    'InFlightGuard',
    'MoveResult',
    'Note',
    'TaskflowSettings',
    'build_path',
    'TaskflowPlugin',
    'Reclassifier',
    'classify',
    'completed_timestamp',
]
