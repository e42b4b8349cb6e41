"""
Exception hierarchy for Taskflow

Folder/file collisions, frontmatter parse errors and storage failures are
kept apart so the reactive listener and the user commands can report them
differently.
"""

from typing import Optional


class TaskflowError(Exception):
    """Base class for all Taskflow errors"""


class FolderCollisionError(TaskflowError):
    """A path component that should be a folder already exists as a file"""

    def __init__(self, folder_path: str, blocking_path: str):
        self.folder_path = folder_path
        self.blocking_path = blocking_path
        super().__init__(
            f"Cannot create folder '{folder_path}': '{blocking_path}' exists and is not a folder"
        )


class TaskflowIOError(TaskflowError):
    """Storage operation failed (permissions, name collision, ...)"""

    def __init__(self, message: str, source: Optional[str] = None, target: Optional[str] = None):
        self.source = source
        self.target = target
        super().__init__(message)


class FrontmatterParseError(TaskflowError):
    """The YAML frontmatter block of a note could not be parsed"""


class ReclassificationError(TaskflowError):
    """Moving a note (or patching it afterwards) failed"""

    def __init__(self, source: str, target: str, cause: Exception):
        self.source = source
        self.target = target
        self.cause = cause
        super().__init__(f"Could not move '{source}' to '{target}': {cause}")
