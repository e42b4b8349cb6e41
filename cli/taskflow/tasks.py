"""
Task commands: create task, move to icebox, move out of backlog

Task notes are named `[TASK-NNN] <title>.md`. The counter behind NNN is
part of the plugin settings; detect_task_counter() rebuilds it from the
notes already in the vault.

Every command returns exactly one Notice for the user and never raises.
"""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .errors import TaskflowError
from .models import Note, TaskflowSettings
from .paths import join_note_path
from .vault import Vault

if TYPE_CHECKING:
    from .plugin import TaskflowPlugin

logger = logging.getLogger(__name__)

TASK_NAME_PATTERN = re.compile(r"^\[TASK-(\d+)\]")
TASK_PREFIX = "[TASK-"


@dataclass
class Notice:
    """A single user-facing message produced by a command"""
    message: str
    ok: bool = True
    note: Optional[Note] = None

    def __str__(self) -> str:
        return f"Taskflow: {self.message}"


def format_task_file_name(number: int, title: str) -> str:
    safe_title = re.sub(r"[\\/]+", "-", title.strip())
    return f"[TASK-{number:03d}] {safe_title}.md"


def is_task_note(note: Note) -> bool:
    return note.name.startswith(TASK_PREFIX)


def default_task_content(property_name: str) -> str:
    return "\n".join([
        "---",
        f"{property_name}: false",
        "🚩: false",
        "due: ",
        "defer: ",
        "started: ",
        "---",
        "",
    ])


def detect_task_counter(vault: Vault, root_folder: str) -> int:
    """One above the highest TASK number among notes in scope (1 if none)"""
    max_num = 0
    for note in vault.get_markdown_files(root_folder):
        match = TASK_NAME_PATTERN.match(note.name)
        if match:
            max_num = max(max_num, int(match.group(1)))
    return max_num + 1


class TaskCommands:
    """User-initiated commands of the plugin"""

    def __init__(self, plugin: "TaskflowPlugin"):
        self.plugin = plugin

    @property
    def vault(self) -> Vault:
        return self.plugin.vault

    @property
    def settings(self) -> TaskflowSettings:
        return self.plugin.settings

    async def _initial_content(self) -> str:
        template_path = self.settings.template_path
        template = self.vault.get_by_path(template_path) if template_path else None
        if template is not None:
            return await self.vault.read(template)
        if template_path:
            logger.info("Template %s not found, using default frontmatter", template_path)
        return default_task_content(self.settings.property_name)

    async def create_task(self, title: str) -> Notice:
        title = title.strip()
        if not title:
            return Notice("Task title is empty.", ok=False)

        settings = self.settings
        task_counter = settings.task_counter
        file_name = format_task_file_name(task_counter, title)
        target_folder = (
            settings.absolute_backlog_folder if settings.enable_backlog else settings.root_folder
        )
        file_path = join_note_path(target_folder, file_name)

        try:
            content = await self._initial_content()
            await self.vault.ensure_folder(target_folder)

            # Keep the reclassifier away from the new file until it settles.
            self.plugin.guard.suppress(file_path, self.plugin.suppress_seconds)
            note = await self.vault.create(file_path, content)

            settings.task_counter = task_counter + 1
            self.plugin.save_settings()
        except TaskflowError as e:
            logger.error("Could not create task \"%s\": %s", file_path, e)
            return Notice(f"Could not create task: {e}", ok=False)

        logger.info("Created task %s", file_path)
        return Notice(f"Created {file_name}.", note=note)

    async def move_to_icebox(self, note: Note) -> Notice:
        """Move a task note to the configured icebox folder"""
        if not is_task_note(note):
            return Notice("Active file is not a task file.", ok=False)

        icebox = self.settings.absolute_icebox_folder
        if not icebox:
            return Notice("Icebox folder is not configured.", ok=False)
        if note.parent == icebox:
            return Notice("File is already in the icebox.", ok=False)

        return await self._move(note, icebox, "Moved to icebox.")

    async def move_out_of_backlog(self, note: Note) -> Notice:
        """Move a task note from the backlog to the root folder"""
        if not self.settings.enable_backlog:
            return Notice("Backlog is not enabled.", ok=False)
        if not is_task_note(note):
            return Notice("Active file is not a task file.", ok=False)

        target_folder = self.settings.root_folder
        if note.parent == target_folder:
            return Notice("File is already in the root folder.", ok=False)

        return await self._move(note, target_folder, "Moved out of backlog.")

    async def _move(self, note: Note, folder: str, success: str) -> Notice:
        new_path = join_note_path(folder, note.name)
        try:
            await self.vault.ensure_folder(folder)
            # The rename shows up as a change at the new path; let it settle first.
            self.plugin.guard.suppress(new_path, self.plugin.suppress_seconds)
            moved = await self.vault.rename(note, new_path)
        except TaskflowError as e:
            logger.error("Could not move \"%s\" to \"%s\": %s", note.path, new_path, e)
            return Notice(f"Could not move {note.name}: {e}", ok=False)
        logger.info("Moved \"%s\" to \"%s\"", note.path, new_path)
        return Notice(success, note=moved)
