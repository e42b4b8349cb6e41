"""
TaskflowPlugin: the long-lived service tying settings, vault and reclassifier together

Lifecycle:
    plugin = TaskflowPlugin(vault_path)
    await plugin.load()       # read settings, detect the task counter if needed
    ...                       # on_file_changed() / run_command()
    plugin.unload()
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import TaskflowError
from .guard import InFlightGuard
from .models import MoveResult, Note, TaskflowSettings
from .reclassifier import Reclassifier
from .settings_store import SettingsStore, load_settings
from .tasks import Notice, TaskCommands, detect_task_counter
from .vault import FileManager, MetadataCache, Vault

logger = logging.getLogger(__name__)


@dataclass
class Command:
    """A named user command; `available` mirrors Obsidian's checkCallback"""
    id: str
    name: str
    callback: Callable[[Any], Awaitable[Notice]]
    available: Callable[[], bool] = lambda: True


class TaskflowPlugin:
    """Owns the settings and reacts to note changes in one vault"""

    def __init__(self, vault_path: Path, suppress_seconds: float = 0.5,
                 settings_store: Optional[SettingsStore] = None):
        self.vault_path = Path(vault_path)
        self.suppress_seconds = suppress_seconds
        self.settings = TaskflowSettings()
        self.settings_store = settings_store or SettingsStore(self.vault_path)

        self.vault = Vault(self.vault_path)
        self.metadata_cache = MetadataCache(self.vault)
        self.file_manager = FileManager(self.vault, self.metadata_cache)
        self.guard = InFlightGuard()
        self.reclassifier = Reclassifier(
            self.vault,
            self.metadata_cache,
            self.file_manager,
            self.guard,
            get_settings=lambda: self.settings,
        )
        self.task_commands = TaskCommands(self)
        self.commands: Dict[str, Command] = {}
        self.loaded = False

    async def load(self) -> None:
        """Load settings and register commands (Obsidian's onload)"""
        self.settings, needs_counter_scan = load_settings(self.settings_store)

        self.add_command(Command("create-task", "Create task", self.task_commands.create_task))
        self.add_command(Command("move-to-icebox", "Move current task to icebox",
                                 self.task_commands.move_to_icebox))
        self.add_command(Command("move-out-of-backlog", "Move current task out of backlog",
                                 self.task_commands.move_out_of_backlog,
                                 available=lambda: self.settings.enable_backlog))

        # Scan for the highest existing task number on first install or when
        # upgrading from a version that didn't persist the counter.
        if needs_counter_scan:
            self.detect_task_counter()

        self.loaded = True
        logger.debug("Taskflow loaded for %s", self.vault_path)

    def unload(self) -> None:
        self.commands.clear()
        self.loaded = False

    def add_command(self, command: Command) -> None:
        self.commands[command.id] = command

    def available_commands(self) -> List[Command]:
        return [c for c in self.commands.values() if c.available()]

    async def run_command(self, command_id: str, arg: Any) -> Notice:
        """Run a registered command; always returns one notice"""
        command = self.commands.get(command_id)
        if command is None or not command.available():
            return Notice(f"Command '{command_id}' is not available.", ok=False)
        try:
            return await command.callback(arg)
        except Exception as e:
            logger.exception("Command %s failed", command_id)
            return Notice(f"{command.name} failed: {e}", ok=False)

    def save_settings(self) -> None:
        self.settings_store.save(self.settings)

    def detect_task_counter(self) -> int:
        """Set the task counter to one above the highest TASK number in scope"""
        self.settings.task_counter = detect_task_counter(self.vault, self.settings.root_folder)
        self.save_settings()
        logger.info("Task counter set to %d", self.settings.task_counter)
        return self.settings.task_counter

    def update_setting(self, key: str, value: Any) -> TaskflowSettings:
        """Change one option by its camelCase key and persist the settings.

        Raises TaskflowError for unknown keys; pydantic's ValidationError for
        values of the wrong type.
        """
        field_name = TaskflowSettings.field_for_option(key)
        if field_name is None:
            raise TaskflowError(
                f"Unknown setting '{key}' (options: {', '.join(TaskflowSettings.option_keys())})"
            )
        setattr(self.settings, field_name, value)
        self.save_settings()
        if field_name == "root_folder":
            self.detect_task_counter()
        return self.settings

    def resolve_note(self, path: str) -> Optional[Note]:
        """Note for a vault-relative or absolute filesystem path inside the vault"""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.vault_path.resolve())
            except ValueError:
                return None
        return self.vault.get_by_path(candidate.as_posix())

    async def on_file_changed(self, path: str) -> Optional[MoveResult]:
        """Change-notification handler registered with the watcher"""
        if not self.loaded:
            return None
        note = self.vault.get_by_path(path)
        if note is None:
            return None
        return await self.reclassifier.handle_change(note)

    async def process_all(self) -> List[MoveResult]:
        """Run the reclassifier over every note in scope"""
        results = []
        for note in self.vault.get_markdown_files(self.settings.root_folder):
            result = await self.reclassifier.handle_change(note)
            if result is not None:
                results.append(result)
        return results
