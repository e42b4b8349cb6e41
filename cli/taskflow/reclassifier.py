"""
Reclassifier: moves notes between folders based on a boolean frontmatter property

Control flow for one change notification:
    guard check -> scope check -> settings check -> read frontmatter
    -> classify -> (no-op | ensure folder, rename, patch completed date)
    -> guard release

The rename and the frontmatter patch are two separate writes. If the patch
fails the note stays in its new folder without the completed date change.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .errors import ReclassificationError
from .guard import InFlightGuard
from .models import MoveResult, Note, TaskflowSettings
from .paths import is_in_scope, join_note_path
from .vault import FileManager, MetadataCache, Vault

logger = logging.getLogger(__name__)


def completed_timestamp(now: Optional[datetime] = None) -> str:
    """Current local time as ISO-8601 with an explicit UTC offset"""
    return (now or datetime.now()).astimezone().isoformat(timespec="seconds")


def classify(frontmatter: Optional[Dict[str, Any]], settings: TaskflowSettings) -> Optional[str]:
    """Target folder for a note's frontmatter, or None when nothing should happen.

    Only the literal booleans true/false classify; 1, 0, "true", null and a
    missing key do not.
    """
    if not frontmatter:
        return None
    value = frontmatter.get(settings.property_name)
    if value is True:
        return settings.absolute_true_folder
    if value is False:
        return settings.absolute_false_folder
    return None


class Reclassifier:
    """Reacts to note changes by moving the note into its true/false folder"""

    def __init__(
        self,
        vault: Vault,
        metadata_cache: MetadataCache,
        file_manager: FileManager,
        guard: InFlightGuard,
        get_settings: Callable[[], TaskflowSettings],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.vault = vault
        self.metadata_cache = metadata_cache
        self.file_manager = file_manager
        self.guard = guard
        self.get_settings = get_settings
        self.clock = clock

    async def handle_change(self, note: Note) -> Optional[MoveResult]:
        """Change listener entry point. Never raises."""
        try:
            return await self.process_file(note)
        except ReclassificationError as e:
            logger.error("Error processing \"%s\" (target \"%s\"): %s", e.source, e.target, e.cause,
                         exc_info=e.cause)
        except Exception:
            logger.exception("Error processing \"%s\"", note.path)
        return None

    async def process_file(self, note: Note) -> Optional[MoveResult]:
        """Classify `note` and move it if needed. Returns None for a no-op."""
        with self.guard.hold(note.path) as acquired:
            if not acquired:
                logger.debug("Already processing %s, ignoring notification", note.path)
                return None
            return await self._reclassify(note, self.get_settings())

    async def _reclassify(self, note: Note, settings: TaskflowSettings) -> Optional[MoveResult]:
        original_path = note.path

        # If a root folder is configured, only process files inside it.
        if not is_in_scope(original_path, settings.root_folder):
            return None

        missing = settings.missing_required()
        if missing:
            logger.warning("Settings are incomplete (missing %s), skipping %s",
                           ", ".join(missing), original_path)
            return None

        frontmatter = self.metadata_cache.get_frontmatter(note)
        if frontmatter is None:
            return None

        target_folder = classify(frontmatter, settings)
        if target_folder is None:
            return None
        value = frontmatter[settings.property_name]

        if note.parent == target_folder:
            return None

        # Unchecked tasks parked in the icebox or backlog are left there
        if value is False and note.parent in settings.parked_folders():
            return None

        new_path = join_note_path(target_folder, note.name)
        try:
            await self.vault.ensure_folder(target_folder)

            # 1. Move the file first.
            moved = await self.vault.rename(note, new_path)
            self.metadata_cache.forget(original_path)
            logger.info("Moved \"%s\" to \"%s\"", original_path, new_path)

            # 2. Then, modify the frontmatter in the new location.
            result = MoveResult(original_path=original_path, new_path=new_path, value=value)
            if settings.enable_completed_date and settings.completed_date_property_name:
                await self._update_completed_date(moved, value, settings, result)
            return result
        except Exception as e:
            raise ReclassificationError(original_path, new_path, e) from e

    async def _update_completed_date(self, note: Note, value: bool,
                                     settings: TaskflowSettings, result: MoveResult) -> None:
        key = settings.completed_date_property_name

        if value:
            def stamp(frontmatter: Dict[str, Any]) -> None:
                # Never overwrite an existing completion date
                if not frontmatter.get(key):
                    frontmatter[key] = completed_timestamp(self.clock())

            result.completed_date_set = await self.file_manager.process_front_matter(note, stamp)
        else:
            def clear(frontmatter: Dict[str, Any]) -> None:
                frontmatter.pop(key, None)

            result.completed_date_cleared = await self.file_manager.process_front_matter(note, clear)
