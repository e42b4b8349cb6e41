"""
Settings store and Obsidian configuration reader

Plugin settings live where Obsidian keeps them for a community plugin:
<vault>/.obsidian/plugins/taskflow/data.json

Usage:
    store = SettingsStore(vault_path)
    data = store.load()          # dict or None when nothing saved yet
    store.save(settings)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .errors import TaskflowIOError
from .models import TaskflowSettings

logger = logging.getLogger(__name__)

PLUGIN_ID = "taskflow"


class SettingsStore:
    """Loads and saves TaskflowSettings as the plugin's data.json"""

    def __init__(self, vault_path: Path, plugin_id: str = PLUGIN_ID):
        self.vault_path = Path(vault_path)
        self.obsidian_dir = self.vault_path / ".obsidian"
        self.data_file = self.obsidian_dir / "plugins" / plugin_id / "data.json"

    def load(self) -> Optional[Dict[str, Any]]:
        """Saved settings data, or None when nothing has been saved yet"""
        if not self.data_file.exists():
            return None
        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s, using defaults: %s", self.data_file, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a JSON object", self.data_file)
            return None
        return data

    def save(self, settings: TaskflowSettings) -> None:
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.data_file, 'w', encoding='utf-8') as f:
                json.dump(settings.to_data(), f, indent=2, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            raise TaskflowIOError(f"Could not save settings to {self.data_file}: {e}") from e


def load_settings(store: SettingsStore) -> tuple[TaskflowSettings, bool]:
    """Merge saved data over the defaults.

    Returns:
        tuple: (settings, needs_counter_scan) where needs_counter_scan is True
        when no task counter was saved (fresh install or legacy data).
    """
    saved = store.load() or {}
    try:
        settings = TaskflowSettings.model_validate(saved)
    except ValidationError:
        saved = _drop_invalid_options(store, saved)
        settings = TaskflowSettings.model_validate(saved)
    needs_counter_scan = "taskCounter" not in saved
    return settings, needs_counter_scan


def _drop_invalid_options(store: SettingsStore, saved: Dict[str, Any]) -> Dict[str, Any]:
    """Saved options that validate on their own; the rest fall back to defaults"""
    valid = {}
    for key, value in saved.items():
        try:
            TaskflowSettings.model_validate({key: value})
        except ValidationError as e:
            logger.warning("Ignoring invalid setting %s=%r in %s: %s",
                           key, value, store.data_file, e.errors()[0]["msg"])
            continue
        valid[key] = value
    return valid


class ObsidianConfigReader:
    """Reads the template folder from Obsidian's core Templates plugin settings"""

    def __init__(self, vault_path: Path):
        self.vault_path = Path(vault_path)
        self.obsidian_dir = self.vault_path / ".obsidian"
        self.templates_config_file = self.obsidian_dir / "templates.json"

    def is_obsidian_vault(self) -> bool:
        """Check if the path is a valid Obsidian vault"""
        return self.obsidian_dir.exists() and self.obsidian_dir.is_dir()

    def is_templates_enabled(self) -> bool:
        return self.templates_config_file.exists()

    def get_template_folder(self) -> Optional[str]:
        """
        Get template folder path from templates.json

        Returns:
            str - Template folder path (relative to vault) or None if not found
        """
        if not self.is_templates_enabled():
            return None

        try:
            with open(self.templates_config_file, 'r', encoding='utf-8') as f:
                folder = json.load(f).get('folder')
        except (OSError, json.JSONDecodeError, AttributeError) as e:
            logger.warning("Could not read templates.json: %s", e)
            return None
        return folder.strip("/") if folder else None
