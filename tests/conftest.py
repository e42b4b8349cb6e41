"""
Pytest configuration and fixtures for Taskflow tests
"""
import asyncio
import sys
from pathlib import Path

import pytest

# Add the cli directory to the Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "cli"))

from taskflow.plugin import TaskflowPlugin


def write_note(vault_path: Path, path: str, content: str) -> Path:
    """Create a note (and its folders) inside the vault"""
    file_path = vault_path / path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_bytes(content.encode("utf-8"))
    return file_path


def read_note(vault_path: Path, path: str) -> str:
    return (vault_path / path).read_bytes().decode("utf-8")


@pytest.fixture
def temp_vault(tmp_path):
    """Create a temporary vault directory for testing"""
    vault_path = tmp_path / "vault"
    (vault_path / ".obsidian").mkdir(parents=True)
    return vault_path


@pytest.fixture
def make_plugin(temp_vault):
    """Build a loaded plugin for the temp vault with the given settings"""
    def _make(**settings):
        plugin = TaskflowPlugin(temp_vault, suppress_seconds=0.05)
        asyncio.run(plugin.load())
        for name, value in settings.items():
            setattr(plugin.settings, name, value)
        return plugin
    return _make


@pytest.fixture
def done_plugin(make_plugin):
    """Plugin with propertyName=done, trueFolder=Done, falseFolder=Inbox, no root folder"""
    return make_plugin(root_folder="", property_name="done", true_folder="Done", false_folder="Inbox")
