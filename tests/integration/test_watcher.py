"""
Tests for the vault watcher's event filtering and debounced dispatch
"""
import asyncio

import pytest

from conftest import write_note
from taskflow.models import Note
from taskflow.watcher import VaultFileHandler, VaultWatcher


@pytest.fixture
def idle_loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def handler_for(done_plugin, idle_loop):
    def _make(debounce_delay=0.05):
        return VaultFileHandler(done_plugin, idle_loop, debounce_delay)
    return _make


class TestRelativeNotePath:
    def test_markdown_inside_vault(self, handler_for, temp_vault):
        handler = handler_for()
        assert handler.relative_note_path(temp_vault / "Inbox" / "a.md") == "Inbox/a.md"
        assert handler.relative_note_path(temp_vault / "Inbox" / "A.MD") == "Inbox/A.MD"

    def test_ignored_paths(self, handler_for, temp_vault, tmp_path):
        handler = handler_for()
        assert handler.relative_note_path(temp_vault / "Inbox" / "image.png") is None
        assert handler.relative_note_path(temp_vault / ".obsidian" / "notes.md") is None
        assert handler.relative_note_path(temp_vault / ".trash" / "a.md") is None
        assert handler.relative_note_path(tmp_path / "outside.md") is None

    def test_template_folder_and_template_file_are_skipped(self, done_plugin, temp_vault, idle_loop):
        (temp_vault / ".obsidian" / "templates.json").write_text('{"folder": "Templates"}', encoding="utf-8")
        done_plugin.settings.template_path = "Setup/task.md"
        handler = VaultFileHandler(done_plugin, idle_loop)
        assert handler.relative_note_path(temp_vault / "Templates" / "task.md") is None
        assert handler.relative_note_path(temp_vault / "Setup" / "task.md") is None
        assert handler.relative_note_path(temp_vault / "Templates2" / "a.md") == "Templates2/a.md"


def test_debounced_notifications_reach_the_reclassifier(done_plugin, temp_vault):
    note_file = write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")

    async def scenario():
        handler = VaultFileHandler(done_plugin, asyncio.get_running_loop(), debounce_delay=0.05)
        for _ in range(3):
            handler.notify(note_file)
        assert len(handler.timers) == 1
        for _ in range(40):
            await asyncio.sleep(0.05)
            if (temp_vault / "Done" / "a.md").exists() and not handler.timers:
                break
        return handler

    handler = asyncio.run(scenario())
    assert (temp_vault / "Done" / "a.md").exists()
    assert not (temp_vault / "Inbox" / "a.md").exists()
    assert handler.timers == {}


def test_cancel_pending_drops_scheduled_notifications(done_plugin, temp_vault):
    note_file = write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")

    async def scenario():
        handler = VaultFileHandler(done_plugin, asyncio.get_running_loop(), debounce_delay=0.1)
        handler.notify(note_file)
        handler.cancel_pending()
        await asyncio.sleep(0.3)

    asyncio.run(scenario())
    assert (temp_vault / "Inbox" / "a.md").exists()


def test_watcher_start_and_stop(done_plugin):
    async def scenario():
        watcher = VaultWatcher(done_plugin, debounce_delay=0.05)
        watcher.start()
        running = watcher.running
        watcher.stop()
        return running, watcher.running

    assert asyncio.run(scenario()) == (True, False)


def test_task_moved_to_icebox_stays_there(make_plugin, temp_vault):
    plugin = make_plugin()
    write_note(temp_vault, "taskflow/[TASK-001] x.md", "---\n✅: false\n---\n")
    icebox_path = "taskflow/icebox/[TASK-001] x.md"

    async def scenario():
        handler = VaultFileHandler(plugin, asyncio.get_running_loop(), debounce_delay=0.05)
        notice = await plugin.task_commands.move_to_icebox(Note("taskflow/[TASK-001] x.md"))
        assert notice.ok
        handler.notify(temp_vault / icebox_path)
        await asyncio.sleep(0.3)
        # A later edit after the suppression window has expired
        handler.notify(temp_vault / icebox_path)
        await asyncio.sleep(0.3)

    asyncio.run(scenario())
    assert (temp_vault / icebox_path).exists()
    assert not (temp_vault / "taskflow/[TASK-001] x.md").exists()
