"""
Integration tests for the reclassifier against a real vault directory
"""
import asyncio
import logging
import re
from datetime import datetime

import pytest

from conftest import read_note, write_note
from taskflow.errors import FolderCollisionError, ReclassificationError
from taskflow.frontmatter import parse_frontmatter
from taskflow.guard import InFlightGuard
from taskflow.models import Note, TaskflowSettings
from taskflow.reclassifier import Reclassifier
from taskflow.vault import FileManager, MetadataCache, Vault

ISO_OFFSET = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[+-]\d{2}:\d{2}$")

BODY = "\n# Weekly review\n\n- [ ] tidy inbox\r\n- [x] send report\n"


def process(plugin, path):
    return asyncio.run(plugin.reclassifier.process_file(Note(path)))


class SlowVault(Vault):
    """Vault whose renames take a while, to expose overlapping notifications"""

    def __init__(self, vault_path, delay=0.05):
        super().__init__(vault_path)
        self.delay = delay
        self.renames = []

    async def rename(self, note, new_path):
        self.renames.append((note.path, new_path))
        await asyncio.sleep(self.delay)
        return await super().rename(note, new_path)


class TestTrueFalseRoundTrip:
    def test_true_moves_to_done_and_false_moves_back(self, done_plugin, temp_vault):
        original = f"---\ndone: true\n---\n{BODY}"
        write_note(temp_vault, "Inbox/review.md", original)

        result = process(done_plugin, "Inbox/review.md")
        assert result.original_path == "Inbox/review.md"
        assert result.new_path == "Done/review.md"
        assert not (temp_vault / "Inbox/review.md").exists()
        assert read_note(temp_vault, "Done/review.md") == original

        flipped = f"---\ndone: false\n---\n{BODY}"
        write_note(temp_vault, "Done/review.md", flipped)
        result = process(done_plugin, "Done/review.md")
        assert result.new_path == "Inbox/review.md"
        assert read_note(temp_vault, "Inbox/review.md") == flipped

    def test_second_notification_is_a_noop(self, done_plugin, temp_vault):
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\nbody\n")
        assert process(done_plugin, "Inbox/a.md") is not None
        assert process(done_plugin, "Done/a.md") is None
        assert (temp_vault / "Done/a.md").exists()

    def test_stale_notification_for_moved_note_is_a_noop(self, done_plugin, temp_vault):
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\nbody\n")
        process(done_plugin, "Inbox/a.md")
        assert process(done_plugin, "Inbox/a.md") is None


@pytest.mark.parametrize("value", ["1", "0", "'true'", "null", "yes", ""])
def test_non_boolean_values_do_not_move(done_plugin, temp_vault, value):
    write_note(temp_vault, "Inbox/a.md", f"---\ndone: {value}\n---\nbody\n")
    assert process(done_plugin, "Inbox/a.md") is None
    assert (temp_vault / "Inbox/a.md").exists()


def test_note_without_frontmatter_is_ignored(done_plugin, temp_vault):
    write_note(temp_vault, "Inbox/plain.md", "# no frontmatter\n")
    assert process(done_plugin, "Inbox/plain.md") is None


def test_incomplete_settings_log_a_warning(make_plugin, temp_vault, caplog):
    plugin = make_plugin(root_folder="", property_name="", true_folder="Done", false_folder="Inbox")
    write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")
    with caplog.at_level(logging.WARNING, logger="taskflow.reclassifier"):
        assert process(plugin, "Inbox/a.md") is None
    assert "Settings are incomplete" in caplog.text
    assert len(plugin.guard) == 0


class TestCompletedDate:
    @pytest.fixture
    def plugin(self, done_plugin):
        done_plugin.settings.enable_completed_date = True
        done_plugin.settings.completed_date_property_name = "completed_date"
        return done_plugin

    def test_true_stamps_iso_timestamp(self, plugin, temp_vault):
        write_note(temp_vault, "Inbox/a.md", f"---\ndone: true\n---\n{BODY}")
        result = process(plugin, "Inbox/a.md")
        assert result.completed_date_set

        content = read_note(temp_vault, "Done/a.md")
        frontmatter, body = parse_frontmatter(content)
        assert ISO_OFFSET.match(frontmatter["completed_date"])
        assert datetime.fromisoformat(frontmatter["completed_date"]).tzinfo is not None
        assert list(frontmatter) == ["done", "completed_date"]
        assert body == BODY

    def test_existing_timestamp_is_kept(self, plugin, temp_vault):
        original = f"---\ndone: true\ncompleted_date: 2020-01-01T08:00:00+00:00\n---\n{BODY}"
        write_note(temp_vault, "Inbox/a.md", original)
        result = process(plugin, "Inbox/a.md")
        assert not result.completed_date_set
        assert read_note(temp_vault, "Done/a.md") == original

    def test_false_removes_timestamp(self, plugin, temp_vault):
        write_note(temp_vault, "Done/a.md",
                   f"---\ndone: false\ncompleted_date: 2020-01-01T08:00:00+00:00\ntags: x\n---\n{BODY}")
        result = process(plugin, "Done/a.md")
        assert result.completed_date_cleared

        frontmatter, body = parse_frontmatter(read_note(temp_vault, "Inbox/a.md"))
        assert frontmatter == {"done": False, "tags": "x"}
        assert body == BODY

    def test_true_false_true_cycle(self, plugin, temp_vault):
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\nbody\n")
        process(plugin, "Inbox/a.md")
        first_stamp = parse_frontmatter(read_note(temp_vault, "Done/a.md"))[0]["completed_date"]

        # Re-notifying while already in Done does not stamp again
        assert process(plugin, "Done/a.md") is None
        assert parse_frontmatter(read_note(temp_vault, "Done/a.md"))[0]["completed_date"] == first_stamp

        content = read_note(temp_vault, "Done/a.md").replace("done: true", "done: false")
        write_note(temp_vault, "Done/a.md", content)
        process(plugin, "Done/a.md")
        assert "completed_date" not in parse_frontmatter(read_note(temp_vault, "Inbox/a.md"))[0]

    def test_other_values_keep_their_meaning_when_stamping(self, plugin, temp_vault):
        write_note(temp_vault, "Inbox/a.md",
                   "---\ndone: true\nestimate: 1:30\ncode: 010\nsize: 1_000\nlabel: '007'\n---\nbody\n")
        assert process(plugin, "Inbox/a.md").completed_date_set

        content = read_note(temp_vault, "Done/a.md")
        assert content.startswith(
            "---\ndone: true\nestimate: 1:30\ncode: 10\nsize: 1_000\nlabel: '007'\ncompleted_date: "
        )
        frontmatter, body = parse_frontmatter(content)
        assert frontmatter["estimate"] == "1:30"
        assert frontmatter["size"] == "1_000"
        assert frontmatter["label"] == "007"
        assert body == "body\n"

    def test_crlf_note_keeps_crlf_line_endings(self, plugin, temp_vault):
        write_note(temp_vault, "Done/a.md", "---\r\ndone: false\r\ncompleted_date: 2020-01-01\r\ntags: x\r\n---\r\nbody\r\n")
        assert process(plugin, "Done/a.md").completed_date_cleared
        assert read_note(temp_vault, "Inbox/a.md") == "---\r\ndone: false\r\ntags: x\r\n---\r\nbody\r\n"

    def test_disabled_leaves_frontmatter_alone(self, done_plugin, temp_vault):
        original = "---\ndone: true\n---\nbody\n"
        write_note(temp_vault, "Inbox/a.md", original)
        result = process(done_plugin, "Inbox/a.md")
        assert not result.completed_date_set
        assert read_note(temp_vault, "Done/a.md") == original


class TestTargetFolderCreation:
    def test_missing_intermediate_folders_are_created(self, make_plugin, temp_vault):
        plugin = make_plugin(root_folder="", property_name="done",
                             true_folder="Archive/2026/Q4", false_folder="Inbox")
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")
        result = process(plugin, "Inbox/a.md")
        assert result.new_path == "Archive/2026/Q4/a.md"
        assert (temp_vault / "Archive/2026/Q4/a.md").is_file()

    def test_file_in_the_way_aborts_without_changes(self, make_plugin, temp_vault):
        plugin = make_plugin(root_folder="", property_name="done",
                             true_folder="Archive/2026", false_folder="Inbox")
        write_note(temp_vault, "Archive", "not a folder")
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")

        with pytest.raises(ReclassificationError) as excinfo:
            process(plugin, "Inbox/a.md")
        assert isinstance(excinfo.value.cause, FolderCollisionError)
        assert excinfo.value.target == "Archive/2026/a.md"
        assert (temp_vault / "Inbox/a.md").is_file()
        assert (temp_vault / "Archive").is_file()
        assert len(plugin.guard) == 0

    def test_change_listener_logs_and_swallows_errors(self, make_plugin, temp_vault, caplog):
        plugin = make_plugin(root_folder="", property_name="done",
                             true_folder="Archive/2026", false_folder="Inbox")
        write_note(temp_vault, "Archive", "not a folder")
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")

        with caplog.at_level(logging.ERROR, logger="taskflow.reclassifier"):
            result = asyncio.run(plugin.reclassifier.handle_change(Note("Inbox/a.md")))
        assert result is None
        assert "Inbox/a.md" in caplog.text
        assert "Archive/2026/a.md" in caplog.text

    def test_name_collision_in_target_leaves_note_in_place(self, done_plugin, temp_vault):
        write_note(temp_vault, "Done/a.md", "existing\n")
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")
        assert asyncio.run(done_plugin.reclassifier.handle_change(Note("Inbox/a.md"))) is None
        assert read_note(temp_vault, "Done/a.md") == "existing\n"
        assert (temp_vault / "Inbox/a.md").exists()


class TestRootScope:
    def test_note_outside_root_is_never_moved(self, make_plugin, temp_vault):
        plugin = make_plugin(root_folder="taskflow", property_name="done", true_folder="archive")
        write_note(temp_vault, "elsewhere/a.md", "---\ndone: true\n---\n")
        write_note(temp_vault, "taskflow-old/b.md", "---\ndone: true\n---\n")
        assert process(plugin, "elsewhere/a.md") is None
        assert process(plugin, "taskflow-old/b.md") is None
        assert (temp_vault / "elsewhere/a.md").exists()

    def test_folders_resolve_against_root(self, make_plugin, temp_vault):
        plugin = make_plugin(root_folder="taskflow", property_name="done", true_folder="archive")
        write_note(temp_vault, "taskflow/a.md", "---\ndone: true\n---\n")
        assert process(plugin, "taskflow/a.md").new_path == "taskflow/archive/a.md"

        content = read_note(temp_vault, "taskflow/archive/a.md").replace("true", "false")
        write_note(temp_vault, "taskflow/archive/a.md", content)
        # Blank false folder sends the note back to the root folder
        assert process(plugin, "taskflow/archive/a.md").new_path == "taskflow/a.md"


class TestReentrancy:
    def build(self, temp_vault):
        vault = SlowVault(temp_vault)
        cache = MetadataCache(vault)
        settings = TaskflowSettings(root_folder="", property_name="done", true_folder="Done",
                                    false_folder="Inbox")
        reclassifier = Reclassifier(vault, cache, FileManager(vault, cache), InFlightGuard(),
                                    get_settings=lambda: settings)
        return vault, reclassifier

    def test_overlapping_notification_for_same_note_is_dropped(self, temp_vault):
        vault, reclassifier = self.build(temp_vault)
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")
        note = Note("Inbox/a.md")

        async def scenario():
            first = asyncio.create_task(reclassifier.process_file(note))
            await asyncio.sleep(0)
            assert "Inbox/a.md" in reclassifier.guard
            second = await reclassifier.process_file(note)
            assert not first.done()
            return await first, second

        first, second = asyncio.run(scenario())
        assert first.new_path == "Done/a.md"
        assert second is None
        assert vault.renames == [("Inbox/a.md", "Done/a.md")]
        assert len(reclassifier.guard) == 0

    def test_different_notes_are_processed_concurrently(self, temp_vault):
        vault, reclassifier = self.build(temp_vault)
        write_note(temp_vault, "Inbox/a.md", "---\ndone: true\n---\n")
        write_note(temp_vault, "Inbox/b.md", "---\ndone: true\n---\n")

        async def scenario():
            return await asyncio.gather(
                reclassifier.process_file(Note("Inbox/a.md")),
                reclassifier.process_file(Note("Inbox/b.md")),
            )

        results = asyncio.run(scenario())
        assert sorted(r.new_path for r in results) == ["Done/a.md", "Done/b.md"]


class TestParkedFolders:
    def test_unchecked_task_stays_in_icebox(self, make_plugin, temp_vault):
        plugin = make_plugin()
        write_note(temp_vault, "taskflow/icebox/[TASK-001] a.md", "---\n✅: false\n---\n")
        assert process(plugin, "taskflow/icebox/[TASK-001] a.md") is None
        assert (temp_vault / "taskflow/icebox/[TASK-001] a.md").exists()

    def test_checked_task_in_icebox_is_archived(self, make_plugin, temp_vault):
        plugin = make_plugin()
        write_note(temp_vault, "taskflow/icebox/[TASK-001] a.md", "---\n✅: true\n---\n")
        result = process(plugin, "taskflow/icebox/[TASK-001] a.md")
        assert result.new_path == "taskflow/archive/[TASK-001] a.md"

    def test_backlog_is_parked_only_when_enabled(self, make_plugin, temp_vault):
        plugin = make_plugin(enable_backlog=True)
        write_note(temp_vault, "taskflow/backlog/[TASK-002] b.md", "---\n✅: false\n---\n")
        assert process(plugin, "taskflow/backlog/[TASK-002] b.md") is None

        plugin.settings.enable_backlog = False
        result = process(plugin, "taskflow/backlog/[TASK-002] b.md")
        assert result.new_path == "taskflow/[TASK-002] b.md"

    def test_icebox_shared_with_true_folder_is_not_parked(self, make_plugin, temp_vault):
        plugin = make_plugin(icebox_folder="archive")
        write_note(temp_vault, "taskflow/archive/[TASK-003] c.md", "---\n✅: false\n---\n")
        result = process(plugin, "taskflow/archive/[TASK-003] c.md")
        assert result.new_path == "taskflow/[TASK-003] c.md"
