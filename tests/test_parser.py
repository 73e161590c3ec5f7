#!/usr/bin/env python3
"""Tests for Markdown task parsing and formatting."""

from datetime import date

from mstodo_sync.core.models import LocalTask, Priority, RemoteStatus, RemoteTask, RemoteTaskDraft
from mstodo_sync.obsidian.parser import (
    add_task_to_content,
    append_remote_link,
    clean_task_text,
    extract_remote_id,
    format_task_line,
    merge_task,
    parse_task_line,
    parse_tasks,
    remote_link,
    strip_remote_link,
    to_local_text,
    to_remote_draft,
    update_task_in_content,
)


LINKED_LINE = "- [ ] Buy milk 🔺 📅 2024-05-02 #home [🔗 MS To Do](ms-todo:AAMk-1=)"


class TestParseTaskLine:
    def test_parses_metadata(self):
        task = parse_task_line(LINKED_LINE, "Inbox.md", 3)

        assert task is not None
        assert task.file_path == "Inbox.md"
        assert task.line_number == 3
        assert task.text == "Buy milk 🔺 📅 2024-05-02 #home [🔗 MS To Do](ms-todo:AAMk-1=)"
        assert task.completed is False
        assert task.due_date == date(2024, 5, 2)
        assert task.priority == Priority.HIGH
        assert task.tags == ["home"]
        assert task.remote_id == "AAMk-1="
        assert task.raw_line == LINKED_LINE

    def test_completed_and_indented(self):
        task = parse_task_line("    * [X] Subtask 🔽", "a.md", 0)

        assert task.completed is True
        assert task.indent == "    "
        assert task.priority == Priority.LOW
        assert task.remote_id is None

    def test_non_task_lines(self):
        assert parse_task_line("Just a paragraph", "a.md", 0) is None
        assert parse_task_line("- plain bullet", "a.md", 0) is None
        assert parse_task_line("- [ ]", "a.md", 0) is None

    def test_legacy_marker(self):
        task = parse_task_line("- [x] Old style [ms-todo:abc123]", "a.md", 0)
        assert task.remote_id == "abc123"

    def test_invalid_due_date_is_ignored(self):
        task = parse_task_line("- [ ] Broken 📅 2024-13-45", "a.md", 0)
        assert task.due_date is None


def test_parse_tasks_line_numbers():
    content = "# Heading\n\n- [ ] First\nText\r\n- [x] Second\r\n"
    tasks = parse_tasks(content, "notes/day.md")

    assert [t.line_number for t in tasks] == [2, 4]
    assert [t.text for t in tasks] == ["First", "Second"]
    assert all(t.file_path == "notes/day.md" for t in tasks)


def test_clean_task_text_strips_everything_but_the_title():
    text = "Water plants ✅ 2024-01-02 🛫 2024-01-01 ⏰ 2024-01-03 🔁 daily ⏫ 📅 2024-01-05 #garden #home/outside [ms-todo:x]"
    assert clean_task_text(text) == "Water plants"
    assert clean_task_text("  spaced    out   title  ") == "spaced out title"


def test_non_ascii_tags_are_whole_tags():
    task = parse_task_line("- [ ] Buy bread #café #日本 #home/outside [ms-todo:x]", "a.md", 0)

    assert task.tags == ["café", "日本", "home/outside"]
    assert clean_task_text(task.text) == "Buy bread"
    assert to_remote_draft(task).body == "Tags: #café #日本 #home/outside"


def test_extract_remote_id_prefers_link_form():
    text = "Task [ms-todo:legacy] [🔗 MS To Do](ms-todo:current)"
    assert extract_remote_id(text) == "current"
    assert extract_remote_id("No link") is None


class TestLinkMarkers:
    def test_append_remote_link(self):
        assert append_remote_link("Buy milk", "t1") == "Buy milk [🔗 MS To Do](ms-todo:t1)"
        assert remote_link("t1") == "[🔗 MS To Do](ms-todo:t1)"

    def test_strip_both_forms(self):
        assert strip_remote_link("Task [🔗 MS To Do](ms-todo:abc)") == "Task"
        assert strip_remote_link("Task [ms-todo:abc] #tag") == "Task #tag"
        assert strip_remote_link("Task [ms-todo:a] [🔗 MS To Do](ms-todo:b)") == "Task"


class TestConversions:
    def test_to_remote_draft(self):
        task = parse_task_line("- [x] Buy milk ⏫ 📅 2024-05-02 #home #errands", "Inbox.md", 7)
        draft = to_remote_draft(task)

        assert draft.title == "Buy milk"
        assert draft.status == RemoteStatus.COMPLETED
        assert draft.importance == Priority.HIGH
        assert draft.due_date == date(2024, 5, 2)
        assert draft.body == "Tags: #home #errands"
        assert draft.document_path == "Inbox.md"
        assert draft.document_line == 7

    def test_to_remote_draft_defaults(self):
        draft = to_remote_draft(parse_task_line("- [ ] Plain", "a.md", 0))

        assert draft.importance == Priority.NORMAL
        assert draft.status == RemoteStatus.NOT_STARTED
        assert draft.body is None
        assert draft.due_date is None

    def test_to_local_text_with_id(self):
        remote = RemoteTask(
            id="t1",
            list_id="l1",
            title="Call mom",
            importance=Priority.HIGH,
            due_date=date(2024, 6, 1),
        )
        assert to_local_text(remote) == "Call mom 🔺 📅 2024-06-01 [🔗 MS To Do](ms-todo:t1)"

    def test_to_local_text_for_draft_has_no_link(self):
        draft = RemoteTaskDraft(title="Someday", importance=Priority.LOW)
        assert to_local_text(draft) == "Someday 🔻"

    def test_codec_round_trip(self):
        remote = RemoteTask(
            id="t9",
            list_id="l1",
            title="Renew passport",
            status=RemoteStatus.COMPLETED,
            importance=Priority.LOW,
            due_date=date(2025, 1, 31),
        )
        line = format_task_line(to_local_text(remote), remote.completed)
        task = parse_task_line(line, "Tasks.md", 0)
        draft = to_remote_draft(task)

        assert task.remote_id == "t9"
        assert (draft.title, draft.status, draft.importance, draft.due_date) == (
            remote.title,
            remote.status,
            remote.importance,
            remote.due_date,
        )


class TestMergeTask:
    def test_keeps_local_only_metadata(self):
        local = parse_task_line(
            "- [ ] Water plants ✅ 2024-01-02 🛫 2024-01-01 ⏰ 2024-01-03 🔁 daily #garden [ms-todo:t1]",
            "Garden.md",
            4,
        )
        remote = RemoteTask(
            id="t1",
            list_id="l1",
            title="Water the plants",
            status=RemoteStatus.COMPLETED,
            importance=Priority.LOW,
            due_date=date(2024, 2, 1),
        )

        merged = merge_task(local, remote)

        assert merged.text == (
            "Water the plants ✅ 2024-01-02 🛫 2024-01-01 ⏰ 2024-01-03 🔁 daily "
            "🔻 📅 2024-02-01 #garden [ms-todo:t1]"
        )
        assert merged.completed is True
        assert merged.priority == Priority.LOW
        assert merged.due_date == date(2024, 2, 1)
        assert merged.line_number == 4
        assert local.text.startswith("Water plants")

    def test_drops_completion_date_when_remote_reopened(self):
        local = parse_task_line("- [x] Done ✅ 2024-01-02 [🔗 MS To Do](ms-todo:t1)", "a.md", 0)
        remote = RemoteTask(id="t1", list_id="l1", title="Done")

        merged = merge_task(local, remote)

        assert merged.text == "Done [🔗 MS To Do](ms-todo:t1)"
        assert merged.completed is False
        assert merged.priority is None

    def test_adds_link_when_missing(self):
        local = parse_task_line("- [ ] Unlinked", "a.md", 0)
        remote = RemoteTask(id="t5", list_id="l1", title="Unlinked")

        assert merge_task(local, remote).text == "Unlinked [🔗 MS To Do](ms-todo:t5)"


class TestContentEditing:
    def test_format_task_line(self):
        assert format_task_line("Task", False) == "- [ ] Task"
        assert format_task_line("Task", True, "  ") == "  - [x] Task"

    def test_update_keeps_indent_and_other_lines(self):
        content = "# Notes\n  - [ ] Old\n- [ ] Other\n"
        task = parse_tasks(content, "a.md")[0]

        updated = update_task_in_content(content, task, "New", True)

        assert updated == "# Notes\n  - [x] New\n- [ ] Other\n"

    def test_update_out_of_range_is_noop(self):
        task = LocalTask(file_path="a.md", line_number=10, text="x", completed=False, raw_line="- [ ] x")
        assert update_task_in_content("- [ ] x\n", task, "y", False) == "- [ ] x\n"

    def test_add_task_bottom(self):
        content, line = add_task_to_content("# Tasks\n\n", "New", False)
        assert content == "# Tasks\n\n- [ ] New\n"
        assert line == 2

    def test_add_task_without_trailing_newline(self):
        content, line = add_task_to_content("# Tasks", "New", True)
        assert content == "# Tasks\n- [x] New\n"
        assert line == 1

    def test_add_task_to_empty_and_top(self):
        assert add_task_to_content("", "First") == ("- [ ] First\n", 0)
        assert add_task_to_content("- [ ] Second\n", "First", position="top") == (
            "- [ ] First\n- [ ] Second\n",
            0,
        )

    def test_update_keeps_star_bullet(self):
        content = "* [ ] Old\n\t* [x] Done\n"
        first, second = parse_tasks(content, "a.md")

        updated = update_task_in_content(content, first, "New", True)
        updated = update_task_in_content(updated, second, "Reopened", False)

        assert updated == "* [x] New\n\t* [ ] Reopened\n"
