"""Tests for standup_terminal.py: prompts and clipboard export."""

from __future__ import annotations

import asyncio
import io
import subprocess

import pytest
from rich.console import Console

import standup_terminal as term
from standup_review import ReviewOptions, ReviewWorkflow, Task, WorkflowState


@pytest.fixture
def typed(monkeypatch):
    """Feed lines to rich prompts in order."""
    def feed(*lines):
        it = iter(lines)
        monkeypatch.setattr("builtins.input", lambda *args: next(it))
    return feed


@pytest.fixture
def prompter():
    return term.RichPrompter(Console(file=io.StringIO(), force_terminal=False, width=200))


CHOICES = [("Acme", "w1"), ("Side gig", "w2"), ("Lab", "w3")]


class TestParseSelection:
    def test_commas_and_spaces(self):
        assert term.parse_selection("3, 1 2", 3) == [1, 2, 3]

    def test_duplicates_collapse(self):
        assert term.parse_selection("2 2", 3) == [2]

    def test_empty_picks_nothing(self):
        assert term.parse_selection("  ", 3) == []

    def test_out_of_range(self):
        assert term.parse_selection("4", 3) is None
        assert term.parse_selection("0", 3) is None

    def test_not_a_number(self):
        assert term.parse_selection("one", 3) is None


class TestRichPrompter:
    def test_text_accepts_empty(self, prompter, typed):
        typed("")
        assert prompter.text("Status:") == ""

    def test_confirm(self, prompter, typed):
        typed("y")
        assert prompter.confirm("Post comment to Asana?") is True

    def test_select_returns_value(self, prompter, typed):
        typed("2")
        assert prompter.select("Select a workspace:", CHOICES) == "w2"

    def test_select_reasks_on_bad_number(self, prompter, typed):
        typed("9", "1")
        assert prompter.select("Select a workspace:", CHOICES) == "w1"

    def test_checkbox(self, prompter, typed):
        typed("3,1")
        assert prompter.checkbox("Pick:", CHOICES) == ["w1", "w3"]

    def test_checkbox_reasks_on_invalid(self, prompter, typed):
        typed("7", "2")
        assert prompter.checkbox("Pick:", CHOICES) == ["w2"]


class TestCopyToClipboard:
    def test_uses_first_available_command(self, monkeypatch):
        calls = []
        monkeypatch.setattr(term.shutil, "which", lambda name: "/usr/bin/" + name if name == "xclip" else None)
        monkeypatch.setattr(term.subprocess, "run", lambda cmd, **kw: calls.append((cmd, kw["input"])))

        assert term.copy_to_clipboard("| a |") is True
        assert calls == [(["xclip", "-selection", "clipboard"], b"| a |")]

    def test_no_command_available(self, monkeypatch):
        monkeypatch.setattr(term.shutil, "which", lambda name: None)
        assert term.copy_to_clipboard("x") is False

    def test_failing_command_falls_through(self, monkeypatch):
        calls = []

        def run(cmd, **kw):
            calls.append(cmd[0])
            if cmd[0] == "pbcopy":
                raise subprocess.CalledProcessError(1, cmd)

        monkeypatch.setattr(term.shutil, "which", lambda name: "/bin/" + name)
        monkeypatch.setattr(term.subprocess, "run", run)
        assert term.copy_to_clipboard("x") is True
        assert calls == ["pbcopy", "wl-copy"]


class TestBracketedNames:
    """Task and user names are shown verbatim, never parsed as rich markup."""

    def _run(self, prompter, mode="single"):
        workflow = ReviewWorkflow(None, prompter, ReviewOptions(mode=mode))
        state = WorkflowState([Task(gid="1", name="Move [/api] routes")])
        return asyncio.run(workflow.run(state))

    def test_single_mode_confirm(self, prompter, typed):
        typed("y", "done", "[/b] closing tag", "n")
        decisions = self._run(prompter)
        assert decisions[0].comment == "[/b] closing tag"
        assert '"Move [/api] routes" (No Project / No Section)' in prompter.console.file.getvalue()

    def test_batch_mode_label(self, prompter, typed):
        typed("1", "done", "note", "n")
        decisions = self._run(prompter, mode="batch")
        assert [d.task_gid for d in decisions] == ["1"]
        assert prompter.console.file.getvalue().count("Move [/api] routes") == 2

    def test_say_prints_brackets(self, prompter):
        prompter.say("Hello, [/admin]!")
        assert "Hello, [/admin]!" in prompter.console.file.getvalue()
