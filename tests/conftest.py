"""Shared fakes for the standup tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the top-level modules importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from asana_gateway import PostError  # noqa: E402


class ScriptedPrompter:
    """Answers prompts from a queue and records everything it was asked."""

    def __init__(self, answers=None):
        self.answers = list(answers or [])
        self.asked: list[tuple[str, str]] = []
        self.said: list[str] = []

    def _next(self, kind, message):
        self.asked.append((kind, message))
        if not self.answers:
            raise AssertionError(f"No scripted answer for {kind} prompt {message!r}")
        return self.answers.pop(0)

    def say(self, message, style=None, markup=True):
        self.said.append(message)

    def text(self, message):
        return self._next("text", message)

    def confirm(self, message):
        return self._next("confirm", message)

    def select(self, message, choices):
        return self._next("select", message)

    def checkbox(self, message, choices):
        return self._next("checkbox", message)


class FakeGateway:
    def __init__(self, tasks=None, workspaces=None, fail_posts=False):
        self.tasks = tasks or []
        self.workspaces = workspaces or [{"gid": "w1", "name": "Acme"}]
        self.fail_posts = fail_posts
        self.posted: list[tuple[str, str]] = []
        self.task_queries: list[tuple[str, str]] = []

    async def get_current_user(self):
        return {"gid": "u1", "name": "Ada"}

    async def list_workspaces(self):
        return self.workspaces

    async def list_tasks(self, workspace_gid, assignee_gid):
        self.task_queries.append((workspace_gid, assignee_gid))
        return self.tasks

    async def post_comment(self, task_gid, text):
        if self.fail_posts:
            raise PostError("Could not post to /tasks/x/stories: HTTP 500")
        self.posted.append((task_gid, text))
        return {"gid": "s1", "text": text}


@pytest.fixture
def prompter_factory():
    return ScriptedPrompter


@pytest.fixture
def gateway_factory():
    return FakeGateway
