"""Standup review: task model, recency filter, and the review workflow.

A run moves through a fixed sequence of phases::

    SelectingWorkspace → FetchingTasks → ReviewingTasks → Summarizing → Exporting → Done

Each phase is a small dataclass carrying only what that step needs;
:class:`StandupSession` steps from one to the next until it reaches ``Done``.
"""

import datetime as _dt
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from asana_gateway import AsanaGateway, FetchError, PostError
from standup_summary import render_summary_table

logger = logging.getLogger(__name__)

RECENT_WINDOW = _dt.timedelta(days=7)

MODES = ("single", "batch")
POST_ERROR_POLICIES = ("continue", "abort")

NO_PROJECT = "No Project"
NO_SECTION = "No Section"


# ── Model ────────────────────────────────────────────────────


def _parse_timestamp(value: Any) -> _dt.datetime | None:
    if not value:
        return None
    try:
        parsed = _dt.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring unparseable timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_dt.timezone.utc)
    return parsed


@dataclass(frozen=True)
class Membership:
    project_gid: str | None = None
    project_name: str | None = None
    section_gid: str | None = None
    section_name: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Membership":
        project = data.get("project") or {}
        section = data.get("section") or {}
        return cls(
            project_gid=project.get("gid"),
            project_name=project.get("name"),
            section_gid=section.get("gid"),
            section_name=section.get("name"),
        )


@dataclass(frozen=True)
class Task:
    gid: str
    name: str = ""
    notes: str = ""
    completed: bool = False
    due_on: str | None = None
    created_at: _dt.datetime | None = None
    modified_at: _dt.datetime | None = None
    tags: tuple[str, ...] = ()
    memberships: tuple[Membership, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Task":
        """Build a task from an Asana task payload; a missing gid is a fetch error."""
        gid = data.get("gid")
        if not gid:
            raise FetchError(f"Asana returned a task without a gid: {data.get('name', '<unnamed>')!r}")
        tags = data.get("tags") or []
        return cls(
            gid=str(gid),
            name=data.get("name") or "",
            notes=data.get("notes") or "",
            completed=bool(data.get("completed")),
            due_on=data.get("due_on"),
            created_at=_parse_timestamp(data.get("created_at")),
            modified_at=_parse_timestamp(data.get("modified_at")),
            tags=tuple(t["name"] for t in tags if isinstance(t, dict) and t.get("name")),
            memberships=tuple(Membership.from_api(m) for m in data.get("memberships") or []),
        )

    @property
    def first_membership(self) -> Membership | None:
        # Only the first membership is shown, even for multi-homed tasks.
        return self.memberships[0] if self.memberships else None


class CommentPost(str, enum.Enum):
    SKIPPED = "skipped"
    POSTED = "posted"
    FAILED = "failed"


@dataclass(frozen=True)
class ReviewDecision:
    task: Task
    status: str
    comment: str
    post: CommentPost = CommentPost.SKIPPED

    @property
    def task_gid(self) -> str:
        return self.task.gid

    @property
    def posted(self) -> bool:
        return self.post is CommentPost.POSTED


@dataclass
class WorkflowState:
    """Cursor over the candidate tasks plus the decisions made so far."""

    tasks: list[Task]
    cursor: int = 0
    decisions: list[ReviewDecision] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.cursor >= len(self.tasks)

    @property
    def current(self) -> Task:
        return self.tasks[self.cursor]

    def advance(self) -> None:
        self.cursor += 1

    def record(self, decision: ReviewDecision) -> None:
        self.decisions.append(decision)


@dataclass(frozen=True)
class ReviewOptions:
    mode: str = "single"
    on_post_error: str = "continue"

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.on_post_error not in POST_ERROR_POLICIES:
            raise ValueError(f"on_post_error must be one of {POST_ERROR_POLICIES}, got {self.on_post_error!r}")


# ── Phases ───────────────────────────────────────────────────


@dataclass(frozen=True)
class SelectingWorkspace:
    pass


@dataclass(frozen=True)
class FetchingTasks:
    workspace_gid: str
    workspace_name: str = ""


@dataclass(frozen=True)
class ReviewingTasks:
    workspace_gid: str
    state: WorkflowState


@dataclass(frozen=True)
class Summarizing:
    workspace_gid: str
    decisions: tuple[ReviewDecision, ...]


@dataclass(frozen=True)
class Exporting:
    decisions: tuple[ReviewDecision, ...]
    table: str


@dataclass(frozen=True)
class Done:
    decisions: tuple[ReviewDecision, ...]
    table: str
    copied: bool = False


Phase = SelectingWorkspace | FetchingTasks | ReviewingTasks | Summarizing | Exporting | Done


# ── Filtering ────────────────────────────────────────────────


def recent_cutoff(now: _dt.datetime | None = None) -> _dt.datetime:
    now = now or _dt.datetime.now(_dt.timezone.utc)
    return now - RECENT_WINDOW


def filter_recent(tasks: Iterable[Task], cutoff: _dt.datetime) -> list[Task]:
    """Keep tasks modified at or after ``cutoff``, in their original order.

    Tasks without a modification timestamp count as not recently touched.
    """
    return [t for t in tasks if t.modified_at is not None and t.modified_at >= cutoff]


def describe_task(task: Task) -> str:
    """Prompt label for a task: name plus its first project and section."""
    first = task.first_membership
    project = (first.project_name if first else None) or NO_PROJECT
    section = (first.section_name if first else None) or NO_SECTION
    return f'"{task.name}" ({project} / {section})'


# ── Review workflow ──────────────────────────────────────────


class ReviewWorkflow:
    """Collects one decision per task the user says they worked on.

    ``prompter`` supplies the blocking terminal primitives (``confirm``,
    ``text``, ``checkbox``, ``say``); see ``standup_terminal.RichPrompter``.
    """

    def __init__(self, gateway: AsanaGateway, prompter: Any, options: ReviewOptions | None = None):
        self.gateway = gateway
        self.prompter = prompter
        self.options = options or ReviewOptions()

    async def run(self, state: WorkflowState) -> list[ReviewDecision]:
        picked: set[str] | None = None
        if self.options.mode == "batch" and not state.finished:
            picked = set(self.prompter.checkbox(
                "Select the tasks you worked on today:",
                [(describe_task(t), t.gid) for t in state.tasks[state.cursor:]],
            ))
            logger.debug(f"Batch selection picked {len(picked)} of {len(state.tasks)} tasks")

        while not state.finished:
            task = state.current
            if picked is None:
                include = self.prompter.confirm(
                    f"Add {describe_task(task)} to the list of tasks worked on today?"
                )
            else:
                include = task.gid in picked
                if include:
                    self.prompter.say(describe_task(task))
            if include:
                state.record(await self.review_task(task))
            state.advance()
        return state.decisions

    async def review_task(self, task: Task) -> ReviewDecision:
        status = self.prompter.text("Status:")
        comment = self.prompter.text("Comment:")
        post = CommentPost.SKIPPED
        if self.prompter.confirm("Post comment to Asana?"):
            try:
                await self.gateway.post_comment(task.gid, comment)
            except PostError as exc:
                if self.options.on_post_error == "abort":
                    raise
                logger.warning(f"Posting comment to task {task.gid} failed: {exc}")
                self.prompter.say(f"Comment not posted: {exc}", style="yellow")
                post = CommentPost.FAILED
            else:
                self.prompter.say("Comment posted to Asana.")
                post = CommentPost.POSTED
        return ReviewDecision(task=task, status=status, comment=comment, post=post)


# ── Session ──────────────────────────────────────────────────


class StandupSession:
    """One end-to-end standup run against a single gateway."""

    def __init__(
        self,
        gateway: AsanaGateway,
        prompter: Any,
        options: ReviewOptions | None = None,
        clipboard: Callable[[str], bool] | None = None,
        copy: bool | None = None,
        now: Callable[[], _dt.datetime] | None = None,
    ):
        self.gateway = gateway
        self.prompter = prompter
        self.options = options or ReviewOptions()
        self.clipboard = clipboard
        self.copy = copy
        self.now = now or (lambda: _dt.datetime.now(_dt.timezone.utc))
        self.me: dict[str, Any] = {}

    async def run(self) -> Done:
        self.me = await self.gateway.get_current_user()
        self.prompter.say(f"Hello, {self.me['name']}!")
        phase: Phase = SelectingWorkspace()
        while not isinstance(phase, Done):
            logger.debug(f"Entering phase {type(phase).__name__}")
            phase = await self.step(phase)
        return phase

    async def step(self, phase: Phase) -> Phase:
        if isinstance(phase, SelectingWorkspace):
            workspaces = await self.gateway.list_workspaces()
            gid = self.prompter.select(
                "Select a workspace:", [(w["name"], w["gid"]) for w in workspaces]
            )
            names = {w["gid"]: w["name"] for w in workspaces}
            return FetchingTasks(workspace_gid=gid, workspace_name=names.get(gid, ""))

        if isinstance(phase, FetchingTasks):
            self.prompter.say(f'Fetching tasks from "{phase.workspace_name or phase.workspace_gid}"...')
            raw = await self.gateway.list_tasks(phase.workspace_gid, self.me["gid"])
            tasks = [Task.from_api(t) for t in raw]
            self.prompter.say(f"Found {len(tasks)} tasks.")
            recent = filter_recent(tasks, recent_cutoff(self.now()))
            days = RECENT_WINDOW.days
            self.prompter.say(f"Found {len(recent)} tasks modified in the last {days} days.")
            return ReviewingTasks(workspace_gid=phase.workspace_gid, state=WorkflowState(recent))

        if isinstance(phase, ReviewingTasks):
            workflow = ReviewWorkflow(self.gateway, self.prompter, self.options)
            decisions = await workflow.run(phase.state)
            return Summarizing(workspace_gid=phase.workspace_gid, decisions=tuple(decisions))

        if isinstance(phase, Summarizing):
            table = render_summary_table(phase.decisions, phase.workspace_gid)
            self.prompter.say("\nTasks worked on today:")
            self.prompter.say(table, markup=False)
            return Exporting(decisions=phase.decisions, table=table)

        if isinstance(phase, Exporting):
            copy = self.copy
            if copy is None:
                copy = self.prompter.confirm("Copy markdown output to clipboard?")
            copied = False
            if copy and self.clipboard is not None:
                copied = self.clipboard(phase.table)
                if copied:
                    self.prompter.say("Copied to clipboard!")
                else:
                    self.prompter.say("Could not copy to clipboard.", style="yellow")
            return Done(decisions=phase.decisions, table=phase.table, copied=copied)

        raise TypeError(f"Unknown phase {phase!r}")
