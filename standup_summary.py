"""Markdown summary of the tasks reviewed in a standup run."""

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from standup_review import ReviewDecision, Task

TASK_URL_BASE = "https://app.asana.com"

COLUMNS = ("Project", "Section", "Name", "URL", "Status", "Comment")


def task_url(task: "Task", workspace_gid: str | None = None) -> str:
    """Deep link to a task, scoped to its first project when it has one."""
    first = task.first_membership
    project_gid = first.project_gid if first else None
    if project_gid:
        return f"{TASK_URL_BASE}/{workspace_gid or 0}/{project_gid}/{task.gid}"
    return f"{TASK_URL_BASE}/0/0/{task.gid}"


def _row(cells: Iterable[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def render_summary_table(decisions: Iterable["ReviewDecision"], workspace_gid: str | None = None) -> str:
    """Render decisions as a six-column Markdown table.

    Cells are written verbatim: a ``|`` or newline inside a status or comment
    breaks the row layout.
    """
    lines = [_row(COLUMNS), "|" + "---|" * len(COLUMNS)]
    for d in decisions:
        first = d.task.first_membership
        lines.append(_row([
            (first.project_name if first else None) or "",
            (first.section_name if first else None) or "",
            d.task.name,
            task_url(d.task, workspace_gid),
            d.status,
            d.comment,
        ]))
    return "\n".join(lines) + "\n"
