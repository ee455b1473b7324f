"""Asana gateway — thin async client over the Asana REST API.

Covers the four calls the standup review needs: the current user, the
user's workspaces, the tasks assigned to them, and posting a story
(comment) back to a task.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://app.asana.com/api/1.0"
DEFAULT_TIMEOUT = 30.0
PAGE_SIZE = 100

TASK_FIELDS = (
    "name",
    "notes",
    "completed",
    "due_on",
    "created_at",
    "modified_at",
    "tags.name",
    "memberships.project.name",
    "memberships.section.name",
)


# ── Errors ───────────────────────────────────────────────────


class StandupError(Exception):
    """Base class for failures that end a standup run."""


class CredentialError(StandupError):
    """Missing or rejected Personal Access Token."""


class FetchError(StandupError):
    """A read call (user, workspaces, tasks) returned no usable payload."""


class PostError(StandupError):
    """Posting a story to a task failed."""


# ── Configuration ────────────────────────────────────────────


@dataclass(frozen=True)
class Config:
    token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, token: str = "") -> "Config":
        """Build a config from ``ASANA_*`` variables.

        An explicit ``token`` wins over ``ASANA_PAT``, which wins over
        ``ASANA_TOKEN``. The token may come back empty; callers decide
        whether to prompt for it.
        """
        env = os.environ if environ is None else environ
        raw_timeout = env.get("ASANA_TIMEOUT", "")
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
        except ValueError:
            raise StandupError(f"ASANA_TIMEOUT must be a number, got {raw_timeout!r}") from None
        return cls(
            token=token or env.get("ASANA_PAT", "") or env.get("ASANA_TOKEN", ""),
            base_url=env.get("ASANA_BASE_URL", "") or DEFAULT_BASE_URL,
            timeout=timeout,
        )

    def require_token(self) -> str:
        if not self.token.strip():
            raise CredentialError("Asana Personal Access Token is required.")
        return self.token.strip()


# ── HTTP helpers ─────────────────────────────────────────────


def _error_detail(r: httpx.Response) -> str:
    """Extract a human-readable error from an Asana error response."""
    try:
        data = r.json()
    except ValueError:
        return r.text[:200] if r.text else f"HTTP {r.status_code}"
    errors = data.get("errors") if isinstance(data, dict) else None
    if errors:
        return "; ".join(str(e.get("message", e)) for e in errors if e)
    return str(data)[:200]


class AsanaGateway:
    """Async Asana client bound to one :class:`Config`.

    ``transport`` is handed to every ``httpx.AsyncClient`` the gateway opens;
    tests pass an ``httpx.MockTransport`` there.
    """

    def __init__(self, config: Config, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.require_token()}",
            "Accept": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=self._headers(),
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def _get(self, path: str, params: dict | None = None, what: str = "data") -> Any:
        logger.debug(f"GET {path} params={params}")
        try:
            async with self._client() as c:
                r = await c.get(path, params=params)
        except httpx.HTTPError as exc:
            raise FetchError(f"Could not fetch {what}: {exc}") from exc
        if r.status_code in (401, 403):
            raise CredentialError(f"Asana rejected the Personal Access Token ({_error_detail(r)})")
        if not r.is_success:
            raise FetchError(f"Could not fetch {what}: HTTP {r.status_code} for {r.url}\n{_error_detail(r)}")
        try:
            return r.json()
        except ValueError as exc:
            raise FetchError(f"Could not fetch {what}: response was not JSON") from exc

    async def _post(self, path: str, body: dict | None = None) -> Any:
        logger.debug(f"POST {path}")
        try:
            async with self._client() as c:
                r = await c.post(path, json=body or {})
        except httpx.HTTPError as exc:
            raise PostError(f"Could not post to {path}: {exc}") from exc
        if not r.is_success:
            raise PostError(f"Could not post to {path}: HTTP {r.status_code}\n{_error_detail(r)}")
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as exc:
            raise PostError(f"Posted to {path} but the response was not JSON") from exc

    # ── Reads ────────────────────────────────────────────────

    async def get_current_user(self) -> dict[str, Any]:
        """Return ``{"gid", "name"}`` for the token's owner."""
        payload = await self._get("/users/me", {"opt_fields": "name"}, what="user")
        me = payload.get("data") if isinstance(payload, dict) else None
        if not me or not me.get("gid"):
            raise CredentialError("Could not fetch user. Please check your Personal Access Token.")
        return {"gid": str(me["gid"]), "name": me.get("name") or ""}

    async def list_workspaces(self) -> list[dict[str, str]]:
        payload = await self._get("/workspaces", what="workspaces")
        items = payload.get("data") if isinstance(payload, dict) else None
        if items is None:
            raise FetchError("Could not fetch workspaces.")
        workspaces = [
            {"gid": str(w["gid"]), "name": w["name"]}
            for w in items
            if w.get("gid") and w.get("name")
        ]
        if not workspaces:
            raise FetchError("No workspaces available for this account.")
        return workspaces

    async def list_tasks(
        self,
        workspace_gid: str,
        assignee_gid: str,
        fields: tuple[str, ...] = TASK_FIELDS,
    ) -> list[dict[str, Any]]:
        """Return raw task payloads assigned to ``assignee_gid`` in a workspace.

        Follows ``next_page.offset`` until Asana stops handing one back.

        Args:
            workspace_gid: Workspace to search in
            assignee_gid: User the tasks are assigned to
            fields: ``opt_fields`` to request for each task
        """
        params: dict[str, Any] = {
            "workspace": workspace_gid,
            "assignee": assignee_gid,
            "opt_fields": ",".join(fields),
            "limit": PAGE_SIZE,
        }
        tasks: list[dict[str, Any]] = []
        while True:
            payload = await self._get("/tasks", params, what="tasks")
            items = payload.get("data") if isinstance(payload, dict) else None
            if items is None:
                raise FetchError("Could not fetch tasks.")
            tasks.extend(items)
            next_page = payload.get("next_page") or {}
            offset = next_page.get("offset")
            if not offset:
                break
            logger.debug(f"Fetched {len(tasks)} tasks so far, following offset {offset}")
            params = {**params, "offset": offset}
        return tasks

    # ── Writes ───────────────────────────────────────────────

    async def post_comment(self, task_gid: str, text: str) -> dict[str, Any]:
        """Add a story (comment) to a task.

        Args:
            task_gid: Task to comment on
            text: Plain-text comment body
        """
        data = await self._post(f"/tasks/{task_gid}/stories", {"data": {"text": text}})
        return data.get("data", {}) if isinstance(data, dict) else {}
