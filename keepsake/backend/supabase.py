"""SupabaseBackend — PostgREST tables and a storage bucket over httpx."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from keepsake.backend.images import content_type, make_storage_path
from keepsake.config import settings
from keepsake.errors import BackendError, NotFoundError
from keepsake.models import Couple, Task, TimelineEvent, UserProfile
from keepsake.stats.engine import compute_stats
from keepsake.timeline.views import month_bounds

if TYPE_CHECKING:
    from datetime import date
    from pathlib import Path

    from keepsake.models import EventDraft, EventPatch, MemoryStats

logger = logging.getLogger(__name__)

_EVENT_ORDER = "event_date.desc,created_at.desc"
_RETURN_ROWS = {"Prefer": "return=representation"}


class SupabaseBackend:
    """Hosted :class:`~keepsake.backend.base.MemoryBackend` implementation.

    Args:
        url: Project URL (default from settings).
        key: API key sent as ``apikey`` (default from settings).
        access_token: Signed-in user's JWT; falls back to *key*.
        bucket: Storage bucket for memory images.
        client: Pre-built ``httpx.AsyncClient`` (tests inject a mock transport).
    """

    def __init__(
        self,
        url: str | None = None,
        key: str | None = None,
        *,
        access_token: str | None = None,
        bucket: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = (url or settings.supabase_url).rstrip("/")
        self._key = key or settings.supabase_key
        self._token = access_token or self._key
        self._bucket = bucket or settings.supabase_image_bucket
        self._client = client
        if not self._url or not self._key:
            logger.warning("Supabase backend not configured, set KEEPSAKE_SUPABASE_URL/KEY")

    def _get_client(self) -> httpx.AsyncClient:
        """Return (and lazily create) the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._url,
                timeout=settings.http_timeout_seconds,
                headers={"apikey": self._key, "Authorization": f"Bearer {self._token}"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    # -- Internal helpers ------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._get_client().request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("Supabase %s %s failed", method, path)
            msg = f"{method} {path} failed: {exc}"
            raise BackendError(msg) from exc
        if resp.status_code >= 400:
            logger.error(
                "Supabase %s %s returned %d: %s", method, path, resp.status_code, resp.text[:200]
            )
            msg = f"{method} {path} returned {resp.status_code}: {resp.text[:200]}"
            raise BackendError(msg)
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        """Decode a response body, mapping malformed JSON to BackendError."""
        try:
            return resp.json()
        except ValueError as exc:
            msg = f"Malformed response from {resp.request.method} {resp.request.url.path}: {exc}"
            raise BackendError(msg) from exc

    async def _select(self, table: str, params: list[tuple[str, str]]) -> list[dict]:
        resp = await self._request("GET", f"/rest/v1/{table}", params=[("select", "*"), *params])
        return self._json(resp)

    async def _select_one(self, table: str, row_id: str, label: str) -> dict:
        rows = await self._select(table, [("id", f"eq.{row_id}")])
        if not rows:
            msg = f"{label} not found: {row_id}"
            raise NotFoundError(msg)
        return rows[0]

    async def _insert(self, table: str, payload: dict[str, Any]) -> dict:
        resp = await self._request("POST", f"/rest/v1/{table}", json=payload, headers=_RETURN_ROWS)
        rows = self._json(resp)
        return rows[0] if isinstance(rows, list) else rows

    async def _update(self, table: str, row_id: str, payload: dict[str, Any], label: str) -> dict:
        resp = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=[("id", f"eq.{row_id}")],
            json=payload,
            headers=_RETURN_ROWS,
        )
        rows = self._json(resp)
        if not rows:
            msg = f"{label} not found: {row_id}"
            raise NotFoundError(msg)
        return rows[0]

    async def _delete(self, table: str, row_id: str) -> None:
        await self._request("DELETE", f"/rest/v1/{table}", params=[("id", f"eq.{row_id}")])

    # -- Events ----------------------------------------------------------------

    async def list_events(self, couple_id: str) -> list[TimelineEvent]:
        rows = await self._select(
            "timeline_events", [("couple_id", f"eq.{couple_id}"), ("order", _EVENT_ORDER)]
        )
        return [TimelineEvent.model_validate(r) for r in rows]

    async def list_events_in_month(
        self, couple_id: str, year: int, month: int
    ) -> list[TimelineEvent]:
        start, end = month_bounds(year, month)
        rows = await self._select(
            "timeline_events",
            [
                ("couple_id", f"eq.{couple_id}"),
                ("event_date", f"gte.{start.isoformat()}"),
                ("event_date", f"lte.{end.isoformat()}"),
                ("order", _EVENT_ORDER),
            ],
        )
        return [TimelineEvent.model_validate(r) for r in rows]

    async def get_event(self, event_id: str) -> TimelineEvent:
        return TimelineEvent.model_validate(
            await self._select_one("timeline_events", event_id, "Event")
        )

    async def create_event(self, draft: EventDraft) -> TimelineEvent:
        row = await self._insert("timeline_events", draft.model_dump(mode="json"))
        event = TimelineEvent.model_validate(row)
        logger.info("Created event %s for couple %s", event.id, event.couple_id)
        return event

    async def update_event(self, event_id: str, patch: EventPatch) -> None:
        changes = patch.changes()
        if not changes:
            return
        await self._update("timeline_events", event_id, changes, "Event")
        logger.info("Updated event %s (%s)", event_id, ", ".join(changes))

    async def delete_event(self, event_id: str) -> None:
        await self._delete("timeline_events", event_id)
        logger.info("Deleted event %s", event_id)

    # -- Images ----------------------------------------------------------------

    async def upload_image(self, couple_id: str, local_path: Path) -> str:
        try:
            data = await asyncio.to_thread(local_path.read_bytes)
        except OSError as exc:
            msg = f"Could not read image {local_path}: {exc}"
            raise BackendError(msg) from exc

        storage_path = make_storage_path(couple_id, local_path.name)
        await self._request(
            "POST",
            f"/storage/v1/object/{self._bucket}/{quote(storage_path)}",
            content=data,
            headers={"Content-Type": content_type(storage_path), "x-upsert": "false"},
        )
        logger.info("Uploaded image %s (%d bytes)", storage_path, len(data))
        return storage_path

    async def delete_image(self, storage_path: str) -> None:
        await self._request(
            "DELETE", f"/storage/v1/object/{self._bucket}", json={"prefixes": [storage_path]}
        )
        logger.info("Deleted image %s", storage_path)

    def get_public_url(self, storage_path: str) -> str:
        return f"{self._url}/storage/v1/object/public/{self._bucket}/{quote(storage_path)}"

    # -- Tasks -----------------------------------------------------------------

    async def list_tasks(self, couple_id: str) -> list[Task]:
        rows = await self._select(
            "tasks", [("couple_id", f"eq.{couple_id}"), ("order", "created_at.desc")]
        )
        return [Task.model_validate(r) for r in rows]

    async def create_task(self, couple_id: str, text: str) -> Task:
        row = await self._insert("tasks", {"couple_id": couple_id, "text": text})
        return Task.model_validate(row)

    async def update_task(self, task_id: str, completed: bool) -> None:
        await self._update("tasks", task_id, {"completed": completed}, "Task")

    async def delete_task(self, task_id: str) -> None:
        await self._delete("tasks", task_id)

    # -- Couple / profile ------------------------------------------------------

    async def get_stats(self, couple_id: str) -> MemoryStats:
        return compute_stats(await self.list_events(couple_id))

    async def get_couple(self, couple_id: str) -> Couple:
        return Couple.model_validate(await self._select_one("couples", couple_id, "Couple"))

    async def update_first_met_date(self, couple_id: str, first_met: date) -> Couple:
        row = await self._update(
            "couples", couple_id, {"first_met_date": first_met.isoformat()}, "Couple"
        )
        return Couple.model_validate(row)

    async def get_user(self, user_id: str) -> UserProfile:
        return UserProfile.model_validate(await self._select_one("users", user_id, "User"))

    async def get_partner(self, couple_id: str, user_id: str) -> UserProfile | None:
        rows = await self._select(
            "users",
            [("couple_id", f"eq.{couple_id}"), ("id", f"neq.{user_id}"), ("limit", "1")],
        )
        return UserProfile.model_validate(rows[0]) if rows else None
