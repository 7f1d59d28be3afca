"""Naver local search client for tagging memories with a place."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from bs4 import BeautifulSoup

from keepsake.config import settings
from keepsake.errors import BackendError
from keepsake.models import PlaceCandidate

logger = logging.getLogger(__name__)

NAVER_LOCAL_SEARCH_URL = "https://openapi.naver.com/v1/search/local.json"
MAX_DISPLAY = 5


def strip_markup(text: str) -> str:
    """Remove HTML tags and entities (the API wraps matches in ``<b>``)."""
    if not text:
        return ""
    return BeautifulSoup(text, "html.parser").get_text().strip()


def _candidate(item: dict[str, Any]) -> PlaceCandidate:
    return PlaceCandidate(
        title=strip_markup(item.get("title", "")),
        address=item.get("address", ""),
        road_address=item.get("roadAddress", ""),
        category=item.get("category", ""),
        link=item.get("link", ""),
        mapx=str(item.get("mapx", "")),
        mapy=str(item.get("mapy", "")),
    )


def place_fields(candidate: PlaceCandidate) -> dict[str, Any]:
    """Event fields for a selected place.

    Coordinates are included only when conversion succeeded, so a failed
    conversion never stores ``(0, 0)`` as a real location.
    """
    fields: dict[str, Any] = {"location": candidate.title}
    coords = candidate.coordinates()
    if coords.converted:
        fields["latitude"] = coords.latitude
        fields["longitude"] = coords.longitude
    else:
        logger.warning("No coordinates for place %r", candidate.title)
    return fields


class NaverPlaceSearch:
    """Searches places by keyword.

    Args:
        client_id: Naver application client id (default from settings).
        client_secret: Naver application secret (default from settings).
    """

    def __init__(self, client_id: str | None = None, client_secret: str | None = None) -> None:
        self._client_id = client_id or settings.naver_client_id
        self._client_secret = client_secret or settings.naver_client_secret

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def search(self, query: str, display: int = MAX_DISPLAY) -> list[PlaceCandidate]:
        """Return up to *display* candidates for *query*.

        Blank queries return an empty list without a request.  Transport
        errors and non-200 responses raise :class:`BackendError`.
        """
        if not query.strip():
            return []
        if not self.configured:
            msg = "Place search not configured, set KEEPSAKE_NAVER_CLIENT_ID/SECRET"
            raise BackendError(msg)

        headers = {
            "X-Naver-Client-Id": self._client_id,
            "X-Naver-Client-Secret": self._client_secret,
        }
        params = {"query": query, "display": max(1, min(display, MAX_DISPLAY))}

        try:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                resp = await client.get(NAVER_LOCAL_SEARCH_URL, headers=headers, params=params)
        except httpx.HTTPError as exc:
            logger.exception("Place search request failed")
            msg = f"Place search failed: {exc}"
            raise BackendError(msg) from exc

        if resp.status_code != 200:
            msg = f"Place search returned {resp.status_code}: {resp.text[:200]}"
            raise BackendError(msg)

        items = resp.json().get("items", [])
        logger.debug("Place search %r returned %d item(s)", query, len(items))
        return [_candidate(item) for item in items]
