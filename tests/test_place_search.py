"""Tests for the Naver place search client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from keepsake.errors import BackendError
from keepsake.models import PlaceCandidate
from keepsake.places.naver import (
    NAVER_LOCAL_SEARCH_URL,
    NaverPlaceSearch,
    place_fields,
    strip_markup,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def search() -> NaverPlaceSearch:
    return NaverPlaceSearch(client_id="test-id", client_secret="test-secret")


def _mock_httpx_client(mock_client_cls: MagicMock, response: httpx.Response) -> AsyncMock:
    """Wire up an AsyncClient context-manager mock that returns *response*."""
    mock_client = AsyncMock()
    mock_client.get.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


def _naver_response(items: list[dict], status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        json={"items": items},
        request=httpx.Request("GET", NAVER_LOCAL_SEARCH_URL),
    )


_ITEM = {
    "title": "<b>Blue Bottle</b> 성수",
    "link": "https://bluebottle.example",
    "category": "카페,디저트>카페",
    "address": "서울특별시 성동구 성수동1가 668-1",
    "roadAddress": "서울특별시 성동구 아차산로 7",
    "mapx": "1270451234",
    "mapy": "375432100",
}

# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


async def test_search_returns_candidates(search: NaverPlaceSearch) -> None:
    with patch("keepsake.places.naver.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, _naver_response([_ITEM]))
        [place] = await search.search("블루보틀")

    assert place.title == "Blue Bottle 성수"
    assert place.road_address == "서울특별시 성동구 아차산로 7"
    assert place.mapx == "1270451234"

    call = client.get.call_args
    assert call.args[0] == NAVER_LOCAL_SEARCH_URL
    assert call.kwargs["headers"]["X-Naver-Client-Id"] == "test-id"
    assert call.kwargs["params"] == {"query": "블루보틀", "display": 5}


async def test_display_is_capped(search: NaverPlaceSearch) -> None:
    with patch("keepsake.places.naver.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, _naver_response([]))
        await search.search("cafe", display=50)
    assert client.get.call_args.kwargs["params"]["display"] == 5


async def test_blank_query_makes_no_request(search: NaverPlaceSearch) -> None:
    with patch("keepsake.places.naver.httpx.AsyncClient") as mock_cls:
        assert await search.search("  ") == []
    mock_cls.assert_not_called()


async def test_unconfigured_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("keepsake.config.settings.naver_client_id", "")
    monkeypatch.setattr("keepsake.config.settings.naver_client_secret", "")
    search = NaverPlaceSearch()
    assert not search.configured
    with pytest.raises(BackendError, match="not configured"):
        await search.search("cafe")


async def test_http_error_status(search: NaverPlaceSearch) -> None:
    with patch("keepsake.places.naver.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, _naver_response([], status_code=429))
        with pytest.raises(BackendError, match="429"):
            await search.search("cafe")


async def test_transport_error(search: NaverPlaceSearch) -> None:
    with patch("keepsake.places.naver.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, _naver_response([]))
        client.get.side_effect = httpx.ReadTimeout("timed out")
        with pytest.raises(BackendError, match="Place search failed"):
            await search.search("cafe")


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def test_strip_markup() -> None:
    assert strip_markup("<b>Cafe</b> &amp; Bar") == "Cafe & Bar"
    assert strip_markup("") == ""


def test_place_fields_with_coordinates() -> None:
    fields = place_fields(PlaceCandidate(title="Park", mapx="1270000000", mapy="375000000"))
    assert fields["location"] == "Park"
    assert fields["latitude"] == pytest.approx(37.5)
    assert fields["longitude"] == pytest.approx(127.0)


def test_place_fields_without_coordinates() -> None:
    fields = place_fields(PlaceCandidate(title="Nowhere", mapx="", mapy=""))
    assert fields == {"location": "Nowhere"}
