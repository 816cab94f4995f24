from __future__ import annotations

import asyncio

import httpx
import pytest

from dotabot.errors import NotFound, UpstreamUnavailable
from dotabot.opendota_client import OpenDotaClient
from dotabot.ratelimit import RateLimiter
from dotabot.schemas import ParseState, WinLoss


def _client(handler, api_key: str = "") -> OpenDotaClient:
    return OpenDotaClient(api_key, rate_limiter=RateLimiter(0), transport=httpx.MockTransport(handler))


def test_search_players_and_api_key() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(
            200,
            json=[
                {"account_id": 70388657, "personaname": "Dendi", "avatarfull": "https://a/d_full.jpg",
                 "last_match_time": "2024-05-01T10:00:00.000Z"},
                {"account_id": None, "personaname": "ghost"},
            ],
        )

    results = asyncio.run(_client(handler, api_key="k3y").search_players("dendi"))

    assert seen["url"].path == "/api/search"
    assert seen["url"].params["q"] == "dendi"
    assert seen["url"].params["api_key"] == "k3y"
    assert [r.account_id for r in results] == [70388657]
    assert results[0].last_match_time.startswith("2024-05-01")


def test_profile_fallback_fields() -> None:
    def handler(request):
        return httpx.Response(
            200,
            json={
                "profile": {"account_id": 70388657, "personaname": "Dendi", "avatarfull": "https://a/d_medium.jpg"},
                "rank_tier": 75,
            },
        )

    profile = asyncio.run(_client(handler).get_profile(70388657))

    assert profile.display_name == "Dendi"
    assert profile.avatar_url == "https://a/d_full.jpg"
    assert profile.rank_tier == 75


def test_profile_without_profile_object_is_not_found() -> None:
    with pytest.raises(NotFound):
        asyncio.run(_client(lambda r: httpx.Response(200, json={"rank_tier": None})).get_profile(1))


def test_http_errors() -> None:
    with pytest.raises(NotFound):
        asyncio.run(_client(lambda r: httpx.Response(404, json={})).get_match_detail(1))
    with pytest.raises(UpstreamUnavailable):
        asyncio.run(_client(lambda r: httpx.Response(500, text="oops")).get_win_loss(1, 20))


def test_network_error_is_upstream_unavailable() -> None:
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        asyncio.run(_client(handler).search_players("x"))


def test_recent_matches_side_from_player_slot() -> None:
    def handler(request):
        return httpx.Response(
            200,
            json=[
                {"match_id": 2, "player_slot": 130, "radiant_win": False, "hero_id": 5, "game_mode": 22},
                {"match_id": 1, "player_slot": 1, "radiant_win": False, "hero_id": 5, "game_mode": 22},
            ],
        )

    matches = asyncio.run(_client(handler).get_recent_matches(42, 5))

    assert [m.match_id for m in matches] == [2, 1]
    assert matches[0].find_player(42).is_radiant is False
    assert matches[1].find_player(42).is_radiant is True


def test_match_detail_parse_state_from_version() -> None:
    def handler(request):
        return httpx.Response(200, json={"match_id": 9, "radiant_win": True, "version": 21, "players": []})

    match = asyncio.run(_client(handler).get_match_detail(9))
    assert match.parse_state is ParseState.PARSED


def test_win_loss_params() -> None:
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"win": 12, "lose": 8})

    wl = asyncio.run(_client(handler).get_win_loss(42, 20, hero_id=5))

    assert wl == WinLoss(wins=12, losses=8)
    assert seen["params"] == {"limit": "20", "hero_id": "5"}


def test_heroes_constants_as_list() -> None:
    def handler(request):
        return httpx.Response(200, json={"1": {"id": 1, "name": "npc_dota_hero_antimage", "localized_name": "Anti-Mage"}})

    heroes = asyncio.run(_client(handler).get_heroes())
    assert heroes[0]["localized_name"] == "Anti-Mage"
