"""
opendota_client.py — Secondary provider: OpenDota REST API.

Used for what Stratz cannot do (player search by name), to backfill a
missing display name / avatar, and for the hero constants table. The client
works without a key; OPENDOTA_API_KEY only raises the upstream rate limit.
"""

from __future__ import annotations

import logging

import httpx

from dotabot.errors import NotFound, UpstreamUnavailable
from dotabot.normalize import (
    GAME_MODE_IDS,
    LOBBY_TYPE_IDS,
    coerce_enum_int,
    coerce_summed_int,
    normalize_avatar_url,
)
from dotabot.providers import StatsProvider
from dotabot.ratelimit import RateLimiter
from dotabot.schemas import (
    MatchRecord,
    MatchSummary,
    PlayerRecord,
    ProfileInfo,
    SearchCandidate,
    WinLoss,
)

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.opendota.com/api"


def _is_radiant_slot(player_slot: int | None) -> bool:
    """player_slot 0-127 → Radiant, 128-255 → Dire."""
    return (player_slot or 0) < 128


def _parse_player(raw: dict) -> PlayerRecord:
    is_radiant = raw.get("isRadiant")
    if is_radiant is None:
        is_radiant = _is_radiant_slot(raw.get("player_slot"))
    return PlayerRecord(
        account_id=int(raw.get("account_id") or 0),
        hero_id=int(raw.get("hero_id") or 0),
        is_radiant=bool(is_radiant),
        kills=coerce_summed_int(raw.get("kills")),
        deaths=coerce_summed_int(raw.get("deaths")),
        assists=coerce_summed_int(raw.get("assists")),
        level=coerce_summed_int(raw.get("level")),
        gold_per_minute=coerce_summed_int(raw.get("gold_per_min")),
        xp_per_minute=coerce_summed_int(raw.get("xp_per_min")),
        hero_damage=coerce_summed_int(raw.get("hero_damage")),
        tower_damage=coerce_summed_int(raw.get("tower_damage")),
        hero_healing=coerce_summed_int(raw.get("hero_healing")),
        name=raw.get("personaname") or "",
    )


class OpenDotaClient(StatsProvider):
    name = "OpenDota"

    def __init__(
        self,
        api_key: str = "",
        rate_limiter: RateLimiter | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._rate_limiter = rate_limiter or RateLimiter(60)
        self._timeout = timeout
        self._transport = transport

    def _build_params(self) -> dict:
        """Adds api_key to the query parameters when a key is set."""
        if self._api_key:
            return {"api_key": self._api_key}
        return {}

    async def _get(self, path: str, params: dict | None = None):
        url = f"{_BASE_URL}{path}"
        query = self._build_params()
        if params:
            query.update(params)

        await self._rate_limiter.acquire()
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                r = await client.get(url, params=query, timeout=self._timeout)
        except httpx.RequestError as e:
            logger.warning("[opendota] Network error (%s): %s", path, e)
            raise UpstreamUnavailable(f"OpenDota network error: {e}") from e

        if r.status_code == 404:
            raise NotFound(f"OpenDota {path} not found")
        if r.status_code != 200:
            logger.warning("[opendota] %s returned HTTP %s: %s", path, r.status_code, r.text[:200])
            raise UpstreamUnavailable(f"OpenDota API returned HTTP {r.status_code}")

        try:
            return r.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"OpenDota API returned invalid JSON: {e}") from e

    # -- StatsProvider ------------------------------------------------------

    async def search_players(self, query: str) -> list[SearchCandidate]:
        """GET /search?q= — ordered by similarity upstream."""
        rows = await self._get("/search", {"q": query}) or []
        return [
            SearchCandidate(
                account_id=int(row["account_id"]),
                display_name=row.get("personaname") or "",
                avatar_url=normalize_avatar_url(row.get("avatarfull")),
                last_match_time=row.get("last_match_time") or "",
            )
            for row in rows
            if row.get("account_id")
        ]

    async def get_profile(self, account_id: int) -> ProfileInfo:
        """GET /players/{id}. A missing "profile" object means the account is unknown/private."""
        data = await self._get(f"/players/{account_id}") or {}
        profile = data.get("profile")
        if not profile:
            raise NotFound(f"OpenDota has no profile for {account_id}")
        return ProfileInfo(
            account_id=int(profile.get("account_id") or account_id),
            display_name=profile.get("personaname") or "",
            avatar_url=normalize_avatar_url(profile.get("avatarfull") or profile.get("avatar")),
            rank_tier=data.get("rank_tier"),
        )

    async def get_recent_matches(self, account_id: int, limit: int) -> list[MatchSummary]:
        """GET /players/{id}/recentMatches — one row per match, only this player's stats."""
        rows = await self._get(f"/players/{account_id}/recentMatches") or []
        matches: list[MatchSummary] = []
        for row in rows[: max(limit, 0)]:
            if not row.get("match_id"):
                continue
            player = _parse_player({**row, "account_id": account_id})
            matches.append(
                MatchSummary(
                    match_id=int(row["match_id"]),
                    start_time=coerce_summed_int(row.get("start_time")),
                    duration_seconds=coerce_summed_int(row.get("duration")),
                    radiant_win=bool(row.get("radiant_win")),
                    game_mode=coerce_enum_int(row.get("game_mode"), GAME_MODE_IDS),
                    lobby_type=coerce_enum_int(row.get("lobby_type"), LOBBY_TYPE_IDS),
                    players=[player],
                )
            )
        return matches

    async def get_match_detail(self, match_id: int) -> MatchRecord:
        """GET /matches/{id}. OpenDota sets "version" only on parsed replays."""
        data = await self._get(f"/matches/{match_id}") or {}
        if not data.get("match_id"):
            raise NotFound(f"OpenDota has no match {match_id}")
        version = data.get("version")
        return MatchRecord(
            match_id=int(data["match_id"]),
            start_time=coerce_summed_int(data.get("start_time")),
            duration_seconds=coerce_summed_int(data.get("duration")),
            radiant_win=bool(data.get("radiant_win")),
            game_mode=coerce_enum_int(data.get("game_mode"), GAME_MODE_IDS),
            lobby_type=coerce_enum_int(data.get("lobby_type"), LOBBY_TYPE_IDS),
            radiant_score=coerce_summed_int(data.get("radiant_score")),
            dire_score=coerce_summed_int(data.get("dire_score")),
            players=[_parse_player(p) for p in data.get("players") or []],
            parsed_at=coerce_summed_int(version) if version is not None else None,
        )

    async def get_win_loss(
        self, account_id: int, limit: int, hero_id: int | None = None
    ) -> WinLoss:
        """GET /players/{id}/wl?limit=&hero_id="""
        params: dict = {}
        if limit > 0:
            params["limit"] = limit
        if hero_id:
            params["hero_id"] = hero_id
        data = await self._get(f"/players/{account_id}/wl", params) or {}
        return WinLoss(
            wins=coerce_summed_int(data.get("win")),
            losses=coerce_summed_int(data.get("lose")),
        )

    # -- constants ----------------------------------------------------------

    async def get_heroes(self) -> list[dict]:
        """GET /constants/heroes — dict keyed by hero id; returned as a list.

        Each element contains: id, name (npc_dota_hero_*), localized_name, img.
        """
        data = await self._get("/constants/heroes") or {}
        if isinstance(data, dict):
            return list(data.values())
        return list(data)
