"""
stratz_client.py — Primary provider: Stratz GraphQL API.

All requests go through StratzClient._execute, which applies the shared rate
limiter, the bearer token and the error mapping:

  network error / timeout   → UpstreamUnavailable
  non-2xx status            → UpstreamUnavailable (403 is diagnosed separately)
  GraphQL "errors" array    → UpstreamUnavailable
  player / match is null    → NotFound
"""

from __future__ import annotations

import json
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
    LaneOutcomes,
    MatchRecord,
    MatchSummary,
    PlayerRecord,
    ProfileInfo,
    WinLoss,
)
from dotabot.stats import is_win

logger = logging.getLogger(__name__)
# Raw request/response dump, routed to logs/stratz_debug.log by the entry point
debug_logger = logging.getLogger("dotabot.stratz_debug")

STRATZ_API_URL = "https://api.stratz.com/graphql"
STRATZ_HERO_ICON_URL = "https://cdn.stratz.com/images/dota2/heroes/{hero_id}_icon.png"
STRATZ_MATCH_URL = "https://stratz.com/matches/{match_id}"
STRATZ_PLAYER_URL = "https://stratz.com/players/{account_id}"

_DEBUG_BODY_LIMIT = 8000

# Stratz sits behind Cloudflare. Without a plausible User-Agent
# the WAF answers 403 with an HTML page instead of a GraphQL error.
_EXTRA_HEADERS = {
    "User-Agent": "STRATZ_API",
    "Accept": "application/json",
}

_PLAYER_FIELDS = """
    steamAccountId
    isRadiant
    heroId
    kills
    deaths
    assists
    level
    goldPerMinute
    experiencePerMinute
    heroDamage
    towerDamage
    heroHealing
    steamAccount {
      id
      name
      avatar
      isAnonymous
    }
"""

_MATCH_QUERY = """
query GetMatch($matchId: Long!) {
  match(id: $matchId) {
    id
    didRadiantWin
    durationSeconds
    startDateTime
    gameMode
    lobbyType
    radiantKills
    direKills
    parsedDateTime
    topLaneOutcome
    midLaneOutcome
    bottomLaneOutcome
    players {
      lane
      role
      %s
    }
  }
}
""" % _PLAYER_FIELDS

_RECENT_MATCHES_QUERY = """
query GetPlayerMatches($steamAccountId: Long!, $take: Int!) {
  player(steamAccountId: $steamAccountId) {
    matches(request: { take: $take }) {
      id
      didRadiantWin
      durationSeconds
      startDateTime
      gameMode
      lobbyType
      radiantKills
      direKills
      players {
        %s
      }
    }
  }
}
""" % _PLAYER_FIELDS

_PROFILE_QUERY = """
query GetPlayer($steamAccountId: Long!) {
  player(steamAccountId: $steamAccountId) {
    steamAccountId
    steamAccount {
      name
      avatar
      isAnonymous
    }
    winCount
    matchCount
    ranks(seasonRankIds: [0]) {
      rankBracket
    }
  }
}
"""

_WIN_LOSS_QUERY = """
query GetPlayerWL($steamAccountId: Long!, $take: Int!) {
  player(steamAccountId: $steamAccountId) {
    matches(request: { take: $take }) {
      didRadiantWin
      players(steamAccountId: $steamAccountId) {
        isRadiant
      }
    }
  }
}
"""

_HERO_WIN_LOSS_QUERY = """
query GetPlayerHeroWL($steamAccountId: Long!, $take: Int!, $heroId: Short!) {
  player(steamAccountId: $steamAccountId) {
    matches(request: { take: $take, heroIds: [$heroId] }) {
      didRadiantWin
      players(steamAccountId: $steamAccountId) {
        isRadiant
      }
    }
  }
}
"""

_REQUEST_PARSE_MUTATION = """
mutation RequestParse($matchId: Long!) {
  requestParse(matchId: $matchId)
}
"""


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _parse_player(raw: dict) -> PlayerRecord:
    steam = raw.get("steamAccount") or {}
    return PlayerRecord(
        account_id=int(raw.get("steamAccountId") or 0),
        hero_id=int(raw.get("heroId") or 0),
        is_radiant=bool(raw.get("isRadiant")),
        kills=coerce_summed_int(raw.get("kills")),
        deaths=coerce_summed_int(raw.get("deaths")),
        assists=coerce_summed_int(raw.get("assists")),
        level=coerce_summed_int(raw.get("level")),
        gold_per_minute=coerce_summed_int(raw.get("goldPerMinute")),
        xp_per_minute=coerce_summed_int(raw.get("experiencePerMinute")),
        hero_damage=coerce_summed_int(raw.get("heroDamage")),
        tower_damage=coerce_summed_int(raw.get("towerDamage")),
        hero_healing=coerce_summed_int(raw.get("heroHealing")),
        lane=raw.get("lane") or "",
        role=raw.get("role") or "",
        name=steam.get("name") or "",
    )


def _match_fields(raw: dict) -> dict:
    """Fields shared by the match listing and the match detail."""
    players = [_parse_player(p) for p in raw.get("players") or []]
    radiant_score = coerce_summed_int(raw.get("radiantKills"))
    dire_score = coerce_summed_int(raw.get("direKills"))
    # Unparsed matches report 0-0 (or null); rebuild the score from player kills
    if radiant_score == 0 and dire_score == 0 and players:
        radiant_score = sum(p.kills for p in players if p.is_radiant)
        dire_score = sum(p.kills for p in players if not p.is_radiant)
    return {
        "match_id": int(raw["id"]),
        "start_time": coerce_summed_int(raw.get("startDateTime")),
        "duration_seconds": coerce_summed_int(raw.get("durationSeconds")),
        "radiant_win": bool(raw.get("didRadiantWin")),
        "game_mode": coerce_enum_int(raw.get("gameMode"), GAME_MODE_IDS),
        "lobby_type": coerce_enum_int(raw.get("lobbyType"), LOBBY_TYPE_IDS),
        "radiant_score": radiant_score,
        "dire_score": dire_score,
        "players": players,
    }


def parse_match_summary(raw: dict) -> MatchSummary:
    return MatchSummary(**_match_fields(raw))


def parse_match_detail(raw: dict) -> MatchRecord:
    parsed_at = raw.get("parsedDateTime")
    return MatchRecord(
        **_match_fields(raw),
        parsed_at=coerce_summed_int(parsed_at) if parsed_at is not None else None,
        lane_outcomes=LaneOutcomes(
            top=raw.get("topLaneOutcome") or "",
            mid=raw.get("midLaneOutcome") or "",
            bottom=raw.get("bottomLaneOutcome") or "",
        ),
    )


def _count_win_loss(matches: list[dict]) -> WinLoss:
    """Matches come with players filtered to the one account we asked about."""
    wins = 0
    losses = 0
    for match in matches or []:
        players = match.get("players") or []
        if not players:
            continue
        if is_win(bool(match.get("didRadiantWin")), bool(players[0].get("isRadiant"))):
            wins += 1
        else:
            losses += 1
    return WinLoss(wins=wins, losses=losses)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class StratzClient(StatsProvider):
    name = "Stratz"

    def __init__(
        self,
        token: str,
        rate_limiter: RateLimiter | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        debug: bool = False,
    ) -> None:
        self._token = token
        self._rate_limiter = rate_limiter or RateLimiter(60)
        self._timeout = timeout
        self._transport = transport
        self.debug = debug

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            **_EXTRA_HEADERS,
        }

    async def _execute(self, query: str, variables: dict | None = None) -> dict:
        """Runs one GraphQL request and returns its "data" object."""
        payload: dict = {"query": query}
        if variables is not None:
            payload["variables"] = variables

        await self._rate_limiter.acquire()
        if self.debug:
            debug_logger.debug(
                "=== STRATZ REQUEST ===\nQuery:\n%s\nVariables:\n%s",
                query, json.dumps(variables or {}, indent=2),
            )

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                r = await client.post(
                    STRATZ_API_URL,
                    json=payload,
                    headers=self._headers(),
                    timeout=self._timeout,
                )
        except httpx.TimeoutException as e:
            logger.warning("[stratz] Timeout after %.0f s: %s", self._timeout, e)
            raise UpstreamUnavailable(f"Stratz API timeout: {e}") from e
        except httpx.RequestError as e:
            logger.warning("[stratz] Network error: %s", e)
            raise UpstreamUnavailable(f"Stratz API network error: {e}") from e

        if self.debug:
            body = r.text
            if len(body) > _DEBUG_BODY_LIMIT:
                body = body[:_DEBUG_BODY_LIMIT] + "\n... (truncated)"
            debug_logger.debug("=== STRATZ RESPONSE (raw) status=%s ===\n%s", r.status_code, body)

        # 403: HTML body means WAF/Cloudflare, JSON body means a token problem
        if r.status_code == 403:
            is_html = r.text.lstrip()[:9].lower().startswith(("<!doctype", "<html"))
            if is_html:
                logger.error(
                    "[stratz] 403 with HTML body: blocked by Cloudflare/WAF "
                    "(User-Agent or IP), not a token permission problem"
                )
            else:
                logger.error("[stratz] 403: STRATZ_TOKEN is invalid, expired or lacks access")
            raise UpstreamUnavailable("Stratz API returned HTTP 403")

        try:
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "[stratz] HTTP error %s: %r", e.response.status_code, e.response.text[:200]
            )
            raise UpstreamUnavailable(f"Stratz API returned HTTP {e.response.status_code}") from e

        try:
            body: dict = r.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"Stratz API returned invalid JSON: {e}") from e

        if body.get("errors"):
            errors = body["errors"]
            logger.warning("[stratz] GraphQL errors: %s", errors)
            raise UpstreamUnavailable(f"Stratz GraphQL error: {errors[0].get('message', errors)}")

        return body.get("data") or {}

    # -- StatsProvider ------------------------------------------------------

    async def get_profile(self, account_id: int) -> ProfileInfo:
        data = await self._execute(_PROFILE_QUERY, {"steamAccountId": account_id})
        player = data.get("player")
        if not player:
            raise NotFound(f"Stratz has no player {account_id}")

        steam = player.get("steamAccount") or {}
        ranks = player.get("ranks") or []
        rank_bracket = ""
        if ranks and ranks[0].get("rankBracket"):
            rank_bracket = ranks[0]["rankBracket"]

        return ProfileInfo(
            account_id=int(player.get("steamAccountId") or account_id),
            display_name=steam.get("name") or "",
            avatar_url=normalize_avatar_url(steam.get("avatar")),
            rank_bracket=rank_bracket,
            win_count=coerce_summed_int(player.get("winCount")),
            match_count=coerce_summed_int(player.get("matchCount")),
        )

    async def get_recent_matches(self, account_id: int, limit: int) -> list[MatchSummary]:
        data = await self._execute(
            _RECENT_MATCHES_QUERY, {"steamAccountId": account_id, "take": limit}
        )
        player = data.get("player")
        if player is None:
            raise NotFound(f"Stratz has no player {account_id}")
        return [parse_match_summary(m) for m in player.get("matches") or [] if m.get("id")]

    async def get_match_detail(self, match_id: int) -> MatchRecord:
        data = await self._execute(_MATCH_QUERY, {"matchId": match_id})
        match = data.get("match")
        if not match:
            raise NotFound(f"Stratz has no match {match_id}")
        return parse_match_detail(match)

    async def get_win_loss(
        self, account_id: int, limit: int, hero_id: int | None = None
    ) -> WinLoss:
        variables: dict = {"steamAccountId": account_id, "take": limit}
        query = _WIN_LOSS_QUERY
        if hero_id:
            query = _HERO_WIN_LOSS_QUERY
            variables["heroId"] = hero_id
        data = await self._execute(query, variables)
        player = data.get("player")
        if player is None:
            raise NotFound(f"Stratz has no player {account_id}")
        return _count_win_loss(player.get("matches") or [])

    async def get_multiple_win_loss(
        self, account_ids: list[int], limit: int
    ) -> dict[int, WinLoss]:
        """One aliased query (player0, player1, …) instead of one request per player."""
        if not account_ids:
            return {}

        parts = ["query GetMultiplePlayersWL($take: Int!) {"]
        for i, account_id in enumerate(account_ids):
            account_id = int(account_id)
            parts.append(
                f"""
  player{i}: player(steamAccountId: {account_id}) {{
    steamAccountId
    matches(request: {{ take: $take }}) {{
      didRadiantWin
      players(steamAccountId: {account_id}) {{
        isRadiant
      }}
    }}
  }}"""
            )
        parts.append("}")

        data = await self._execute("\n".join(parts), {"take": limit})
        result: dict[int, WinLoss] = {}
        for player in data.values():
            if not player or not player.get("steamAccountId"):
                continue
            result[int(player["steamAccountId"])] = _count_win_loss(player.get("matches") or [])
        return result

    async def request_parse(self, match_id: int) -> None:
        data = await self._execute(_REQUEST_PARSE_MUTATION, {"matchId": match_id})
        if data.get("requestParse") is False:
            raise UpstreamUnavailable(f"Stratz requestParse returned false for match {match_id}")


def hero_icon_url(hero_id: int) -> str:
    return STRATZ_HERO_ICON_URL.format(hero_id=hero_id)
