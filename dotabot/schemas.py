"""
schemas.py — Provider-independent domain types.

Both providers (Stratz, OpenDota) parse their own JSON into these models, so
the reconciler, the aggregator and the embed layer never see upstream field
names.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ParseState(str, Enum):
    UNPARSED = "unparsed"
    PARSED = "parsed"


class PlayerRecord(BaseModel):
    account_id: int = 0          # 0 = anonymous profile
    hero_id: int = 0
    is_radiant: bool = True
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    level: int = 0
    gold_per_minute: int = 0
    xp_per_minute: int = 0
    hero_damage: int = 0
    tower_damage: int = 0
    hero_healing: int = 0
    lane: str = ""               # SAFE_LANE, MID_LANE, OFF_LANE, ... or ""
    role: str = ""               # CORE, SUPPORT or ""
    name: str = ""

    @property
    def kda(self) -> float:
        if self.deaths > 0:
            return (self.kills + self.assists) / self.deaths
        return float(self.kills + self.assists)


class LaneOutcomes(BaseModel):
    """Stratz lane outcome enums: TIE, RADIANT_VICTORY, RADIANT_STOMP, DIRE_VICTORY, DIRE_STOMP."""

    top: str = ""
    mid: str = ""
    bottom: str = ""


class MatchSummary(BaseModel):
    """One entry of a player's recent-match list (newest first upstream)."""

    match_id: int
    start_time: int = 0
    duration_seconds: int = 0
    radiant_win: bool = False
    game_mode: int = 0
    lobby_type: int = 0
    radiant_score: int = 0
    dire_score: int = 0
    players: list[PlayerRecord] = Field(default_factory=list)

    def find_player(self, account_id: int) -> PlayerRecord | None:
        for player in self.players:
            if player.account_id == account_id:
                return player
        return None


class MatchRecord(MatchSummary):
    """Full match detail. parsed_at is the upstream parsedDateTime (nullable)."""

    parsed_at: int | None = None
    lane_outcomes: LaneOutcomes = Field(default_factory=LaneOutcomes)

    @property
    def parse_state(self) -> ParseState:
        if self.parsed_at is not None and self.parsed_at > 0:
            return ParseState.PARSED
        return ParseState.UNPARSED


class ProfileInfo(BaseModel):
    account_id: int
    display_name: str = ""
    avatar_url: str = ""
    rank_bracket: str = ""       # Stratz: HERALD … IMMORTAL, UNCALIBRATED
    rank_tier: int | None = None  # OpenDota: 11..80
    win_count: int = 0
    match_count: int = 0


class SearchCandidate(BaseModel):
    account_id: int
    display_name: str = ""
    avatar_url: str = ""
    last_match_time: str = ""


class WinLoss(BaseModel):
    wins: int = 0
    losses: int = 0

    @property
    def total(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        """Percentage 0..100; 0.0 when there are no games."""
        if self.total == 0:
            return 0.0
        return 100.0 * self.wins / self.total


class StreakResult(BaseModel):
    wins: int = 0
    losses: int = 0
    current_streak_count: int = 0
    is_win_streak: bool = False

    @property
    def is_empty(self) -> bool:
        return self.current_streak_count == 0


class HeroStatBucket(BaseModel):
    hero_id: int
    wins: int = 0
    matches: int = 0

    @property
    def losses(self) -> int:
        return self.matches - self.wins

    @property
    def win_rate(self) -> float:
        if self.matches == 0:
            return 0.0
        return 100.0 * self.wins / self.matches
