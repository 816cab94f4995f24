"""
notifications.py — The data handed from the reconciler to the notifier.

A MatchNotification is fully populated before it leaves the reconciler; the
notifier (Discord embeds, see embeds.py) only lays it out. Every enrichment
field is optional: an empty avatar, a missing hero record or streak must
never stop the notification from being sent.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, Field

from dotabot.normalize import game_mode_display_name
from dotabot.schemas import LaneOutcomes, MatchRecord, PlayerRecord, ProfileInfo, WinLoss
from dotabot.stratz_client import STRATZ_MATCH_URL, STRATZ_PLAYER_URL

DEFAULT_PLAYER_NAME = "Player"

_RANK_NAMES = {
    1: "Herald",
    2: "Guardian",
    3: "Crusader",
    4: "Archon",
    5: "Legend",
    6: "Ancient",
    7: "Divine",
    8: "Immortal",
}


class PublicPlayer(BaseModel):
    """Another player of the match whose profile exposes match history."""

    account_id: int
    name: str
    hero_name: str
    is_radiant: bool
    win_loss: WinLoss

    @property
    def profile_url(self) -> str:
        return STRATZ_PLAYER_URL.format(account_id=self.account_id)


class MatchNotification(BaseModel):
    destination_id: str
    match_id: int
    account_id: int
    player_name: str = DEFAULT_PLAYER_NAME
    avatar_url: str = ""
    rank_bracket: str = ""
    rank_name: str = ""
    is_win: bool
    hero_id: int
    hero_name: str
    hero_image_url: str = ""
    game_mode_name: str = ""
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    kda: float = 0.0
    duration_seconds: int = 0
    level: int = 0
    radiant_score: int = 0
    dire_score: int = 0
    gold_per_minute: int = 0
    xp_per_minute: int = 0
    hero_damage: int = 0
    tower_damage: int = 0
    hero_healing: int = 0
    lane: str = ""
    role: str = ""
    lane_phase_line: str = ""
    lane_summary: str = ""
    hero_record: WinLoss | None = None
    hero_record_window: int = 0
    streak_text: str = ""
    public_players: list[PublicPlayer] = Field(default_factory=list)

    @property
    def match_url(self) -> str:
        return STRATZ_MATCH_URL.format(match_id=self.match_id)


class Notifier(Protocol):
    """The outbound side. Raises on failure; the reconciler then keeps the cursor."""

    async def send_match(self, notification: MatchNotification) -> None:
        ...


# ---------------------------------------------------------------------------
# Destination validation
# ---------------------------------------------------------------------------

def is_valid_channel_id(channel_id: str) -> bool:
    """Discord snowflakes are 17–19 decimal digits."""
    if not channel_id or not channel_id.isascii() or not channel_id.isdigit():
        return False
    return 17 <= len(channel_id) <= 19


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def format_duration(seconds: int) -> str:
    hours, rest = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def rank_name(rank_tier: int | None) -> str:
    """OpenDota rank_tier (tens = medal, units = stars) → "Legend 3"."""
    if rank_tier is None:
        return "Unranked"
    tier, star = divmod(rank_tier, 10)
    name = _RANK_NAMES.get(tier)
    if name is None:
        return f"Rank {rank_tier}"
    if tier == 8:
        return name
    return f"{name} {star}"


def lane_outcome_label(outcome: str) -> str:
    labels = {
        "RADIANT_VICTORY": "Radiant victory",
        "RADIANT_STOMP": "Radiant stomp",
        "DIRE_VICTORY": "Dire victory",
        "DIRE_STOMP": "Dire stomp",
        "TIE": "Tie",
    }
    if not outcome:
        return "—"
    return labels.get(outcome.upper(), outcome)


def _radiant_won_lane(outcome: str) -> bool | None:
    upper = outcome.upper()
    if upper in ("RADIANT_VICTORY", "RADIANT_STOMP"):
        return True
    if upper in ("DIRE_VICTORY", "DIRE_STOMP"):
        return False
    return None


def lane_outcome_with_marker(outcome: str, is_radiant: bool) -> str:
    """Prefixes 🟢/🔴 from the player's side perspective; ties stay plain."""
    text = lane_outcome_label(outcome)
    radiant_won = _radiant_won_lane(outcome)
    if radiant_won is None:
        return text
    return ("🟢 " if radiant_won == is_radiant else "🔴 ") + text


def player_lane_position(lane: str, is_radiant: bool) -> str:
    """Map lane enum to the physical lane: Radiant safe lane is bottom, Dire's is top."""
    upper = lane.upper()
    if upper == "SAFE_LANE":
        return "bottom" if is_radiant else "top"
    if upper == "OFF_LANE":
        return "top" if is_radiant else "bottom"
    if upper == "MID_LANE":
        return "mid"
    return ""


def build_lane_texts(outcomes: LaneOutcomes, player: PlayerRecord) -> tuple[str, str]:
    """(lane-phase line for the player's own lane, three-lane summary)."""
    pos = player_lane_position(player.lane, player.is_radiant)
    by_pos = {"top": outcomes.top, "mid": outcomes.mid, "bottom": outcomes.bottom}

    lines = []
    for key, label in (("top", "Top"), ("mid", "Mid"), ("bottom", "Bottom")):
        if key == pos:
            label += " (you)"
        lines.append(f"{label}: {lane_outcome_with_marker(by_pos[key], player.is_radiant)}")
    summary = "\n".join(lines)

    if not pos:
        return "", summary
    outcome = by_pos[pos]
    if outcome.upper() == "TIE":
        return "*Lane phase tied*", summary
    radiant_won = _radiant_won_lane(outcome)
    if radiant_won is None:
        return "", summary
    if radiant_won == player.is_radiant:
        return "*✅ Lane phase won*", summary
    return "*❌ Lane phase lost*", summary


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def compose_notification(
    destination_id: str,
    match: MatchRecord,
    player: PlayerRecord,
    profile: ProfileInfo | None,
    hero_name: str,
    hero_image_url: str,
    is_win: bool,
    hero_record: WinLoss | None = None,
    hero_record_window: int = 0,
    streak_text: str = "",
    public_players: list[PublicPlayer] | None = None,
) -> MatchNotification:
    player_name = DEFAULT_PLAYER_NAME
    avatar_url = ""
    rank_bracket = ""
    rank = ""
    if profile is not None:
        player_name = profile.display_name or player.name or DEFAULT_PLAYER_NAME
        avatar_url = profile.avatar_url
        rank_bracket = profile.rank_bracket
        if profile.rank_tier is not None:
            rank = rank_name(profile.rank_tier)
    elif player.name:
        player_name = player.name

    lane_phase_line, lane_summary = build_lane_texts(match.lane_outcomes, player)

    return MatchNotification(
        destination_id=destination_id,
        match_id=match.match_id,
        account_id=player.account_id,
        player_name=player_name,
        avatar_url=avatar_url,
        rank_bracket=rank_bracket,
        rank_name=rank,
        is_win=is_win,
        hero_id=player.hero_id,
        hero_name=hero_name,
        hero_image_url=hero_image_url,
        game_mode_name=game_mode_display_name(match.game_mode),
        kills=player.kills,
        deaths=player.deaths,
        assists=player.assists,
        kda=player.kda,
        duration_seconds=match.duration_seconds,
        level=player.level,
        radiant_score=match.radiant_score,
        dire_score=match.dire_score,
        gold_per_minute=player.gold_per_minute,
        xp_per_minute=player.xp_per_minute,
        hero_damage=player.hero_damage,
        tower_damage=player.tower_damage,
        hero_healing=player.hero_healing,
        lane=player.lane,
        role=player.role,
        lane_phase_line=lane_phase_line,
        lane_summary=lane_summary,
        hero_record=hero_record,
        hero_record_window=hero_record_window,
        streak_text=streak_text,
        public_players=public_players or [],
    )
