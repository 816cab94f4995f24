"""
reports.py — Per-user hero statistics, shared by /dota stats and the daily broadcast.

Neither path touches the match cursors.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from dotabot.heroes_service import HeroCatalog
from dotabot.notifications import DEFAULT_PLAYER_NAME
from dotabot.providers import StatsProvider, resolve_profile
from dotabot.schemas import HeroStatBucket
from dotabot.stats import bucket_by_win_rate, clamp_take
from dotabot.store import RegistrationStore

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 4000


class HeroStatsReport(BaseModel):
    user_id: str
    account_id: int
    player_name: str = DEFAULT_PLAYER_NAME
    avatar_url: str = ""
    min_games: int
    take: int
    buckets: list[HeroStatBucket] = Field(default_factory=list)


def render_hero_lines(report: HeroStatsReport, heroes: HeroCatalog) -> str:
    """Three colour bands, "<hero> | W-L | 55.0%" per line, cut at MAX_DESCRIPTION_LENGTH."""
    low, mid, high = bucket_by_win_rate(report.buckets)

    def _lines(buckets: list[HeroStatBucket]) -> str:
        return "\n".join(
            f"{heroes.name(b.hero_id)} | {b.wins}-{b.losses} | {b.win_rate:.1f}%" for b in buckets
        )

    parts = []
    if low:
        parts.append("🔴 **<40%**\n" + _lines(low))
    if mid:
        parts.append("🟡 **40-50%**\n" + _lines(mid))
    if high:
        parts.append("🟢 **>50%**\n" + _lines(high))
    description = "\n\n".join(parts)
    if len(description) > MAX_DESCRIPTION_LENGTH:
        description = description[: MAX_DESCRIPTION_LENGTH - 3] + "..."
    return description


def report_footer(report: HeroStatsReport) -> str:
    return f"{report.take} matches analysed • ≥{report.min_games} per hero • Stratz"


class StatsReporter:
    def __init__(
        self,
        store: RegistrationStore,
        primary: StatsProvider,
        secondary: StatsProvider | None,
        min_games: int,
        take: int,
    ) -> None:
        self._store = store
        self._primary = primary
        self._secondary = secondary
        self.min_games = min_games
        self.take = clamp_take(take)

    async def build_report(self, user_id: str, account_id: int) -> HeroStatsReport | None:
        """None when the stats fetch failed or no hero reaches min_games."""
        try:
            buckets = await self._primary.get_hero_stats(account_id, self.min_games, self.take)
        except RuntimeError as exc:
            logger.error("[stats] hero stats for %d failed: %s", account_id, exc)
            return None
        if not buckets:
            logger.debug("[stats] no hero with >= %d matches for %d", self.min_games, account_id)
            return None

        profile = await resolve_profile(self._primary, self._secondary, account_id)
        return HeroStatsReport(
            user_id=user_id,
            account_id=account_id,
            player_name=(profile.display_name if profile else "") or DEFAULT_PLAYER_NAME,
            avatar_url=profile.avatar_url if profile else "",
            min_games=self.min_games,
            take=self.take,
            buckets=buckets,
        )

    async def build_reports(self) -> list[HeroStatsReport]:
        """One report per registered user; users without data are skipped."""
        reports = []
        for user_id, account_id in self._store.get_all().items():
            report = await self.build_report(user_id, account_id)
            if report is not None:
                reports.append(report)
        return reports

    def empty_message(self) -> str:
        return (
            f"No registered player has a hero with at least {self.min_games} matches "
            f"in the last {self.take} matches analysed."
        )
