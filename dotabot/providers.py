"""
providers.py — The common interface of the match/profile data sources.

Stratz (primary) and OpenDota (secondary) implement the same capability set
but differ in what they support: Stratz cannot search players by name and
OpenDota cannot be asked to parse a match. Unsupported operations raise
NotSupported instead of call sites branching on "which provider is this".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from dotabot.errors import NotSupported
from dotabot.schemas import (
    HeroStatBucket,
    MatchRecord,
    MatchSummary,
    ProfileInfo,
    SearchCandidate,
    WinLoss,
)
from dotabot.stats import clamp_take, compute_hero_buckets

logger = logging.getLogger(__name__)


class StatsProvider(ABC):
    name: str = "provider"

    async def search_players(self, query: str) -> list[SearchCandidate]:
        raise NotSupported(f"{self.name} does not support player search by name")

    @abstractmethod
    async def get_profile(self, account_id: int) -> ProfileInfo:
        ...

    @abstractmethod
    async def get_recent_matches(self, account_id: int, limit: int) -> list[MatchSummary]:
        """Most-recent-first, as ordered by the upstream."""

    @abstractmethod
    async def get_match_detail(self, match_id: int) -> MatchRecord:
        ...

    @abstractmethod
    async def get_win_loss(
        self, account_id: int, limit: int, hero_id: int | None = None
    ) -> WinLoss:
        ...

    async def get_multiple_win_loss(
        self, account_ids: list[int], limit: int
    ) -> dict[int, WinLoss]:
        """W/L for several players. Providers with a batch endpoint override this."""
        result: dict[int, WinLoss] = {}
        for account_id in account_ids:
            result[account_id] = await self.get_win_loss(account_id, limit)
        return result

    async def get_hero_stats(
        self, account_id: int, min_games: int, take: int
    ) -> list[HeroStatBucket]:
        """Per-hero W/L over the `take` most recent matches (take clamped to 1..100)."""
        take = clamp_take(take)
        matches = await self.get_recent_matches(account_id, take)
        return compute_hero_buckets(matches, account_id, min_games)

    async def request_parse(self, match_id: int) -> None:
        raise NotSupported(f"{self.name} does not accept parse requests")


# ---------------------------------------------------------------------------
# Profile merge (primary first, secondary only fills gaps)
# ---------------------------------------------------------------------------

def merge_profiles(primary: ProfileInfo | None, secondary: ProfileInfo | None) -> ProfileInfo | None:
    """First non-empty wins. Rank fields of the primary are never overwritten."""
    if primary is None:
        return secondary
    if secondary is None:
        return primary

    updates: dict = {}
    if not primary.display_name and secondary.display_name:
        updates["display_name"] = secondary.display_name
    if not primary.avatar_url and secondary.avatar_url:
        updates["avatar_url"] = secondary.avatar_url
    if not updates:
        return primary
    return primary.model_copy(update=updates)


async def resolve_profile(
    primary: StatsProvider,
    secondary: StatsProvider | None,
    account_id: int,
) -> ProfileInfo | None:
    """Profile from the primary, gaps filled from the secondary.

    Both lookups are best-effort: a failure is logged and that side is
    treated as empty. Returns None only if neither side produced anything.
    """
    profile: ProfileInfo | None = None
    try:
        profile = await primary.get_profile(account_id)
    except RuntimeError as exc:
        logger.warning("[profile] %s profile for %s failed: %s", primary.name, account_id, exc)

    needs_fallback = profile is None or not profile.display_name or not profile.avatar_url
    if secondary is not None and needs_fallback:
        try:
            fallback = await secondary.get_profile(account_id)
        except RuntimeError as exc:
            logger.debug("[profile] %s fallback for %s failed: %s", secondary.name, account_id, exc)
        else:
            profile = merge_profiles(profile, fallback)

    return profile
