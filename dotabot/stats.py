"""
stats.py — Win/loss streaks and per-hero buckets over a recent-match window.

All functions take matches ordered most-recent-first, exactly as the
providers return them, and never re-sort by time.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from dotabot.schemas import HeroStatBucket, MatchSummary, StreakResult

# Win-rate bands used by the stats report (percent)
LOW_WIN_RATE = 40.0
HIGH_WIN_RATE = 50.0


def is_win(radiant_win: bool, is_radiant: bool) -> bool:
    """The player won iff they were on the side that won."""
    return radiant_win == is_radiant


def player_won(match: MatchSummary, account_id: int) -> bool | None:
    """True/False for the given player, None if they are not in the match."""
    player = match.find_player(account_id)
    if player is None:
        return None
    return is_win(match.radiant_win, player.is_radiant)


def compute_streak(matches: Sequence[MatchSummary], account_id: int) -> StreakResult:
    """Totals over the whole window + length of the leading same-outcome run.

    Matches the player does not appear in are skipped. An empty window (or
    one where the player never appears) gives the zero sentinel.
    """
    wins = 0
    losses = 0
    streak = 0
    first_outcome: bool | None = None
    streak_open = True

    for match in matches:
        won = player_won(match, account_id)
        if won is None:
            continue
        if won:
            wins += 1
        else:
            losses += 1

        if first_outcome is None:
            first_outcome = won
            streak = 1
        elif streak_open:
            if won == first_outcome:
                streak += 1
            else:
                streak_open = False

    return StreakResult(
        wins=wins,
        losses=losses,
        current_streak_count=streak,
        is_win_streak=bool(first_outcome),
    )


def format_streak(streak: StreakResult) -> str:
    if streak.is_empty:
        return "No matches"
    if streak.is_win_streak:
        noun = "win" if streak.current_streak_count == 1 else "wins"
        return f"{streak.current_streak_count} {noun} in a row 🔥"
    noun = "loss" if streak.current_streak_count == 1 else "losses"
    return f"{streak.current_streak_count} {noun} in a row 💀"


def compute_hero_buckets(
    matches: Iterable[MatchSummary],
    account_id: int,
    min_games: int,
) -> list[HeroStatBucket]:
    """Groups the player's matches by hero, keeping heroes with >= min_games.

    Sorted by match count descending, ties by hero id.
    """
    totals: dict[int, list[int]] = {}  # hero_id -> [wins, matches]
    for match in matches:
        # find_player returns the first occurrence only: one contribution per match
        player = match.find_player(account_id)
        if player is None:
            continue
        entry = totals.setdefault(player.hero_id, [0, 0])
        entry[1] += 1
        if is_win(match.radiant_win, player.is_radiant):
            entry[0] += 1

    buckets = [
        HeroStatBucket(hero_id=hero_id, wins=wins, matches=count)
        for hero_id, (wins, count) in totals.items()
        if count >= min_games
    ]
    buckets.sort(key=lambda b: (-b.matches, b.hero_id))
    return buckets


def bucket_by_win_rate(
    buckets: Iterable[HeroStatBucket],
) -> tuple[list[HeroStatBucket], list[HeroStatBucket], list[HeroStatBucket]]:
    """Splits buckets into (<40%, 40–50%, >50%) keeping the input order."""
    low: list[HeroStatBucket] = []
    mid: list[HeroStatBucket] = []
    high: list[HeroStatBucket] = []
    for bucket in buckets:
        rate = bucket.win_rate
        if rate < LOW_WIN_RATE:
            low.append(bucket)
        elif rate <= HIGH_WIN_RATE:
            mid.append(bucket)
        else:
            high.append(bucket)
    return low, mid, high


def clamp_take(take: int, maximum: int = 100) -> int:
    """Stratz caps match listings at 100; 0 or less means "as many as allowed"."""
    if take <= 0 or take > maximum:
        return maximum
    return take
