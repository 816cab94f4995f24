from __future__ import annotations

from dotabot.schemas import HeroStatBucket, MatchSummary, PlayerRecord
from dotabot.stats import (
    bucket_by_win_rate,
    clamp_take,
    compute_hero_buckets,
    compute_streak,
    format_streak,
    is_win,
)

ACCOUNT = 42


def _m(match_id: int, won: bool, hero_id: int = 1, is_radiant: bool = True) -> MatchSummary:
    radiant_win = won if is_radiant else not won
    return MatchSummary(
        match_id=match_id,
        radiant_win=radiant_win,
        players=[PlayerRecord(account_id=ACCOUNT, hero_id=hero_id, is_radiant=is_radiant)],
    )


def test_is_win() -> None:
    assert is_win(True, True)
    assert is_win(False, False)
    assert not is_win(True, False)
    assert not is_win(False, True)


def test_streak_counts_leading_run_and_whole_window() -> None:
    matches = [_m(4, True), _m(3, True, is_radiant=False), _m(2, False), _m(1, True)]
    streak = compute_streak(matches, ACCOUNT)
    assert streak.wins == 3
    assert streak.losses == 1
    assert streak.current_streak_count == 2
    assert streak.is_win_streak is True


def test_streak_empty_window() -> None:
    streak = compute_streak([], ACCOUNT)
    assert streak.is_empty
    assert (streak.wins, streak.losses, streak.current_streak_count) == (0, 0, 0)
    assert format_streak(streak) == "No matches"


def test_streak_skips_matches_without_player() -> None:
    foreign = MatchSummary(match_id=9, radiant_win=True, players=[PlayerRecord(account_id=7)])
    streak = compute_streak([foreign, _m(2, False), _m(1, False)], ACCOUNT)
    assert streak.current_streak_count == 2
    assert streak.is_win_streak is False
    assert format_streak(streak) == "2 losses in a row 💀"


def test_format_streak_singular() -> None:
    streak = compute_streak([_m(2, True), _m(1, False)], ACCOUNT)
    assert format_streak(streak) == "1 win in a row 🔥"


def test_hero_buckets_respect_min_games() -> None:
    matches = [_m(5, True, hero_id=10), _m(4, False, hero_id=10), _m(3, True, hero_id=10), _m(2, True, hero_id=20)]
    buckets = compute_hero_buckets(matches, ACCOUNT, min_games=2)
    assert buckets == [HeroStatBucket(hero_id=10, wins=2, matches=3)]


def test_hero_buckets_count_each_match_once() -> None:
    match = MatchSummary(
        match_id=1,
        radiant_win=True,
        players=[
            PlayerRecord(account_id=5, hero_id=1, is_radiant=True),
            PlayerRecord(account_id=5, hero_id=2, is_radiant=True),
        ],
    )
    buckets = compute_hero_buckets([match], 5, min_games=1)
    assert buckets == [HeroStatBucket(hero_id=1, wins=1, matches=1)]


def test_hero_buckets_sorted_by_matches_then_hero_id() -> None:
    matches = [_m(1, True, hero_id=30), _m(2, True, hero_id=5), _m(3, False, hero_id=30), _m(4, True, hero_id=5), _m(5, True, hero_id=9)]
    buckets = compute_hero_buckets(matches, ACCOUNT, min_games=1)
    assert [b.hero_id for b in buckets] == [5, 30, 9]


def test_bucket_by_win_rate_bands() -> None:
    low, mid, high = bucket_by_win_rate(
        [
            HeroStatBucket(hero_id=1, wins=1, matches=3),   # 33%
            HeroStatBucket(hero_id=2, wins=2, matches=5),   # 40%
            HeroStatBucket(hero_id=3, wins=1, matches=2),   # 50%
            HeroStatBucket(hero_id=4, wins=3, matches=5),   # 60%
        ]
    )
    assert [b.hero_id for b in low] == [1]
    assert [b.hero_id for b in mid] == [2, 3]
    assert [b.hero_id for b in high] == [4]


def test_clamp_take() -> None:
    assert clamp_take(0) == 100
    assert clamp_take(-5) == 100
    assert clamp_take(150) == 100
    assert clamp_take(1) == 1
    assert clamp_take(100) == 100
