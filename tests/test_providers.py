from __future__ import annotations

import asyncio

from conftest import FakeProvider

from dotabot.providers import merge_profiles, resolve_profile
from dotabot.schemas import ProfileInfo


def test_merge_fills_only_empty_fields() -> None:
    primary = ProfileInfo(account_id=1, display_name="", avatar_url="", rank_bracket="LEGEND")
    secondary = ProfileInfo(
        account_id=1, display_name="Dendi", avatar_url="https://a/x_full.jpg", rank_bracket="HERALD", rank_tier=11
    )
    merged = merge_profiles(primary, secondary)
    assert merged.display_name == "Dendi"
    assert merged.avatar_url == "https://a/x_full.jpg"
    assert merged.rank_bracket == "LEGEND"
    assert merged.rank_tier is None


def test_merge_keeps_primary_values() -> None:
    primary = ProfileInfo(account_id=1, display_name="Puppey", avatar_url="https://a/p_full.jpg")
    secondary = ProfileInfo(account_id=1, display_name="Other", avatar_url="https://a/o_full.jpg")
    assert merge_profiles(primary, secondary) == primary
    assert merge_profiles(None, secondary) == secondary
    assert merge_profiles(primary, None) == primary


def test_resolve_profile_survives_secondary_failure() -> None:
    primary = FakeProvider()
    primary.profiles[1] = ProfileInfo(account_id=1, display_name="Puppey")
    secondary = FakeProvider()
    secondary.fail_profile = True

    profile = asyncio.run(resolve_profile(primary, secondary, 1))
    assert profile.display_name == "Puppey"
    assert profile.avatar_url == ""


def test_resolve_profile_falls_back_entirely() -> None:
    primary = FakeProvider()
    primary.fail_profile = True
    secondary = FakeProvider()
    secondary.profiles[1] = ProfileInfo(account_id=1, display_name="N0tail")

    assert asyncio.run(resolve_profile(primary, secondary, 1)).display_name == "N0tail"
    assert asyncio.run(resolve_profile(primary, None, 1)) is None


def test_default_hero_stats_clamps_take() -> None:
    provider = FakeProvider()
    calls = []

    async def _recent(account_id, limit):
        calls.append(limit)
        return []

    provider.get_recent_matches = _recent
    assert asyncio.run(provider.get_hero_stats(1, 2, 0)) == []
    assert asyncio.run(provider.get_hero_stats(1, 2, 500)) == []
    assert asyncio.run(provider.get_hero_stats(1, 2, 30)) == []
    assert calls == [100, 100, 30]
