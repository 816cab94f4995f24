from __future__ import annotations

import asyncio

from conftest import CHANNEL_ID, FakeProvider, make_match, make_player

from dotabot.config import PUBLIC_PLAYERS_WINDOW
from dotabot.embeds import match_embed, stats_embed
from dotabot.notifications import (
    PublicPlayer,
    build_lane_texts,
    compose_notification,
    format_duration,
    is_valid_channel_id,
    player_lane_position,
    rank_name,
)
from dotabot.reports import MAX_DESCRIPTION_LENGTH, StatsReporter, render_hero_lines
from dotabot.schemas import HeroStatBucket, LaneOutcomes, ProfileInfo, WinLoss


def test_channel_id_validation() -> None:
    assert is_valid_channel_id("123456789012345678")
    assert is_valid_channel_id("12345678901234567")
    assert is_valid_channel_id("1234567890123456789")
    assert not is_valid_channel_id("abc")
    assert not is_valid_channel_id("1234567890")
    assert not is_valid_channel_id("12345678901234567890")
    assert not is_valid_channel_id("")


def test_format_duration() -> None:
    assert format_duration(2345) == "39:05"
    assert format_duration(3725) == "1:02:05"
    assert format_duration(0) == "0:00"


def test_rank_name() -> None:
    assert rank_name(53) == "Legend 3"
    assert rank_name(80) == "Immortal"
    assert rank_name(None) == "Unranked"


def test_lane_position_depends_on_side() -> None:
    assert player_lane_position("SAFE_LANE", True) == "bottom"
    assert player_lane_position("SAFE_LANE", False) == "top"
    assert player_lane_position("OFF_LANE", True) == "top"
    assert player_lane_position("OFF_LANE", False) == "bottom"
    assert player_lane_position("MID_LANE", False) == "mid"
    assert player_lane_position("ROAMING", True) == ""


def test_lane_texts_from_player_perspective() -> None:
    outcomes = LaneOutcomes(top="DIRE_STOMP", mid="TIE", bottom="RADIANT_VICTORY")
    dire_offlaner = make_player(1, is_radiant=False, lane="OFF_LANE")

    phase, summary = build_lane_texts(outcomes, dire_offlaner)

    assert phase == "*❌ Lane phase lost*"
    assert "Bottom (you): 🔴 Radiant victory" in summary
    assert "Top: 🟢 Dire stomp" in summary
    assert "Mid: Tie" in summary


def test_compose_and_render_match_embed() -> None:
    match = make_match(7500000001, 42, won=False, hero_id=1)
    player = match.find_player(42)
    profile = ProfileInfo(account_id=42, display_name="Dendi", avatar_url="https://a/x_full.jpg", rank_bracket="ANCIENT")
    notification = compose_notification(
        CHANNEL_ID, match, player, profile, "Anti-Mage", "https://img/am.png", is_win=False,
        hero_record=WinLoss(wins=3, losses=2), hero_record_window=20, streak_text="2 losses in a row 💀",
        public_players=[PublicPlayer(account_id=42, name="Dendi", hero_name="Anti-Mage", is_radiant=True,
                                     win_loss=WinLoss(wins=3, losses=2))],
    )

    embed = match_embed(notification)

    assert embed.title == "Dendi [ANCIENT] - Defeat"
    assert embed.color.value == 0xE74C3C
    assert embed.url == "https://stratz.com/matches/7500000001"
    assert embed.footer.text == "2 losses in a row 💀 • Match ID: 7500000001"
    fields = {f.name: f.value for f in embed.fields}
    assert fields["K/D/A"] == "10/2/5 (7.50 KDA)"
    assert fields["Duration"] == "40:00"
    assert fields["Record with Anti-Mage (last 20)"] == "3-2 (60.0%)"
    assert "[Dendi](https://stratz.com/players/42)" in fields[f"Players (last {PUBLIC_PLAYERS_WINDOW})"]
    assert "Hero Healing" not in fields


def test_stats_report_lines_and_embed(store, heroes) -> None:
    provider = FakeProvider()
    store.set("1", 42)
    reporter = StatsReporter(store, provider, None, min_games=2, take=0)

    async def _stats(account_id, min_games, take):
        return [HeroStatBucket(hero_id=1, wins=1, matches=4), HeroStatBucket(hero_id=2, wins=3, matches=4)]

    provider.get_hero_stats = _stats
    reports = asyncio.run(reporter.build_reports())

    assert len(reports) == 1
    report = reports[0]
    assert report.take == 100
    text = render_hero_lines(report, heroes)
    assert text == "🔴 **<40%**\nAnti-Mage | 1-3 | 25.0%\n\n🟢 **>50%**\nAxe | 3-1 | 75.0%"
    embed = stats_embed(report, heroes)
    assert embed.footer.text == "100 matches analysed • ≥2 per hero • Stratz"

    many = report.model_copy(update={"buckets": [HeroStatBucket(hero_id=1, wins=0, matches=5)] * 300})
    assert len(render_hero_lines(many, heroes)) == MAX_DESCRIPTION_LENGTH
