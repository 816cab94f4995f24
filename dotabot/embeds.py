"""
embeds.py — discord.Embed layout for match notifications, stats reports, help and welcome.

Layout only: every value is already computed in MatchNotification / HeroStatsReport.
"""

from __future__ import annotations

import discord

from dotabot.config import PUBLIC_PLAYERS_WINDOW
from dotabot.heroes_service import HeroCatalog
from dotabot.notifications import MatchNotification, PublicPlayer, format_duration
from dotabot.reports import HeroStatsReport, render_hero_lines, report_footer

COLOR_WIN = 0x2ECC71
COLOR_LOSS = 0xE74C3C
COLOR_INFO = 0x3498DB

# Discord caps a field value at 1024 characters
MAX_PLAYERS_FIELD_LENGTH = 1000

_COMMAND_HELP = [
    (
        "/dota search name:<name>",
        "Search players by Steam name. Shows up to 10 numbered results.\n"
        "**Example:** `/dota search name:Desp4irs`",
    ),
    (
        "/dota register account_id:<id> [user:@friend]",
        "Links a Dota 2 account id to a Discord user.\n"
        "- Without `user`, you register yourself.\n"
        "- Use a number (1-10) after a search, or the account id directly.\n"
        "**Examples:** `/dota register account_id:136201811` · `/dota register account_id:1`",
    ),
    (
        "/dota channel channel:<#channel>",
        "Sets the channel for automatic new-match notifications.\n"
        "**Example:** `/dota channel channel:#dota-updates`",
    ),
    (
        "/dota stats",
        "One message per registered user: W/L per hero over the recent matches. "
        "Colours: 🔴 <40%, 🟡 40-50%, 🟢 >50%.",
    ),
    ("/dota help", "Shows this help"),
]


def _lane_role_text(lane: str, role: str) -> str:
    parts = [p.replace("_", " ").title() for p in (lane, role) if p and p.upper() != "UNKNOWN"]
    return " / ".join(parts)


def _players_field(players: list[PublicPlayer]) -> str:
    """'Hero | [name](stratz) | W/L: 12/8 (60.0%)' per player, Radiant then Dire, cut at ~1000 chars."""
    out = ""
    for team_name, is_radiant in (("Radiant", True), ("Dire", False)):
        team = [p for p in players if p.is_radiant == is_radiant]
        if not team:
            continue
        header = f"**{team_name}**\n"
        if len(out) + len(header) > MAX_PLAYERS_FIELD_LENGTH:
            break
        out += header
        for p in team:
            wl = p.win_loss
            line = (
                f"{p.hero_name} | [{p.name}]({p.profile_url}) | "
                f"W/L: {wl.wins}/{wl.losses} ({wl.win_rate:.1f}%)\n"
            )
            if len(out) + len(line) > MAX_PLAYERS_FIELD_LENGTH:
                return out + "... and more"
            out += line
    return out.rstrip("\n")


def match_embed(n: MatchNotification) -> discord.Embed:
    result = "Victory" if n.is_win else "Defeat"
    if n.rank_bracket:
        title = f"{n.player_name} [{n.rank_bracket}] - {result}"
    else:
        title = f"{n.player_name} - {result}"

    embed = discord.Embed(
        title=title,
        url=n.match_url,
        description=f"**{n.hero_name}** | {n.game_mode_name}",
        color=COLOR_WIN if n.is_win else COLOR_LOSS,
    )
    if n.hero_image_url:
        embed.set_image(url=n.hero_image_url)
    if n.avatar_url:
        embed.set_author(name=n.player_name, icon_url=n.avatar_url)
        embed.set_thumbnail(url=n.avatar_url)

    embed.add_field(name="K/D/A", value=f"{n.kills}/{n.deaths}/{n.assists} ({n.kda:.2f} KDA)", inline=True)
    embed.add_field(name="Duration", value=format_duration(n.duration_seconds), inline=True)
    embed.add_field(name="Level", value=str(n.level), inline=True)
    embed.add_field(name="Score", value=f"Radiant {n.radiant_score} - {n.dire_score} Dire", inline=True)
    embed.add_field(name="GPM/XPM", value=f"{n.gold_per_minute} / {n.xp_per_minute}", inline=True)
    embed.add_field(name="Mode", value=n.game_mode_name or "—", inline=True)

    if n.hero_record is not None and n.hero_record.total > 0:
        rec = n.hero_record
        embed.add_field(
            name=f"Record with {n.hero_name} (last {n.hero_record_window})",
            value=f"{rec.wins}-{rec.losses} ({rec.win_rate:.1f}%)",
            inline=True,
        )
    if n.rank_name:
        embed.add_field(name="Rank", value=n.rank_name, inline=True)

    lane_role = _lane_role_text(n.lane, n.role)
    if lane_role:
        value = lane_role
        if n.lane_phase_line:
            value += "\n" + n.lane_phase_line
        embed.add_field(name="Lane / Role", value=value, inline=True)
    if n.lane_summary:
        embed.add_field(name="Lane outcomes", value=n.lane_summary, inline=False)

    if n.hero_damage > 0:
        embed.add_field(name="Hero Damage", value=str(n.hero_damage), inline=True)
    if n.tower_damage > 0:
        embed.add_field(name="Tower Damage", value=str(n.tower_damage), inline=True)
    if n.hero_healing > 0:
        embed.add_field(name="Hero Healing", value=str(n.hero_healing), inline=True)

    if n.public_players:
        embed.add_field(
            name=f"Players (last {PUBLIC_PLAYERS_WINDOW})",
            value=_players_field(n.public_players),
            inline=False,
        )

    footer = f"Match ID: {n.match_id}"
    if n.streak_text:
        footer = f"{n.streak_text} • {footer}"
    embed.set_footer(text=footer)
    return embed


def stats_embed(report: HeroStatsReport, heroes: HeroCatalog) -> discord.Embed:
    embed = discord.Embed(
        title=f"📊 Hero stats — {report.player_name}",
        description=render_hero_lines(report, heroes),
        color=COLOR_INFO,
    )
    if report.avatar_url:
        embed.set_author(name=report.player_name, icon_url=report.avatar_url)
        embed.set_thumbnail(url=report.avatar_url)
    embed.set_footer(text=report_footer(report))
    return embed


def help_embed() -> discord.Embed:
    embed = discord.Embed(
        title="🎮 Dota 2 bot commands",
        description="Available commands. Use register to link a Discord user with a Dota 2 account id.",
        color=COLOR_INFO,
    )
    for name, value in _COMMAND_HELP:
        embed.add_field(name=name, value=value, inline=False)
    return embed


def welcome_embed(refresh_rate_minutes: int) -> discord.Embed:
    embed = discord.Embed(
        title="🤖 Dota 2 bot is online!",
        description="The bot is running and watching for new matches. Available commands:",
        color=COLOR_INFO,
    )
    for number, (name, value) in enumerate(_COMMAND_HELP, start=1):
        embed.add_field(name=f"{number}. {name}", value=value, inline=False)
    unit = "minute" if refresh_rate_minutes == 1 else f"{refresh_rate_minutes} minutes"
    embed.set_footer(text=f"New matches are checked every {unit}")
    return embed
