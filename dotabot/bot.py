"""
bot.py — Discord entry point: /dota commands, the match poll and the daily stats ticker.

Run:
    python -m dotabot.bot            # INFO to logs/bot.log + stdout
    python -m dotabot.bot --debug    # DEBUG to stdout, Stratz dump to logs/stratz_debug.log
    dotabot [--debug]                # console script, same thing
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import discord
from discord import app_commands
from discord.ext import commands, tasks

from dotabot.commands import CommandService
from dotabot.config import STATS_MESSAGE_DELAY_SECONDS, Settings, load_settings
from dotabot.database import make_session_factory
from dotabot.embeds import help_embed, match_embed, stats_embed, welcome_embed
from dotabot.errors import DotabotError, InvalidInput
from dotabot.heroes_service import HeroCatalog
from dotabot.notifications import MatchNotification
from dotabot.opendota_client import OpenDotaClient
from dotabot.ratelimit import RateLimiter
from dotabot.reconciler import MatchReconciler
from dotabot.reports import StatsReporter
from dotabot.scheduler import DailyStatsScheduler
from dotabot.store import RegistrationStore
from dotabot.stratz_client import StratzClient

logger = logging.getLogger("dotabot.bot")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Pause between /dota stats followups
FOLLOWUP_DELAY_SECONDS = 0.5


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def setup_logging(debug: bool, log_dir: str = "logs") -> None:
    """Debug: everything to stdout + raw Stratz traffic to a file. Normal: INFO to file + stdout."""
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [stdout_handler]

    if debug:
        level = logging.DEBUG
        stratz_handler = logging.FileHandler(Path(log_dir) / "stratz_debug.log", encoding="utf-8")
        stratz_handler.setFormatter(formatter)
        stratz_debug = logging.getLogger("dotabot.stratz_debug")
        stratz_debug.setLevel(logging.DEBUG)
        stratz_debug.addHandler(stratz_handler)
        # request dumps stay out of stdout
        stratz_debug.propagate = False
    else:
        level = logging.INFO
        file_handler = logging.FileHandler(Path(log_dir) / "bot.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # discord.py gateway chatter
    logging.getLogger("discord").setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Notifier
# ---------------------------------------------------------------------------

class DiscordNotifier:
    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _channel(self, channel_id: str) -> discord.abc.Messageable:
        channel = self._client.get_channel(int(channel_id))
        if channel is None:
            channel = await self._client.fetch_channel(int(channel_id))
        return channel

    async def send_match(self, notification: MatchNotification) -> None:
        channel = await self._channel(notification.destination_id)
        await channel.send(embed=match_embed(notification))

    async def send_embed(self, channel_id: str, embed: discord.Embed) -> None:
        channel = await self._channel(channel_id)
        await channel.send(embed=embed)


# ---------------------------------------------------------------------------
# Bot
# ---------------------------------------------------------------------------

class DotaBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        super().__init__(command_prefix="!", intents=intents, description="Dota 2 match notifier")
        self.settings = settings

        self.store = RegistrationStore(make_session_factory(settings.database_url))
        self.stratz = StratzClient(
            settings.stratz_token,
            rate_limiter=RateLimiter(settings.max_requests_per_minute),
            debug=settings.debug,
        )
        self.opendota = OpenDotaClient(settings.opendota_api_key)
        self.heroes = HeroCatalog(self.opendota)
        self.notifier = DiscordNotifier(self)

        self.reconciler = MatchReconciler(
            store=self.store,
            primary=self.stratz,
            secondary=self.opendota,
            heroes=self.heroes,
            notifier=self.notifier,
            require_parsed=settings.require_parsed,
            default_channel_id=settings.notification_channel_id,
        )
        self.reporter = StatsReporter(
            self.store, self.stratz, self.opendota, settings.stats_min_games, settings.stats_take
        )
        self.commands_service = CommandService(self.store, self.stratz, searcher=self.opendota)
        self.scheduler = DailyStatsScheduler(settings.stats_time_of_day(), self.broadcast_stats)
        self._welcome_sent = False

    async def setup_hook(self) -> None:
        await self.heroes.refresh()
        self.tree.add_command(build_dota_group(self))
        if self.settings.server_id:
            guild = discord.Object(id=int(self.settings.server_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info("[bot] slash commands synced to guild %s", self.settings.server_id)
        else:
            await self.tree.sync()
            logger.info("[bot] slash commands synced globally (may take up to an hour)")

        self.poll_matches.change_interval(minutes=self.settings.refresh_rate_minutes)
        self.poll_matches.start()
        if self.scheduler.enabled:
            self.stats_ticker.start()

    async def on_ready(self) -> None:
        logger.info("[bot] logged in as %s (ID: %s), %d guild(s)", self.user, self.user.id, len(self.guilds))
        if not self._welcome_sent:
            self._welcome_sent = True
            await self.send_welcome()

    async def close(self) -> None:
        logger.info("[bot] shutting down")
        # stop() lets a running sweep finish; request_stop() ends it after the current user
        self.poll_matches.stop()
        self.stats_ticker.cancel()
        self.reconciler.request_stop()
        await self.reconciler.wait_idle()
        await super().close()

    async def send_welcome(self) -> None:
        channel_id = self.reconciler.resolve_channel()
        if not channel_id:
            logger.info("[bot] no notification channel, skipping welcome message")
            return
        try:
            await self.notifier.send_embed(channel_id, welcome_embed(self.settings.refresh_rate_minutes))
        except discord.DiscordException as exc:
            logger.error("[bot] welcome message to %s failed: %s", channel_id, exc)
            return
        logger.info("[bot] welcome message sent to channel %s", channel_id)

    # -- background loops ---------------------------------------------------

    @tasks.loop(minutes=1)
    async def poll_matches(self) -> None:
        await self.heroes.refresh()
        await self.reconciler.check_for_new_matches()

    @poll_matches.before_loop
    async def _before_poll(self) -> None:
        await self.wait_until_ready()

    @tasks.loop(minutes=1)
    async def stats_ticker(self) -> None:
        await self.scheduler.tick()

    @stats_ticker.before_loop
    async def _before_stats(self) -> None:
        await self.wait_until_ready()

    async def broadcast_stats(self) -> None:
        channel_id = self.reconciler.resolve_channel()
        if not channel_id:
            logger.info("[stats] no notification channel, daily stats skipped")
            return
        reports = await self.reporter.build_reports()
        logger.info("[stats] sending %d daily report(s)", len(reports))
        for report in reports:
            try:
                await self.notifier.send_embed(channel_id, stats_embed(report, self.heroes))
            except discord.DiscordException as exc:
                logger.error("[stats] report for %s failed: %s", report.user_id, exc)
            await asyncio.sleep(STATS_MESSAGE_DELAY_SECONDS)


# ---------------------------------------------------------------------------
# /dota command group
# ---------------------------------------------------------------------------

def build_dota_group(bot: DotaBot) -> app_commands.Group:
    group = app_commands.Group(name="dota", description="Dota 2 match notifications")
    service = bot.commands_service

    @group.command(name="search", description="Search players by Steam name")
    @app_commands.describe(name="Steam display name")
    async def search(interaction: discord.Interaction, name: str) -> None:
        await interaction.response.defer()
        reply = await service.search(str(interaction.user.id), name)
        await interaction.followup.send(reply)

    @group.command(name="register", description="Link a Dota 2 account id to a Discord user")
    @app_commands.describe(
        account_id="Dota 2 account id, or 1-10 after a search",
        user="Register someone else (default: you)",
    )
    async def register(
        interaction: discord.Interaction, account_id: str, user: discord.User | None = None
    ) -> None:
        await interaction.response.defer()
        target = user or interaction.user
        reply = await service.register(
            str(interaction.user.id), account_id, str(target.id), target.name
        )
        await interaction.followup.send(reply)

    @group.command(name="channel", description="Set the channel for match notifications")
    @app_commands.describe(channel="Notification channel")
    async def channel(interaction: discord.Interaction, channel: discord.TextChannel) -> None:
        await interaction.response.defer()
        await interaction.followup.send(service.set_channel(str(channel.id)))

    @group.command(name="stats", description="Per-hero W/L of every registered player")
    async def stats(interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        if not bot.store.get_all():
            await interaction.followup.send(
                "❌ No registered users. Use `/dota register account_id:<your_account_id>` first."
            )
            return
        reports = await bot.reporter.build_reports()
        if not reports:
            await interaction.followup.send(bot.reporter.empty_message())
            return
        for report in reports:
            await interaction.followup.send(embed=stats_embed(report, bot.heroes))
            await asyncio.sleep(FOLLOWUP_DELAY_SECONDS)

    @group.command(name="help", description="Show the available commands")
    async def help_(interaction: discord.Interaction) -> None:
        await interaction.response.send_message(embed=help_embed())

    return group


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Dota 2 match notifier for Discord")
    parser.add_argument("--debug", action="store_true", help="debug logging + Stratz request dump")
    args = parser.parse_args()

    try:
        settings = load_settings()
    except InvalidInput as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)
    if args.debug:
        settings = settings.model_copy(update={"debug": True})

    setup_logging(settings.debug, settings.log_dir)
    try:
        settings.stats_time_of_day()
    except InvalidInput as exc:
        logger.error("[bot] %s; daily stats disabled", exc)
        settings = settings.model_copy(update={"stats_time": ""})

    logger.info("=" * 60)
    logger.info("Dota bot starting")
    logger.info("  REFRESH_RATE     = %d min", settings.refresh_rate_minutes)
    logger.info("  PARSED           = %s", settings.require_parsed)
    logger.info("  STATS_TIME       = %s", settings.stats_time or "off")
    logger.info("  STATS_MIN_GAMES  = %d", settings.stats_min_games)
    logger.info("  STATS_TAKE       = %d", settings.stats_take)
    logger.info("  DATABASE_URL     = %s", settings.database_url)
    logger.info("=" * 60)

    try:
        bot = DotaBot(settings)
    except DotabotError as exc:
        logger.error("[bot] startup failed: %s", exc)
        sys.exit(1)
    # our own logging config stays in place
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
