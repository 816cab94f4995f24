"""
config.py — Runtime settings (environment / .env) and stable constants.

Environment variables:
    DISCORD_TOKEN             — bot token (required)
    STRATZ_TOKEN              — Stratz API token (required)
    NOTIFICATION_CHANNEL_ID   — default channel when none was set with /dota channel
    SERVER_ID                 — guild for instant slash-command sync (empty = global)
    OPENDOTA_API_KEY          — optional, raises the OpenDota rate limit
    DEBUG                     — "true" enables debug logging + Stratz request dump
    PARSED                    — "false" notifies without waiting for the replay parse
    REFRESH_RATE              — poll interval in minutes, 1..60 (default: 1)
    STATS_MIN_GAMES           — min matches per hero in stats, >= 2 (default: 2)
    STATS_TIME                — HH:MM local time of the daily stats post (empty = off)
    STATS_TAKE                — matches analysed for stats, 1..100 (default: 100)
    MAX_REQUESTS_PER_MINUTE   — self-imposed Stratz rate limit (default: 60)
    DATABASE_URL              — store location (default: sqlite:///./data/dotabot.db)
    LOG_DIR                   — log directory (default: logs)
"""

from __future__ import annotations

import os
from datetime import time as dtime

from dotenv import load_dotenv
from pydantic import BaseModel

from dotabot.database import DEFAULT_DATABASE_URL
from dotabot.errors import InvalidInput

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Matches fetched per user and tick; only the first one matters for detection
RECENT_MATCHES_PER_CHECK: int = 5
# Window of the "Record with <hero>" line in a notification
HERO_RECORD_WINDOW: int = 20
# Window of the streak shown in a notification footer
STREAK_WINDOW: int = 10
# Window of the W/L next to each public player in a notification
PUBLIC_PLAYERS_WINDOW: int = 20
# Pause after a notification, before the next user is checked
PER_USER_DELAY_SECONDS: float = 2.0
# Pause between per-user stats messages
STATS_MESSAGE_DELAY_SECONDS: float = 1.0
# Upper bound of Stratz match listings
MAX_STATS_TAKE: int = 100


class Settings(BaseModel):
    discord_token: str
    stratz_token: str
    notification_channel_id: str = ""
    server_id: str = ""
    opendota_api_key: str = ""
    debug: bool = False
    require_parsed: bool = True
    refresh_rate_minutes: int = 1
    stats_min_games: int = 2
    stats_time: str = ""
    stats_take: int = MAX_STATS_TAKE
    max_requests_per_minute: int = 60
    database_url: str = DEFAULT_DATABASE_URL
    log_dir: str = "logs"

    def stats_time_of_day(self) -> dtime | None:
        """Parsed STATS_TIME, None if unset. Raises InvalidInput on a malformed value."""
        return parse_stats_time(self.stats_time)


def parse_stats_time(value: str) -> dtime | None:
    if not value:
        return None
    try:
        hour_str, minute_str = value.strip().split(":")
        return dtime(hour=int(hour_str), minute=int(minute_str))
    except ValueError as exc:
        raise InvalidInput(f"STATS_TIME must be HH:MM (e.g. 20:00), got {value!r}") from exc


def _int_env(env: dict, name: str) -> int | None:
    raw = env.get(name, "")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def load_settings(env: dict | None = None) -> Settings:
    """Reads settings from `env` (default: os.environ after loading .env)."""
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    discord_token = env.get("DISCORD_TOKEN", "")
    if not discord_token:
        raise InvalidInput("DISCORD_TOKEN is not set (check .env)")
    stratz_token = env.get("STRATZ_TOKEN", "")
    if not stratz_token:
        raise InvalidInput("STRATZ_TOKEN is not set (check .env); Stratz is the primary data source")

    refresh = 1
    n = _int_env(env, "REFRESH_RATE")
    if n is not None and n >= 1:
        refresh = min(n, 60)

    min_games = 2
    n = _int_env(env, "STATS_MIN_GAMES")
    if n is not None and n >= 2:
        min_games = n

    take = MAX_STATS_TAKE
    n = _int_env(env, "STATS_TAKE")
    if n is not None and 0 < n <= MAX_STATS_TAKE:
        take = n

    max_rpm = 60
    n = _int_env(env, "MAX_REQUESTS_PER_MINUTE")
    if n is not None and n > 0:
        max_rpm = n

    return Settings(
        discord_token=discord_token,
        stratz_token=stratz_token,
        notification_channel_id=env.get("NOTIFICATION_CHANNEL_ID", ""),
        server_id=env.get("SERVER_ID", ""),
        opendota_api_key=env.get("OPENDOTA_API_KEY", ""),
        debug=env.get("DEBUG", "") == "true",
        # true by default; only "false" disables the check
        require_parsed=env.get("PARSED", "") != "false",
        refresh_rate_minutes=refresh,
        stats_min_games=min_games,
        stats_time=env.get("STATS_TIME", ""),
        stats_take=take,
        max_requests_per_minute=max_rpm,
        database_url=env.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
        log_dir=env.get("LOG_DIR") or "logs",
    )
