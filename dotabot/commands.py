"""
commands.py — /dota search, register and channel, independent of Discord objects.

Each method returns the reply text; bot.py only sends it. Errors from the
providers and the store are turned into short messages here and logged,
they never reach the interaction handler.
"""

from __future__ import annotations

import logging

from dotabot.errors import NotFound, NotSupported, PersistenceError
from dotabot.notifications import DEFAULT_PLAYER_NAME, is_valid_channel_id
from dotabot.providers import StatsProvider
from dotabot.search_cache import SearchCache
from dotabot.store import RegistrationStore

logger = logging.getLogger(__name__)

SEARCH_NOT_SUPPORTED_MESSAGE = (
    "🔍 Searching by name is not available right now.\n\n"
    "Use the numeric **account_id** (Steam32 id) directly:\n"
    "`/dota register account_id:<your_account_id>`\n\n"
    "You can find it on https://stratz.com (open your profile or one of your matches)."
)


class CommandService:
    def __init__(
        self,
        store: RegistrationStore,
        primary: StatsProvider,
        searcher: StatsProvider | None,
        search_cache: SearchCache | None = None,
    ) -> None:
        self._store = store
        self._primary = primary
        self._searcher = searcher
        self.search_cache = search_cache or SearchCache()

    # ------------------------------------------------------------------
    # /dota search
    # ------------------------------------------------------------------

    async def search(self, requester_id: str, query: str) -> str:
        query = query.strip()
        if not query:
            return "❌ Usage: `/dota search name:<name>`"
        if self._searcher is None:
            return SEARCH_NOT_SUPPORTED_MESSAGE

        try:
            results = await self._searcher.search_players(query)
        except NotSupported:
            return SEARCH_NOT_SUPPORTED_MESSAGE
        except RuntimeError as exc:
            logger.error("[commands] search %r failed: %s", query, exc)
            return f"❌ Search failed: {exc}"

        if not results:
            return "❌ No players found with that name"

        results = self.search_cache.put(requester_id, results)
        lines = ["🔍 **Search results:**", ""]
        for idx, candidate in enumerate(results, start=1):
            name = candidate.display_name or "No name"
            lines.append(f"**{idx}.** {name} (ID: {candidate.account_id})")
            if candidate.last_match_time:
                lines.append(f"   Last match: {candidate.last_match_time}")
        lines.append("")
        lines.append(
            "Use `/dota register account_id:<number>` to register a player\n"
            "or `/dota register account_id:<number> user:@friend` to register someone else"
        )
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # /dota register
    # ------------------------------------------------------------------

    def _resolve_account_id(self, requester_id: str, value: str) -> tuple[int | None, str]:
        """(account_id, "") or (None, error reply). 1..10 picks from the requester's last search."""
        value = value.strip()
        if not value:
            return None, (
                "❌ Usage: `/dota register account_id:<account_id>` "
                "or `/dota register account_id:<n>` after a search"
            )
        try:
            number = int(value)
        except ValueError:
            return None, "❌ account_id must be a number"

        if 1 <= number <= 10:
            candidate = self.search_cache.take(requester_id, number)
            if candidate is None:
                return None, "❌ No search results available. Use `/dota search name:<name>` first."
            return candidate.account_id, ""
        if number <= 0:
            return None, "❌ Invalid account_id"
        return number, ""

    async def register(
        self,
        requester_id: str,
        value: str,
        target_user_id: str | None = None,
        target_name: str = "",
    ) -> str:
        account_id, error = self._resolve_account_id(requester_id, value)
        if account_id is None:
            return error

        try:
            profile = await self._primary.get_profile(account_id)
        except NotFound:
            return f"❌ Player {account_id} was not found on {self._primary.name}"
        except RuntimeError as exc:
            logger.error("[commands] profile check for %d failed: %s", account_id, exc)
            return f"❌ Could not verify the player ({self._primary.name}): {exc}"

        user_id = target_user_id or requester_id
        try:
            self._store.set(user_id, account_id)
        except PersistenceError:
            return "❌ Could not save the registration"

        player_name = profile.display_name or DEFAULT_PLAYER_NAME
        logger.info("[commands] user %s (%s) registered with account %d", user_id, target_name, account_id)
        who = f"**{target_name}**" if target_name else f"<@{user_id}>"
        return f"✅ {who} (Discord) linked to **{player_name}** (Dota 2)\nDota ID: {account_id}"

    # ------------------------------------------------------------------
    # /dota channel
    # ------------------------------------------------------------------

    def set_channel(self, channel_id: str) -> str:
        if not is_valid_channel_id(channel_id):
            return "❌ Invalid channel"
        try:
            self._store.set_channel(channel_id)
        except PersistenceError:
            return "❌ Could not save the channel"
        logger.info("[commands] notification channel set to %s", channel_id)
        return f"✅ Notification channel set: <#{channel_id}>"
