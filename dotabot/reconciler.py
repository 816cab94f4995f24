"""
reconciler.py — The per-user match poll: detect a new match, gate on parse, notify, advance the cursor.

One sweep (check_for_new_matches) walks every registered user in turn:

    cursor → recent matches → same id?   → UNCHANGED
                            → detail     → unparsed & gate on → PENDING_PARSE (cursor untouched)
                            → player?    → missing → PLAYER_MISSING
                            → profile + enrichment → notifier.send_match
                            → cursor := match id → NOTIFIED

A failure for one user is logged and never stops the sweep. Enrichment
(profile, hero record, streak, public players) is best-effort: a missing
piece only leaves a field empty.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from dotabot.config import (
    HERO_RECORD_WINDOW,
    PER_USER_DELAY_SECONDS,
    PUBLIC_PLAYERS_WINDOW,
    RECENT_MATCHES_PER_CHECK,
    STREAK_WINDOW,
)
from dotabot.errors import DataInconsistency, PersistenceError
from dotabot.heroes_service import HeroCatalog
from dotabot.notifications import (
    MatchNotification,
    Notifier,
    PublicPlayer,
    compose_notification,
    is_valid_channel_id,
)
from dotabot.providers import StatsProvider, resolve_profile
from dotabot.schemas import MatchRecord, ParseState, PlayerRecord, WinLoss
from dotabot.stats import compute_streak, format_streak, is_win
from dotabot.store import RegistrationStore

logger = logging.getLogger(__name__)


class CheckOutcome(enum.Enum):
    FETCH_FAILED = "fetch_failed"
    NO_MATCHES = "no_matches"
    UNCHANGED = "unchanged"
    PENDING_PARSE = "pending_parse"
    PLAYER_MISSING = "player_missing"
    SEND_FAILED = "send_failed"
    NOTIFIED = "notified"


class MatchReconciler:
    def __init__(
        self,
        store: RegistrationStore,
        primary: StatsProvider,
        secondary: StatsProvider | None,
        heroes: HeroCatalog,
        notifier: Notifier,
        require_parsed: bool = True,
        default_channel_id: str = "",
        per_user_delay: float = PER_USER_DELAY_SECONDS,
    ) -> None:
        self._store = store
        self._primary = primary
        self._secondary = secondary
        self._heroes = heroes
        self._notifier = notifier
        self._require_parsed = require_parsed
        if default_channel_id and not is_valid_channel_id(default_channel_id):
            logger.warning(
                "[reconciler] NOTIFICATION_CHANNEL_ID %r is not a valid channel id, ignoring it",
                default_channel_id,
            )
            default_channel_id = ""
        self._default_channel_id = default_channel_id
        self._per_user_delay = per_user_delay

        # user_id → match id waiting for the replay parse
        self.pending_parse: dict[str, int] = {}
        self._stop_requested = False
        self._idle = asyncio.Event()
        self._idle.set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def request_stop(self) -> None:
        """The running sweep finishes its current user and returns."""
        self._stop_requested = True

    async def wait_idle(self) -> None:
        await self._idle.wait()

    # ------------------------------------------------------------------
    # Destination
    # ------------------------------------------------------------------

    def resolve_channel(self) -> str:
        """Stored channel, else the configured default. Invalid stored ids are cleared."""
        channel_id = self._store.get_channel()
        if channel_id and not is_valid_channel_id(channel_id):
            logger.warning("[reconciler] stored channel id %r is invalid, clearing it", channel_id)
            try:
                self._store.set_channel("")
            except PersistenceError as exc:
                logger.error("[reconciler] could not clear invalid channel id: %s", exc)
            return ""
        if channel_id:
            return channel_id
        return self._default_channel_id

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def check_for_new_matches(self) -> dict[str, CheckOutcome]:
        """One pass over all registered users. Returns the outcome per user."""
        if self._stop_requested:
            return {}

        channel_id = self.resolve_channel()
        if not channel_id:
            logger.debug("[reconciler] no notification channel configured, skipping tick")
            return {}

        users = self._store.get_all()
        if not users:
            return {}

        outcomes: dict[str, CheckOutcome] = {}
        self._idle.clear()
        try:
            for user_id, account_id in users.items():
                if self._stop_requested:
                    logger.info("[reconciler] stop requested, ending sweep early")
                    break
                try:
                    outcome = await self.check_user(user_id, account_id, channel_id)
                except Exception as exc:
                    # isolation: one user's unexpected failure never ends the sweep
                    logger.exception("[reconciler] user %s: unexpected error: %s", user_id, exc)
                    outcome = CheckOutcome.FETCH_FAILED
                outcomes[user_id] = outcome
                if outcome is CheckOutcome.NOTIFIED and self._per_user_delay > 0:
                    await asyncio.sleep(self._per_user_delay)
        finally:
            self._idle.set()

        notified = sum(1 for o in outcomes.values() if o is CheckOutcome.NOTIFIED)
        logger.info(
            "[reconciler] sweep done: %d user(s), %d notified, %d pending parse",
            len(outcomes), notified, len(self.pending_parse),
        )
        return outcomes

    async def check_user(self, user_id: str, account_id: int, channel_id: str) -> CheckOutcome:
        last_match_id = self._store.get_last_match(user_id)

        try:
            recent = await self._primary.get_recent_matches(account_id, RECENT_MATCHES_PER_CHECK)
        except RuntimeError as exc:
            logger.warning("[reconciler] user %s: recent matches fetch failed: %s", user_id, exc)
            return CheckOutcome.FETCH_FAILED

        if not recent:
            logger.debug("[reconciler] user %s: no matches", user_id)
            return CheckOutcome.NO_MATCHES

        latest_id = recent[0].match_id
        if latest_id == last_match_id:
            self.pending_parse.pop(user_id, None)
            return CheckOutcome.UNCHANGED

        try:
            match = await self._primary.get_match_detail(latest_id)
        except RuntimeError as exc:
            logger.warning("[reconciler] user %s: detail of match %d failed: %s", user_id, latest_id, exc)
            return CheckOutcome.FETCH_FAILED

        if self._require_parsed and match.parse_state is ParseState.UNPARSED:
            await self._mark_pending_parse(user_id, latest_id)
            return CheckOutcome.PENDING_PARSE
        self.pending_parse.pop(user_id, None)

        player = match.find_player(account_id)
        if player is None:
            err = DataInconsistency(f"account {account_id} not found in match {latest_id}")
            logger.warning("[reconciler] user %s: %s", user_id, err)
            return CheckOutcome.PLAYER_MISSING

        notification = await self._build_notification(channel_id, match, player)

        try:
            await self._notifier.send_match(notification)
        except Exception as exc:
            logger.error("[reconciler] user %s: sending match %d failed: %s", user_id, latest_id, exc)
            return CheckOutcome.SEND_FAILED

        logger.info(
            "[reconciler] user %s: notified match %d (%s)",
            user_id, latest_id, "win" if notification.is_win else "loss",
        )
        try:
            self._store.set_last_match(user_id, latest_id)
        except PersistenceError as exc:
            # the next tick sees the same match as new again
            logger.error("[reconciler] user %s: cursor not saved, match %d may be re-sent: %s",
                         user_id, latest_id, exc)
        return CheckOutcome.NOTIFIED

    async def _mark_pending_parse(self, user_id: str, match_id: int) -> None:
        first_time = self.pending_parse.get(user_id) != match_id
        self.pending_parse[user_id] = match_id
        logger.debug("[reconciler] user %s: match %d not parsed yet, waiting", user_id, match_id)
        if not first_time:
            return
        try:
            await self._primary.request_parse(match_id)
            logger.debug("[reconciler] parse requested for match %d", match_id)
        except RuntimeError as exc:
            logger.debug("[reconciler] parse request for match %d failed: %s", match_id, exc)

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _build_notification(
        self, channel_id: str, match: MatchRecord, player: PlayerRecord
    ) -> MatchNotification:
        account_id = player.account_id
        profile = await resolve_profile(self._primary, self._secondary, account_id)

        hero_record: WinLoss | None = None
        try:
            hero_record = await self._primary.get_win_loss(
                account_id, HERO_RECORD_WINDOW, hero_id=player.hero_id
            )
        except RuntimeError as exc:
            logger.debug("[reconciler] hero record for %d failed: %s", account_id, exc)

        streak_text = ""
        try:
            window = await self._primary.get_recent_matches(account_id, STREAK_WINDOW)
            streak = compute_streak(window, account_id)
            if not streak.is_empty:
                streak_text = format_streak(streak)
        except RuntimeError as exc:
            logger.debug("[reconciler] streak for %d failed: %s", account_id, exc)

        return compose_notification(
            destination_id=channel_id,
            match=match,
            player=player,
            profile=profile,
            hero_name=self._heroes.name(player.hero_id),
            hero_image_url=self._heroes.image_url(player.hero_id),
            is_win=is_win(match.radiant_win, player.is_radiant),
            hero_record=hero_record,
            hero_record_window=HERO_RECORD_WINDOW,
            streak_text=streak_text,
            public_players=await self._public_players(match),
        )

    async def _public_players(self, match: MatchRecord) -> list[PublicPlayer]:
        """Players of the match with a visible history (W/L of 0/0 counts as private)."""
        candidates = [p for p in match.players if p.account_id]
        if not candidates:
            return []
        try:
            wl_map = await self._primary.get_multiple_win_loss(
                [p.account_id for p in candidates], PUBLIC_PLAYERS_WINDOW
            )
        except RuntimeError as exc:
            logger.debug("[reconciler] public players W/L for match %d failed: %s", match.match_id, exc)
            return []

        result = []
        for p in candidates:
            wl = wl_map.get(p.account_id)
            if wl is None or wl.total == 0:
                continue
            result.append(
                PublicPlayer(
                    account_id=p.account_id,
                    name=p.name or f"Player {p.account_id}",
                    hero_name=self._heroes.name(p.hero_id),
                    is_radiant=p.is_radiant,
                    win_loss=wl,
                )
            )
        return result
