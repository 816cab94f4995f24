"""
store.py — Registration store: users, per-user match cursors, notification channel.

The whole state is small, so it is loaded into memory once and every write
goes to the database first; the in-memory copy only changes after the commit
succeeded. A failed write therefore raises PersistenceError and leaves both
sides as they were.

One RLock guards every accessor: the poll loop, the daily stats task and the
slash commands all share a store instance.
"""

from __future__ import annotations

import logging
import threading

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from dotabot.errors import PersistenceError
from dotabot.models import BotSetting, MatchCursor, UserRegistration

logger = logging.getLogger(__name__)

CHANNEL_SETTING_KEY = "notification_channel_id"


class RegistrationStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._users: dict[str, int] = {}
        self._last_matches: dict[str, int] = {}
        self._channel: str = ""
        self._load()

    def _load(self) -> None:
        with self._lock, self._session_factory() as session:
            self._users = {r.user_id: int(r.account_id) for r in session.query(UserRegistration).all()}
            self._last_matches = {
                r.user_id: int(r.last_match_id) for r in session.query(MatchCursor).all()
            }
            setting = session.get(BotSetting, CHANNEL_SETTING_KEY)
            self._channel = setting.value if setting is not None else ""
        logger.info(
            "[store] loaded %d registration(s), %d cursor(s)", len(self._users), len(self._last_matches)
        )

    def _write(self, row) -> None:
        """session.merge() = upsert by PK. Raises PersistenceError, never half-commits."""
        try:
            with self._session_factory() as session:
                session.merge(row)
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("[store] write of %s failed: %s", type(row).__name__, exc)
            raise PersistenceError(f"could not persist {type(row).__name__}: {exc}") from exc

    # -- registrations ------------------------------------------------------

    def set(self, user_id: str, account_id: int) -> None:
        with self._lock:
            self._write(UserRegistration(user_id=user_id, account_id=account_id))
            self._users[user_id] = account_id

    def get(self, user_id: str) -> int | None:
        with self._lock:
            return self._users.get(user_id)

    def get_all(self) -> dict[str, int]:
        """A copy; callers may mutate it freely."""
        with self._lock:
            return dict(self._users)

    # -- cursors ------------------------------------------------------------

    def set_last_match(self, user_id: str, match_id: int) -> None:
        with self._lock:
            self._write(MatchCursor(user_id=user_id, last_match_id=match_id))
            self._last_matches[user_id] = match_id

    def get_last_match(self, user_id: str) -> int | None:
        with self._lock:
            return self._last_matches.get(user_id)

    # -- notification channel ----------------------------------------------

    def set_channel(self, channel_id: str) -> None:
        """Empty string clears the channel."""
        with self._lock:
            self._write(BotSetting(key=CHANNEL_SETTING_KEY, value=channel_id))
            self._channel = channel_id

    def get_channel(self) -> str:
        with self._lock:
            return self._channel
