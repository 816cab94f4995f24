"""
models.py — SQLAlchemy ORM models for the registration store.

Importing this module registers all models with Base (from database.py).
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, String

from dotabot.database import Base


class UserRegistration(Base):
    """Discord user → Dota 2 account id. Overwritten on re-registration."""
    __tablename__ = "user_registrations"

    # Discord snowflakes are kept as strings: they are opaque identifiers here
    user_id = Column(String(32), primary_key=True)
    # BigInteger: Steam32 account ids fit in 32 bits, but match the cursor type
    account_id = Column(BigInteger, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class MatchCursor(Base):
    """Last match id a notification was sent for. No row = never notified."""
    __tablename__ = "match_cursors"

    user_id = Column(String(32), primary_key=True)
    last_match_id = Column(BigInteger, nullable=False)


class BotSetting(Base):
    """Single-value settings (currently only the notification channel)."""
    __tablename__ = "bot_settings"

    key = Column(String(64), primary_key=True)
    value = Column(String(255), nullable=False, default="")
