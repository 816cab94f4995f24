from __future__ import annotations

from typing import Optional

import pytest

from dotabot.database import make_session_factory
from dotabot.errors import NotFound, NotSupported, UpstreamUnavailable
from dotabot.heroes_service import HeroCatalog
from dotabot.notifications import MatchNotification
from dotabot.providers import StatsProvider
from dotabot.schemas import (
    MatchRecord,
    MatchSummary,
    PlayerRecord,
    ProfileInfo,
    SearchCandidate,
    WinLoss,
)
from dotabot.store import RegistrationStore

CHANNEL_ID = "123456789012345678"


def make_player(account_id: int, hero_id: int = 1, is_radiant: bool = True, **kw) -> PlayerRecord:
    return PlayerRecord(account_id=account_id, hero_id=hero_id, is_radiant=is_radiant, **kw)


def make_match(
    match_id: int,
    account_id: int,
    *,
    won: bool = True,
    hero_id: int = 1,
    parsed_at: Optional[int] = 1700000000,
    others: "list[PlayerRecord] | None" = None,
) -> MatchRecord:
    """A match where `account_id` plays on Radiant and wins iff `won`."""
    players = [make_player(account_id, hero_id, True, kills=10, deaths=2, assists=5)]
    players.extend(others or [])
    return MatchRecord(
        match_id=match_id,
        radiant_win=won,
        duration_seconds=2400,
        game_mode=22,
        players=players,
        parsed_at=parsed_at,
    )


class FakeProvider(StatsProvider):
    name = "Fake"

    def __init__(self) -> None:
        self.recent: dict[int, list[MatchSummary]] = {}
        # match_id → list of detail responses; the last one repeats
        self.details: dict[int, list[MatchRecord]] = {}
        self.profiles: dict[int, ProfileInfo] = {}
        self.win_loss: dict[int, WinLoss] = {}
        self.search_results: "list[SearchCandidate] | None" = None
        self.fail_recent: set[int] = set()
        self.fail_profile = False
        self.parse_requests: list[int] = []
        self.detail_calls: list[int] = []

    async def search_players(self, query: str) -> list[SearchCandidate]:
        if self.search_results is None:
            raise NotSupported("no search")
        return list(self.search_results)

    async def get_profile(self, account_id: int) -> ProfileInfo:
        if self.fail_profile:
            raise UpstreamUnavailable("profile down")
        if account_id not in self.profiles:
            raise NotFound(f"no player {account_id}")
        return self.profiles[account_id]

    async def get_recent_matches(self, account_id: int, limit: int) -> list[MatchSummary]:
        if account_id in self.fail_recent:
            raise UpstreamUnavailable("timeout")
        return self.recent.get(account_id, [])[:limit]

    async def get_match_detail(self, match_id: int) -> MatchRecord:
        self.detail_calls.append(match_id)
        responses = self.details.get(match_id)
        if not responses:
            raise NotFound(f"no match {match_id}")
        if len(responses) > 1:
            return responses.pop(0)
        return responses[0]

    async def get_win_loss(self, account_id: int, limit: int, hero_id: Optional[int] = None) -> WinLoss:
        return self.win_loss.get(account_id, WinLoss())

    async def request_parse(self, match_id: int) -> None:
        self.parse_requests.append(match_id)
        raise UpstreamUnavailable("parse queue full")


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[MatchNotification] = []
        self.fail = False

    async def send_match(self, notification: MatchNotification) -> None:
        if self.fail:
            raise RuntimeError("discord is down")
        self.sent.append(notification)


@pytest.fixture()
def store(tmp_path) -> RegistrationStore:
    return RegistrationStore(make_session_factory(f"sqlite:///{tmp_path / 'test.db'}"))


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def heroes() -> HeroCatalog:
    catalog = HeroCatalog(None)
    catalog.load(
        [
            {"id": 1, "name": "npc_dota_hero_antimage", "localized_name": "Anti-Mage"},
            {"id": 2, "name": "npc_dota_hero_axe", "localized_name": "Axe"},
        ]
    )
    return catalog
