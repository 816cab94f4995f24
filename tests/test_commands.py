from __future__ import annotations

import asyncio

from conftest import FakeProvider

from dotabot.commands import SEARCH_NOT_SUPPORTED_MESSAGE, CommandService
from dotabot.schemas import ProfileInfo, SearchCandidate
from dotabot.search_cache import SearchCache

REQUESTER = "100000000000000001"


def _service(store, primary, searcher=None) -> CommandService:
    return CommandService(store, primary, searcher=searcher)


def _candidates(n: int) -> list[SearchCandidate]:
    return [SearchCandidate(account_id=1000 + i, display_name=f"player{i}") for i in range(n)]


def test_search_not_supported_gives_guidance(store, provider) -> None:
    reply = asyncio.run(_service(store, provider, searcher=provider).search(REQUESTER, "dendi"))
    assert reply == SEARCH_NOT_SUPPORTED_MESSAGE
    assert "account_id" in reply

    reply = asyncio.run(_service(store, provider, searcher=None).search(REQUESTER, "dendi"))
    assert reply == SEARCH_NOT_SUPPORTED_MESSAGE


def test_search_caches_at_most_ten(store, provider) -> None:
    searcher = FakeProvider()
    searcher.search_results = _candidates(15)
    service = _service(store, provider, searcher)

    reply = asyncio.run(service.search(REQUESTER, "player"))

    assert "**10.** player9 (ID: 1009)" in reply
    assert "**11.**" not in reply
    assert service.search_cache.take(REQUESTER, 11) is None
    assert service.search_cache.take(REQUESTER, 10).account_id == 1009


def test_register_by_search_index_consumes_cache(store, provider) -> None:
    searcher = FakeProvider()
    searcher.search_results = _candidates(3)
    provider.profiles[1001] = ProfileInfo(account_id=1001, display_name="player1")
    service = _service(store, provider, searcher)
    asyncio.run(service.search(REQUESTER, "player"))

    reply = asyncio.run(service.register(REQUESTER, "2"))

    assert reply.startswith("✅")
    assert store.get(REQUESTER) == 1001
    # second use of the same index finds nothing
    assert "No search results" in asyncio.run(service.register(REQUESTER, "2"))


def test_register_index_out_of_range_keeps_cache(store, provider) -> None:
    searcher = FakeProvider()
    searcher.search_results = _candidates(3)
    service = _service(store, provider, searcher)
    asyncio.run(service.search(REQUESTER, "player"))

    assert "No search results" in asyncio.run(service.register(REQUESTER, "7"))
    assert service.search_cache.take(REQUESTER, 3).account_id == 1002


def test_register_direct_id_for_other_user(store, provider) -> None:
    provider.profiles[86745912] = ProfileInfo(account_id=86745912, display_name="Dendi")
    service = _service(store, provider)

    reply = asyncio.run(service.register(REQUESTER, "86745912", "200000000000000002", "friend"))

    assert "**friend**" in reply and "**Dendi**" in reply
    assert store.get("200000000000000002") == 86745912
    assert store.get(REQUESTER) is None


def test_reregistration_overwrites(store, provider) -> None:
    provider.profiles[111111] = ProfileInfo(account_id=111111)
    provider.profiles[222222] = ProfileInfo(account_id=222222)
    service = _service(store, provider)

    asyncio.run(service.register(REQUESTER, "111111"))
    asyncio.run(service.register(REQUESTER, "222222"))

    assert store.get_all() == {REQUESTER: 222222}


def test_register_rejects_bad_input_and_unknown_player(store, provider) -> None:
    service = _service(store, provider)

    assert "must be a number" in asyncio.run(service.register(REQUESTER, "dendi"))
    assert "Usage" in asyncio.run(service.register(REQUESTER, ""))
    assert "not found" in asyncio.run(service.register(REQUESTER, "999999"))
    assert store.get_all() == {}


def test_set_channel_validates_snowflake(store, provider) -> None:
    service = _service(store, provider)

    assert service.set_channel("abc").startswith("❌")
    assert store.get_channel() == ""
    assert "<#123456789012345678>" in service.set_channel("123456789012345678")
    assert store.get_channel() == "123456789012345678"


def test_search_cache_is_per_requester() -> None:
    cache = SearchCache()
    cache.put("a", _candidates(2))
    assert cache.take("b", 1) is None
    assert cache.take("a", 0) is None
    assert cache.take("a", 2).account_id == 1001
    assert cache.take("a", 1) is None
