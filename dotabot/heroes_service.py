import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from dotabot.opendota_client import OpenDotaClient
from dotabot.stratz_client import hero_icon_url

logger = logging.getLogger(__name__)

HERO_CONSTANTS_TTL_HOURS = int(os.getenv("HERO_CONSTANTS_TTL_HOURS", "24"))

# Steam CDN hero images: .../dota_react/heroes/{slug}.png
STEAM_CDN_HEROES = "https://cdn.steamstatic.com/apps/dota2/images/dota_react/heroes"


class HeroCatalog:
    """hero_id → localized name / image, loaded from OpenDota /constants/heroes.

    - Fresh cache → served from memory.
    - Stale or empty cache → refreshed from OpenDota.
    - OpenDota down with an old cache → keep serving the stale copy.
    - OpenDota down and no cache → "Hero <id>" and the Stratz CDN icon.
    """

    def __init__(self, client: OpenDotaClient | None, ttl_hours: int = HERO_CONSTANTS_TTL_HOURS) -> None:
        self._client = client
        self._ttl = timedelta(hours=ttl_hours)
        self._names: dict[int, str] = {}
        self._slugs: dict[int, str] = {}
        self._last_updated: Optional[datetime] = None

    def _is_cache_fresh(self) -> bool:
        if self._last_updated is None:
            return False
        return (datetime.utcnow() - self._last_updated) < self._ttl

    def load(self, heroes: list[dict]) -> None:
        """Replaces the table from /constants/heroes rows."""
        names: dict[int, str] = {}
        slugs: dict[int, str] = {}
        for hero in heroes:
            hero_id = hero.get("id")
            if not hero_id:
                continue
            if hero.get("localized_name"):
                names[int(hero_id)] = hero["localized_name"]
            slug = (hero.get("name") or "").removeprefix("npc_dota_hero_")
            if slug:
                slugs[int(hero_id)] = slug
        self._names = names
        self._slugs = slugs
        self._last_updated = datetime.utcnow()
        logger.info("[heroes] catalog refreshed: %d heroes, TTL=%s", len(names), self._ttl)

    async def refresh(self) -> None:
        if self._client is None:
            return
        if self._is_cache_fresh():
            return
        try:
            self.load(await self._client.get_heroes())
        except RuntimeError as exc:
            if self._names:
                logger.warning(
                    "[heroes] OpenDota unavailable (%s), using stale catalog (%d heroes)",
                    exc, len(self._names),
                )
            else:
                logger.error("[heroes] OpenDota unavailable and catalog empty: %s", exc)

    def name(self, hero_id: int) -> str:
        return self._names.get(hero_id) or f"Hero {hero_id}"

    def image_url(self, hero_id: int) -> str:
        slug = self._slugs.get(hero_id)
        if slug:
            return f"{STEAM_CDN_HEROES}/{slug}.png"
        return hero_icon_url(hero_id)
