"""
normalize.py — Coercion of upstream field encodings into one integer domain.

Stratz returns several integer fields in more than one shape depending on the
query and on whether the match has been parsed:

  gameMode / lobbyType     — int, numeric string, or enum string ("ALL_PICK")
  radiantKills / direKills — int, null, or per-minute array (sum semantics)

Nothing here raises on an unknown value: a single odd field must not fail a
whole match response.
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Enum → integer tables (OpenDota numeric codes, game_mode.json / lobby_type.json)
# ---------------------------------------------------------------------------

GAME_MODE_IDS: dict[str, int] = {
    "NONE": 0, "UNKNOWN": 0,
    "ALL_PICK": 1, "CAPTAINS_MODE": 2, "RANDOM_DRAFT": 3, "SINGLE_DRAFT": 4,
    "ALL_RANDOM": 5, "INTRO": 6, "THE_DIRETIDE": 7, "REVERSE_CAPTAINS_MODE": 8,
    "THE_GREEVILING": 9, "TUTORIAL": 10, "MID_ONLY": 11, "LEAST_PLAYED": 12,
    "NEW_PLAYER_POOL": 13, "COMPENDIUM_MATCHMAKING": 14, "CUSTOM": 15,
    "CAPTAINS_DRAFT": 16, "BALANCED_DRAFT": 17, "ABILITY_DRAFT": 18, "EVENT": 19,
    "ALL_RANDOM_DEATH_MATCH": 20, "SOLO_MID": 21, "ALL_PICK_RANKED": 22,
    "TURBO": 23, "MUTATION": 24,
}

LOBBY_TYPE_IDS: dict[str, int] = {
    "UNRANKED": 0, "PRACTICE": 1, "TOURNAMENT": 2, "TUTORIAL": 3,
    "COOP_VS_BOTS": 4, "TEAM_MATCH": 5, "SOLO_QUEUE": 6, "RANKED": 7,
    "SOLO_MID": 8, "BATTLE_CUP": 9, "EVENT": 12, "DIRE_TIDE": 13,
}

# Reverse table for display; 0 maps to "UNKNOWN" (last occurrence wins).
_GAME_MODE_NAMES: dict[int, str] = {v: k for k, v in GAME_MODE_IDS.items()}

# Steam CDN base for avatars (Stratz steamAccount.avatar can be a relative path)
STEAM_AVATAR_BASE_URL = "https://steamcdn-a.akamaihd.net/steamcommunity/public/images/avatars"


def coerce_enum_int(value: Any, table: dict[str, int] | None = None) -> int:
    """int / numeric string / enum string → int. Unknown strings become 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        if table is not None:
            return table.get(text.upper(), 0)
        return 0
    return 0


def coerce_summed_int(value: Any) -> int:
    """int / float / numeric string / array of numbers (summed) → int. null → 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (list, tuple)):
        return sum(coerce_summed_int(v) for v in value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return 0
    return 0


def game_mode_display_name(game_mode: int) -> str:
    """22 → "ALL PICK RANKED"; unknown ids → "MODE <id>"."""
    name = _GAME_MODE_NAMES.get(game_mode)
    if name is None:
        return f"MODE {game_mode}"
    return name.replace("_", " ")


def normalize_avatar_url(avatar: str | None) -> str:
    """Resolves a relative Steam avatar path and prefers the 184x184 variant.

    Steam serves <hash>.jpg (32x32), <hash>_medium.jpg (64x64) and
    <hash>_full.jpg (184x184).
    """
    if not avatar:
        return ""
    url = avatar.strip()
    if not url:
        return ""
    if not url.startswith("http"):
        url = STEAM_AVATAR_BASE_URL.rstrip("/") + "/" + url.lstrip("/")
    if url.endswith("_medium.jpg"):
        url = url[: -len("_medium.jpg")] + "_full.jpg"
    elif url.endswith(".jpg") and "_full." not in url:
        url = url[: -len(".jpg")] + "_full.jpg"
    return url
