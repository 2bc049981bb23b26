from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import requests


logger = logging.getLogger(__name__)

STEAM_SUMMARIES = "https://api.steampowered.com/ISteamUser/GetPlayerSummaries/v2/"


@dataclass(frozen=True)
class SteamProfile:
    id: str  # SteamID64
    display_name: Optional[str] = None
    photos: List[Dict[str, str]] = field(default_factory=list)
    profile_url: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None


def fetch_player_summary(api_key: str, steamid: str, timeout: float = 8.0) -> Optional[Dict[str, Any]]:
    """Return the GetPlayerSummaries record for one SteamID64, or None if Steam has none.

    Network and HTTP errors propagate.
    """
    resp = requests.get(
        STEAM_SUMMARIES,
        params={"key": api_key, "steamids": steamid},
        timeout=timeout,
    )
    resp.raise_for_status()
    players = ((resp.json() or {}).get("response") or {}).get("players") or []
    for p in players:
        if isinstance(p, dict) and str(p.get("steamid") or "").strip() == steamid:
            return p
    return None


def merge_summary(profile: SteamProfile, summary: Dict[str, Any]) -> SteamProfile:
    """Copy display attributes from a player summary onto profile. The id is kept."""
    avatar = summary.get("avatarfull") or summary.get("avatar")
    return replace(
        profile,
        display_name=summary.get("personaname") or profile.display_name,
        photos=[{"value": avatar}] if avatar else profile.photos,
        profile_url=summary.get("profileurl") or profile.profile_url,
        raw=summary,
    )


def enrich_profile(api_key: Optional[str], steamid: str, timeout: float = 8.0) -> SteamProfile:
    """Best-effort profile for a verified SteamID64.

    Without an API key, or on any failure talking to the Web API, the
    identifier-only profile is returned. Never raises for enrichment problems.
    """
    profile = SteamProfile(id=steamid)
    if not api_key:
        return profile
    try:
        summary = fetch_player_summary(api_key, steamid, timeout=timeout)
    except Exception as ex:
        logger.warning("steam profile fetch failed for %s: %s", steamid, ex)
        return profile
    if not summary:
        logger.warning("steam profile not found for %s", steamid)
        return profile
    return merge_summary(profile, summary)
