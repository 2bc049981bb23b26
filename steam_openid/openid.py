from __future__ import annotations

from typing import Dict, Iterable, List, Tuple
from urllib.parse import urlencode

import requests

from steam_openid.errors import AssertionCheckError


STEAM_OPENID_ENDPOINT = "https://steamcommunity.com/openid/login"
OPENID_NS = "http://specs.openid.net/auth/2.0"
IDENTIFIER_SELECT = "http://specs.openid.net/auth/2.0/identifier_select"

MODE_SETUP = "checkid_setup"
MODE_ID_RES = "id_res"
MODE_CHECK_AUTHENTICATION = "check_authentication"


def build_auth_redirect_url(realm: str, return_to: str) -> str:
    """Return the URL to redirect the browser to the Steam OpenID provider.

    Uses the OpenID 2.0 immediate=false flow with identifier_select, so Steam
    picks the account being signed in.
    """
    params = [
        ("openid.ns", OPENID_NS),
        ("openid.mode", MODE_SETUP),
        ("openid.claimed_id", IDENTIFIER_SELECT),
        ("openid.identity", IDENTIFIER_SELECT),
        ("openid.return_to", return_to),
        ("openid.realm", realm),
    ]
    return f"{STEAM_OPENID_ENDPOINT}?{urlencode(params)}"


def parse_key_value_response(text: str) -> Dict[str, str]:
    """Parse an OpenID key-value form body (``key:value`` per line).

    Blank lines and lines without a colon are skipped; a repeated key keeps
    the last value.
    """
    out: Dict[str, str] = {}
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        out[key.strip()] = value.strip()
    return out


def check_authentication(params: Iterable[Tuple[str, str]], timeout: float = 10.0) -> Dict[str, str]:
    """Post the callback parameters back to Steam with mode=check_authentication.

    Every received query parameter is sent back unchanged except openid.mode.
    Returns the parsed key-value body; raises AssertionCheckError when the
    round trip itself fails.
    """
    data: List[Tuple[str, str]] = []
    mode_set = False
    for key, value in params:
        if key == "openid.mode":
            if mode_set:
                continue
            value = MODE_CHECK_AUTHENTICATION
            mode_set = True
        data.append((key, value))
    if not mode_set:
        data.append(("openid.mode", MODE_CHECK_AUTHENTICATION))

    try:
        resp = requests.post(
            STEAM_OPENID_ENDPOINT,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=timeout,
        )
        resp.raise_for_status()
    except requests.RequestException as ex:
        raise AssertionCheckError(f"check_authentication failed: {ex}") from ex
    return parse_key_value_response(resp.text)


def is_assertion_valid(result: Dict[str, str]) -> bool:
    return (result.get("is_valid") or "").strip().lower() == "true"
