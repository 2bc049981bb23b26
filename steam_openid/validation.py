from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import SplitResult, parse_qsl, urlsplit


STEAM_IDENTITY_HOST = "steamcommunity.com"

_CLAIMED_ID_PATH = re.compile(r"/openid/id/([0-9]{17})")
_NONCE_TIMESTAMP = re.compile(r"^([0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}Z)")
_DEFAULT_PORTS = {"http": 80, "https": 443}

DEFAULT_NONCE_SKEW = timedelta(minutes=5)


def _split(url: str) -> SplitResult:
    """Split an absolute URL, raising ValueError when it is not one."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        raise ValueError(f"not an absolute URL: {url!r}")
    parts.port  # raises ValueError on a malformed port
    return parts


def _host(parts: SplitResult) -> str:
    # hostname is lowercased; keep the port unless it is the scheme default
    host = parts.hostname or ""
    port = parts.port
    if port is not None and _DEFAULT_PORTS.get(parts.scheme) != port:
        host = f"{host}:{port}"
    return host


def _path(parts: SplitResult) -> str:
    return parts.path or "/"


def query_params(query: str) -> Dict[str, str]:
    """Parse a query string; the first occurrence of a repeated key wins."""
    out: Dict[str, str] = {}
    for key, value in parse_qsl(query or "", keep_blank_values=True):
        out.setdefault(key, value)
    return out


def url_host(url: str) -> Optional[str]:
    try:
        return _host(_split(url))
    except ValueError:
        return None


def normalize_host(entry: str) -> Optional[str]:
    """Lowercase an allowlist entry and drop a default port.

    Entries are bare ``host[:port]`` or full URLs. Returns "" for a blank
    entry and None when the entry cannot be parsed.
    """
    entry = (entry or "").strip()
    if not entry:
        return ""
    parts = urlsplit(entry if "://" in entry else "//" + entry)
    try:
        port = parts.port
    except ValueError:
        return None
    if not parts.hostname:
        return None
    if parts.scheme:
        return _host(parts)
    # without a scheme either default port names the same host
    if port is not None and port not in _DEFAULT_PORTS.values():
        return f"{parts.hostname}:{port}"
    return parts.hostname


def return_to_matches(current: str, return_to: str) -> bool:
    """Check the provider's openid.return_to against the URL actually requested.

    Scheme, host and path must match, and every query parameter declared in
    return_to must be present in current with the same value. Additional
    parameters on current (the openid.* fields, for instance) are allowed.
    """
    try:
        cu = _split(current)
        ru = _split(return_to)
    except ValueError:
        return False
    if cu.scheme != ru.scheme or _host(cu) != _host(ru) or _path(cu) != _path(ru):
        return False
    current_params = query_params(cu.query)
    for key, value in query_params(ru.query).items():
        if current_params.get(key) != value:
            return False
    return True


def within_realm(realm: str, target: str) -> bool:
    try:
        r = _split(realm)
        t = _split(target)
    except ValueError:
        return False
    return r.scheme == t.scheme and _host(r) == _host(t) and _path(t).startswith(_path(r))


def is_allowed_host(url: str, allowed: Optional[Iterable[str]]) -> bool:
    """Return True when the URL's host is in the allowlist.

    An empty or missing allowlist accepts every host.
    """
    allowed = list(allowed or [])
    if not allowed:
        return True
    host = url_host(url)
    if host is None:
        return False
    return any(host == normalize_host(h) for h in allowed)


def parse_steam_claimed_id(claimed_id: str) -> Optional[str]:
    """Extract the SteamID64 from https://steamcommunity.com/openid/id/<id>."""
    try:
        parts = _split(claimed_id)
    except ValueError:
        return None
    if _host(parts) != STEAM_IDENTITY_HOST:
        return None
    m = _CLAIMED_ID_PATH.fullmatch(parts.path)
    return m.group(1) if m else None


def nonce_timestamp(response_nonce: str) -> Optional[datetime]:
    m = _NONCE_TIMESTAMP.match(response_nonce or "")
    if not m:
        return None
    try:
        return datetime.strptime(m.group(1), "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def is_fresh_nonce(
    response_nonce: str,
    skew: timedelta = DEFAULT_NONCE_SKEW,
    now: Optional[datetime] = None,
) -> bool:
    """True when the nonce's leading UTC timestamp is within skew of now (inclusive).

    Nonces look like ``2025-08-24T12:34:56Zabc123``.
    """
    ts = nonce_timestamp(response_nonce)
    if ts is None:
        return False
    now = now or datetime.now(timezone.utc)
    return abs(now - ts) <= skew


def state_from_params(params: Dict[str, str]) -> Tuple[Optional[str], str]:
    """Recover the CSRF state from the callback.

    Looks at the top-level ``state`` parameter first, then inside
    openid.return_to. Returns (state, source).
    """
    state = params.get("state")
    if state:
        return state, "query"
    return_to = params.get("openid.return_to") or ""
    try:
        embedded = query_params(_split(return_to).query).get("state")
    except ValueError:
        embedded = None
    if embedded:
        return embedded, "return_to"
    return None, ""
