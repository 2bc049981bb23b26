from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple
from urllib.parse import urlsplit

from steam_openid.errors import ConfigurationError
from steam_openid.nonce import DEFAULT_NONCE_TTL, NonceStore
from steam_openid.state import DEFAULT_STATE_TTL, StateStore
from steam_openid.validation import normalize_host


@dataclass(frozen=True)
class StrategyOptions:
    """Immutable configuration shared by every request a strategy handles.

    allowed_return_hosts: when empty, callbacks are accepted on any host.
        Set it in production; realm containment alone only pins the host
        the realm names.
        Entries are lowercased and a default port (80, 443) is dropped.
    state_store: without one, state is still required on the callback but
        cannot be checked against what was issued.
    nonce_store: without one, only nonce freshness is checked, not replay.
    nonce_ttl: must exceed 2 x nonce_skew, the span over which a nonce
        timestamp stays fresh.

    TTLs, skew and timeouts are in seconds.
    """

    realm: str
    return_url: str
    allowed_return_hosts: Tuple[str, ...] = ()
    api_key: Optional[str] = None
    state_store: Optional[StateStore] = None
    state_generator: Optional[Callable[[], str]] = None
    nonce_store: Optional[NonceStore] = None
    state_ttl: float = DEFAULT_STATE_TTL
    nonce_ttl: float = DEFAULT_NONCE_TTL
    nonce_skew: float = 300
    check_timeout: float = 10.0
    profile_timeout: float = 8.0

    def __post_init__(self) -> None:
        for name in ("realm", "return_url"):
            value = getattr(self, name)
            parts = urlsplit(value or "")
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ConfigurationError(f"{name} must be an absolute http(s) URL, got {value!r}")
        # a nonce leaving the replay store while still fresh could be replayed
        if self.nonce_ttl <= 2 * self.nonce_skew:
            raise ConfigurationError(
                f"nonce_ttl ({self.nonce_ttl}s) must exceed twice nonce_skew ({self.nonce_skew}s)"
            )
        hosts: Iterable[str] = self.allowed_return_hosts or ()
        if isinstance(hosts, str):
            hosts = [hosts]
        normalized = []
        for entry in hosts:
            host = normalize_host(entry)
            if host is None:
                raise ConfigurationError(f"invalid allowed return host {entry!r}")
            if host:
                normalized.append(host)
        object.__setattr__(self, "allowed_return_hosts", tuple(normalized))


def options_from_settings(settings, state_store=None, nonce_store=None) -> StrategyOptions:
    """Build options from config.Settings; stores default to settings.store_backend."""
    if state_store is None or nonce_store is None:
        from steam_openid.stores import build_stores

        built_state, built_nonce = build_stores(settings)
        if state_store is None:
            state_store = built_state
        if nonce_store is None:
            nonce_store = built_nonce
    return StrategyOptions(
        realm=settings.steam_realm,
        return_url=settings.steam_return_url,
        allowed_return_hosts=tuple(settings.steam_allowed_return_hosts),
        api_key=settings.steam_api_key or None,
        state_store=state_store,
        nonce_store=nonce_store,
        state_ttl=settings.state_ttl_seconds,
        nonce_ttl=settings.nonce_ttl_seconds,
        nonce_skew=settings.nonce_skew_seconds,
        check_timeout=settings.check_auth_timeout_seconds,
        profile_timeout=settings.profile_timeout_seconds,
    )
