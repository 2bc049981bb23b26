"""Checks run over a Steam OpenID callback before Steam is asked to confirm it.

Each check takes the callback context and returns None to continue or a
Rejection. ``run_checks`` applies them in order and stops at the first
rejection. The state check consumes the stored state and the replay check
records the nonce, so the order matters.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional, Sequence

from steam_openid.nonce import store_nonce_once
from steam_openid.openid import MODE_ID_RES
from steam_openid.options import StrategyOptions
from steam_openid.state import state_key, verify_and_consume_state
from steam_openid.validation import (
    is_allowed_host,
    is_fresh_nonce,
    return_to_matches,
    state_from_params,
    within_realm,
)


REQUIRED_PARAMS = ("openid.return_to", "openid.realm", "openid.claimed_id", "openid.response_nonce")


@dataclass(frozen=True)
class Rejection:
    code: str
    message: str
    status: int = 400


@dataclass(frozen=True)
class CallbackContext:
    params: Mapping[str, str]
    current_url: str
    options: StrategyOptions
    now: datetime


Check = Callable[[CallbackContext], Optional[Rejection]]


def check_mode(ctx: CallbackContext) -> Optional[Rejection]:
    mode = ctx.params.get("openid.mode")
    if not mode:
        return Rejection("missing_mode", "Missing openid.mode")
    if mode != MODE_ID_RES:
        return Rejection("unexpected_mode", f"Unexpected mode {mode}")
    return None


def check_required_params(ctx: CallbackContext) -> Optional[Rejection]:
    if not all(ctx.params.get(name) for name in REQUIRED_PARAMS):
        return Rejection("missing_params", "Missing required OpenID params")
    return None


def check_return_to(ctx: CallbackContext) -> Optional[Rejection]:
    if not return_to_matches(ctx.current_url, ctx.params["openid.return_to"]):
        return Rejection("return_to_mismatch", "return_to mismatch")
    return None


def check_realm(ctx: CallbackContext) -> Optional[Rejection]:
    if not within_realm(ctx.options.realm, ctx.current_url):
        return Rejection("realm_mismatch", "realm mismatch")
    return None


def check_allowed_host(ctx: CallbackContext) -> Optional[Rejection]:
    if not is_allowed_host(ctx.current_url, ctx.options.allowed_return_hosts):
        return Rejection("disallowed_host", "disallowed host")
    return None


def check_state(ctx: CallbackContext) -> Optional[Rejection]:
    state, _ = state_from_params(ctx.params)
    if not state:
        return Rejection("missing_state", "Missing state")
    store = ctx.options.state_store
    if store is not None and not verify_and_consume_state(store, state_key(state), state):
        return Rejection("invalid_state", "Invalid state")
    return None


def check_nonce_fresh(ctx: CallbackContext) -> Optional[Rejection]:
    skew = timedelta(seconds=ctx.options.nonce_skew)
    if not is_fresh_nonce(ctx.params["openid.response_nonce"], skew=skew, now=ctx.now):
        return Rejection("stale_nonce", "Stale nonce")
    return None


def check_nonce_replay(ctx: CallbackContext) -> Optional[Rejection]:
    store = ctx.options.nonce_store
    if store is None:
        return None
    if not store_nonce_once(store, ctx.params["openid.response_nonce"], ctx.options.nonce_ttl):
        return Rejection("replay_detected", "Replay detected")
    return None


CALLBACK_CHECKS: Sequence[Check] = (
    check_mode,
    check_required_params,
    check_return_to,
    check_realm,
    check_allowed_host,
    check_state,
    check_nonce_fresh,
    check_nonce_replay,
)


def run_checks(ctx: CallbackContext, checks: Sequence[Check] = CALLBACK_CHECKS) -> Optional[Rejection]:
    for check in checks:
        rejection = check(ctx)
        if rejection is not None:
            return rejection
    return None
