from __future__ import annotations

import logging
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Optional, Tuple
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from steam_openid.checks import CallbackContext, run_checks
from steam_openid.openid import build_auth_redirect_url, check_authentication, is_assertion_valid
from steam_openid.options import StrategyOptions
from steam_openid.outcomes import Error, Fail, Outcome, Redirect, Success
from steam_openid.profile import SteamProfile, enrich_profile
from steam_openid.request import AuthenticationRequest
from steam_openid.state import generate_state, state_key
from steam_openid.validation import parse_steam_claimed_id


logger = logging.getLogger(__name__)

# verify(profile) returns a user, or (user, info); a falsy user denies the login
VerifyFunc = Callable[[SteamProfile], Any]


def _with_state(url: str, state: str) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "state"]
    query.append(("state", state))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _split_decision(decision: Any) -> Tuple[Any, Any]:
    if isinstance(decision, tuple) and len(decision) == 2:
        return decision
    return decision, None


class SteamStrategy:
    """Steam OpenID 2.0 relying party.

    ``authenticate`` turns one inbound request into one Outcome: a Redirect to
    Steam for a login start, or Success / Fail / Error for a callback.
    Rejections never raise; unexpected exceptions become Error.
    """

    name = "steam"

    def __init__(
        self,
        options: StrategyOptions,
        verify: VerifyFunc,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.options = options
        self.verify = verify
        self.clock = clock

    @staticmethod
    def is_callback(req: AuthenticationRequest) -> bool:
        # openid_mode (legacy) only marks the request as a callback; the
        # checks still require openid.mode itself
        if req.method.upper() != "GET":
            return False
        query = req.query
        return bool(query.get("openid.mode") or query.get("openid_mode"))

    def authenticate(self, req: AuthenticationRequest) -> Outcome:
        try:
            if not self.is_callback(req):
                return self._initiate()
            return self._callback(req)
        except Exception as ex:
            logger.exception("steam authentication error")
            return Error(ex)

    def _initiate(self) -> Redirect:
        generator = self.options.state_generator or generate_state
        state = generator()
        if not state:
            raise ValueError("state generator returned an empty value")
        if self.options.state_store is not None:
            self.options.state_store.set(state_key(state), state, self.options.state_ttl)
        return_to = _with_state(self.options.return_url, state)
        return Redirect(build_auth_redirect_url(self.options.realm, return_to))

    def _callback(self, req: AuthenticationRequest) -> Outcome:
        ctx = CallbackContext(
            params=MappingProxyType(req.query),
            current_url=req.absolute_url(),
            options=self.options,
            now=self.clock(),
        )
        rejection = run_checks(ctx)
        if rejection is not None:
            logger.info("steam callback rejected: %s", rejection.code)
            return Fail(rejection.code, rejection.message, rejection.status)

        result = check_authentication(req.query_pairs, timeout=self.options.check_timeout)
        if not is_assertion_valid(result):
            logger.info("steam callback rejected: assertion_not_valid")
            return Fail("assertion_not_valid", "Assertion not valid", 401)

        steamid = parse_steam_claimed_id(ctx.params["openid.claimed_id"])
        if not steamid:
            logger.info("steam callback rejected: invalid_claimed_id")
            return Fail("invalid_claimed_id", "Invalid claimed_id host or format", 400)

        profile = enrich_profile(self.options.api_key, steamid, timeout=self.options.profile_timeout)
        return self._resolve(profile)

    def _resolve(self, profile: SteamProfile) -> Outcome:
        try:
            user, info = _split_decision(self.verify(profile))
        except Exception as ex:
            logger.exception("steam verify callback failed for %s", profile.id)
            return Error(ex)
        if not user:
            message = "Unauthorized"
            if isinstance(info, dict) and info.get("message"):
                message = str(info["message"])
            return Fail("unauthorized", message, 401)
        return Success(user, info)
