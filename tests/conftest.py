from datetime import datetime, timezone
from urllib.parse import urlencode

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from steam_openid.db import make_session_factory
from steam_openid.migrate import create_all
from steam_openid.options import StrategyOptions
from steam_openid.request import AuthenticationRequest
from steam_openid.stores import MemoryNonceStore, MemoryStateStore
from steam_openid.strategy import SteamStrategy


NOW = datetime(2025, 8, 24, 12, 0, 0, tzinfo=timezone.utc)
NONCE = "2025-08-24T12:00:00Zxyz"
STEAM_ID = "76561198000000000"
CLAIMED_ID = f"https://steamcommunity.com/openid/id/{STEAM_ID}"
REALM = "https://example.com/"
RETURN_URL = "https://example.com/auth/steam/return"


class FakeResponse:
    def __init__(self, status_code=200, text="", payload=None):
        self.status_code = status_code
        self.text = text
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSteam:
    """Stands in for steamcommunity.com and the Web API behind requests.post/get."""

    def __init__(self):
        self.check_body = "ns:http://specs.openid.net/auth/2.0\nis_valid:true\n"
        self.check_status = 200
        self.check_error = None
        self.profile_payload = {"response": {"players": []}}
        self.profile_status = 200
        self.profile_error = None
        self.posts = []
        self.gets = []

    def post(self, url, data=None, headers=None, timeout=None, **kwargs):
        self.posts.append({"url": url, "data": list(data or []), "headers": headers, "timeout": timeout})
        if self.check_error is not None:
            raise self.check_error
        return FakeResponse(self.check_status, text=self.check_body)

    def get(self, url, params=None, timeout=None, **kwargs):
        self.gets.append({"url": url, "params": params, "timeout": timeout})
        if self.profile_error is not None:
            raise self.profile_error
        return FakeResponse(self.profile_status, payload=self.profile_payload)


@pytest.fixture
def steam(monkeypatch):
    fake = FakeSteam()
    monkeypatch.setattr(requests, "post", fake.post)
    monkeypatch.setattr(requests, "get", fake.get)
    return fake


def callback_params(state="s", **overrides):
    params = {
        "openid.ns": "http://specs.openid.net/auth/2.0",
        "openid.mode": "id_res",
        "openid.op_endpoint": "https://steamcommunity.com/openid/login",
        "openid.claimed_id": CLAIMED_ID,
        "openid.identity": CLAIMED_ID,
        "openid.return_to": f"{RETURN_URL}?state={state}",
        "openid.realm": REALM,
        "openid.response_nonce": NONCE,
        "openid.assoc_handle": "1234567890",
        "openid.signed": "signed,op_endpoint,claimed_id,identity,return_to,response_nonce,assoc_handle",
        "openid.sig": "c2lnbmF0dXJl",
        "state": state,
    }
    for key, value in overrides.items():
        if value is None:
            params.pop(key, None)
        else:
            params[key] = value
    return params


def callback_request(params=None, path="/auth/steam/return", host="example.com", protocol="https", headers=None):
    params = callback_params() if params is None else params
    all_headers = {"Host": host}
    all_headers.update(headers or {})
    return AuthenticationRequest(
        method="GET",
        url=f"{path}?{urlencode(params)}",
        headers=all_headers,
        protocol=protocol,
    )


def make_options(**overrides):
    values = dict(
        realm=REALM,
        return_url=RETURN_URL,
        allowed_return_hosts=("example.com",),
        state_store=MemoryStateStore(),
        nonce_store=MemoryNonceStore(),
    )
    values.update(overrides)
    return StrategyOptions(**values)


def make_strategy(options=None, verify=None):
    if verify is None:
        verify = lambda profile: {"id": profile.id}
    return SteamStrategy(options or make_options(), verify, clock=lambda: NOW)


@pytest.fixture
def sql_factory():
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    create_all(engine)
    yield make_session_factory(engine)
    engine.dispose()
