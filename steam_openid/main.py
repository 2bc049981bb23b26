from __future__ import annotations

from dataclasses import replace
from typing import Optional

from flask import Flask, jsonify, redirect, request, session

from steam_openid.config import settings
from steam_openid.options import options_from_settings
from steam_openid.outcomes import Error, Fail, Redirect, Success
from steam_openid.profile import SteamProfile
from steam_openid.request import AuthenticationRequest
from steam_openid.strategy import SteamStrategy


def default_verify(profile: SteamProfile):
    """Accept every verified Steam account as a user dict."""
    avatar = profile.photos[0]["value"] if profile.photos else None
    return {
        "provider": "steam",
        "id": profile.id,
        "display_name": profile.display_name,
        "avatar": avatar,
        "profile": profile.profile_url or f"https://steamcommunity.com/profiles/{profile.id}/",
    }


def create_app(strategy: Optional[SteamStrategy] = None) -> Flask:
    app = Flask(__name__)
    app.config['SECRET_KEY'] = settings.secret_key
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SECURE'] = settings.app_base_url.startswith("https:")

    if strategy is None:
        strategy = SteamStrategy(options_from_settings(settings), default_verify)
        if not strategy.options.allowed_return_hosts:
            print("[app] warning: STEAM_ALLOWED_RETURN_HOSTS is empty; callbacks accepted on any host", flush=True)
    app.extensions['steam_strategy'] = strategy

    @app.get("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    # --- Steam SSO (OpenID 2.0) ---

    @app.get("/auth/steam/login")
    def auth_steam_login():
        # query dropped: openid.* params here must not run the callback
        login = AuthenticationRequest.from_flask(request)
        outcome = strategy.authenticate(replace(login, url=login.url.split("?", 1)[0]))
        if isinstance(outcome, Redirect):
            return redirect(outcome.url)
        if isinstance(outcome, Error):
            print(f"[app] steam login error: {outcome.error}", flush=True)
        return jsonify({"error": "login_unavailable"}), 500

    @app.get("/auth/steam/return")
    def auth_steam_return():
        outcome = strategy.authenticate(AuthenticationRequest.from_flask(request))
        if isinstance(outcome, Success):
            # fresh session on login (session fixation defense)
            session.clear()
            user = outcome.user
            uid = user.get("id") if isinstance(user, dict) else str(user)
            session['uid'] = f"steam:{uid}"
            session['user'] = user if isinstance(user, dict) else {"id": uid}
            return redirect("/")
        if isinstance(outcome, Fail):
            return jsonify(outcome.challenge()), outcome.status
        if isinstance(outcome, Redirect):
            return redirect(outcome.url)
        if isinstance(outcome, Error):
            print(f"[app] steam callback error: {outcome.error}", flush=True)
        return jsonify({"error": "internal_error"}), 500

    @app.post("/auth/logout")
    def auth_logout():
        session.clear()
        return jsonify({"ok": True})

    @app.get("/api/v1/me")
    def me():
        uid = session.get('uid')
        if not uid:
            return jsonify({"user": None})
        return jsonify({"user": session.get('user') or {"id": uid.split(":", 1)[1]}})

    return app
