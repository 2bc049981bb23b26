import os
from urllib.parse import urlsplit

from dotenv import load_dotenv

# Load .env automatically for local/dev usage
load_dotenv()


def _csv(value: str) -> list:
    return [s.strip() for s in value.split(",") if s.strip()]


class Settings:
    def __init__(self) -> None:
        self.secret_key = os.getenv("SECRET_KEY", "dev")

        self.app_base_url = os.getenv("APP_BASE_URL", "http://127.0.0.1:5000").rstrip("/")
        self.steam_realm = os.getenv("STEAM_REALM", self.app_base_url + "/")
        self.steam_return_url = os.getenv("STEAM_RETURN_URL", self.app_base_url + "/auth/steam/return")
        # An empty STEAM_ALLOWED_RETURN_HOSTS disables the allowlist (any host accepted)
        self.steam_allowed_return_hosts = _csv(
            os.getenv("STEAM_ALLOWED_RETURN_HOSTS", urlsplit(self.app_base_url).netloc)
        )
        self.steam_api_key = os.getenv("STEAM_API_KEY", "")

        self.store_backend = os.getenv("STORE_BACKEND", "memory").strip().lower()
        self.redis_url = os.getenv("REDIS_URL")
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///steam_openid.db")

        self.state_ttl_seconds = int(os.getenv("STATE_TTL_SECONDS", "600"))
        self.nonce_ttl_seconds = int(os.getenv("NONCE_TTL_SECONDS", "660"))
        self.nonce_skew_seconds = int(os.getenv("NONCE_SKEW_SECONDS", "300"))
        self.check_auth_timeout_seconds = float(os.getenv("CHECK_AUTH_TIMEOUT_SECONDS", "10"))
        self.profile_timeout_seconds = float(os.getenv("PROFILE_TIMEOUT_SECONDS", "8"))

        self.purge_interval_seconds = int(os.getenv("PURGE_INTERVAL_SECONDS", "60"))


settings = Settings()
