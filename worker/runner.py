import time
import sys

from steam_openid.config import settings
from steam_openid.db import SessionLocal
from steam_openid.migrate import create_all
from steam_openid.sql_store import purge_expired


def run_once(session_factory=None) -> dict:
    stats = purge_expired(session_factory or SessionLocal)
    print(f"[worker] purged expired rows: {stats}", flush=True)
    return stats


def main() -> int:
    if settings.store_backend != "sql":
        print(f"[worker] store backend is {settings.store_backend!r}; nothing to purge", flush=True)
        return 0
    interval = max(1, settings.purge_interval_seconds)
    print(f"[worker] starting purge loop with interval={interval}s", flush=True)
    try:
        create_all()
        while True:
            try:
                run_once()
            except Exception as ex:
                print(f"[worker] purge error: {ex}", flush=True)
            time.sleep(interval)
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
