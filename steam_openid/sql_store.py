from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from steam_openid.db import session_scope
from steam_openid.models import NonceRecord, StateRecord


def utcnow() -> datetime:
    # store as naive UTC; SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlStateStore:
    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        self.session_factory = session_factory

    def set(self, key: str, value: str, ttl: float) -> None:
        expires_at = utcnow() + timedelta(seconds=ttl)
        with session_scope(self.session_factory) as db:
            db.merge(StateRecord(key=key, value=value, expires_at=expires_at))

    def get(self, key: str) -> Optional[str]:
        with session_scope(self.session_factory) as db:
            row = db.get(StateRecord, key)
            if row is None or row.expires_at <= utcnow():
                return None
            return row.value

    def delete(self, key: str) -> None:
        with session_scope(self.session_factory) as db:
            db.execute(delete(StateRecord).where(StateRecord.key == key))

    def pop(self, key: str) -> Optional[str]:
        with session_scope(self.session_factory) as db:
            row = db.get(StateRecord, key)
            if row is None:
                return None
            value, expires_at = row.value, row.expires_at
            result = db.execute(delete(StateRecord).where(StateRecord.key == key))
            # rowcount 0 means a concurrent callback consumed it first
            if result.rowcount != 1 or expires_at <= utcnow():
                return None
            return value


class SqlNonceStore:
    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        self.session_factory = session_factory

    def insert_if_absent(self, nonce: str, ttl: float) -> bool:
        now = utcnow()
        try:
            with session_scope(self.session_factory) as db:
                # an expired record no longer blocks the nonce
                db.execute(delete(NonceRecord).where(NonceRecord.nonce == nonce, NonceRecord.expires_at <= now))
                db.add(NonceRecord(nonce=nonce, expires_at=now + timedelta(seconds=ttl)))
                db.flush()
        except IntegrityError:
            return False
        return True


def purge_expired(session_factory: Optional[sessionmaker] = None) -> Dict[str, int]:
    """Delete expired state and nonce rows. Returns counts for logging."""
    now = utcnow()
    with session_scope(session_factory) as db:
        states = db.execute(delete(StateRecord).where(StateRecord.expires_at <= now)).rowcount
        nonces = db.execute(delete(NonceRecord).where(NonceRecord.expires_at <= now)).rowcount
    return {"states": states or 0, "nonces": nonces or 0}
