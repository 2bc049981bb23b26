"""CSRF state handling for the initiate and callback legs of a Steam login.

The state value travels inside openid.return_to and is stored under
``steam:<state>`` until the callback consumes it. A consumed state can never
validate a second callback.
"""
from __future__ import annotations

import hmac
import logging
import secrets
from typing import Optional, Protocol, runtime_checkable


logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "steam:"
DEFAULT_STATE_TTL = 600  # seconds


@runtime_checkable
class StateStore(Protocol):
    def set(self, key: str, value: str, ttl: float) -> None: ...

    def get(self, key: str) -> Optional[str]: ...

    def delete(self, key: str) -> None: ...


@runtime_checkable
class ConsumableStateStore(StateStore, Protocol):
    def pop(self, key: str) -> Optional[str]:
        """Atomically read and delete ``key``; None if absent or expired."""
        ...


def state_key(state: str) -> str:
    return f"{STATE_KEY_PREFIX}{state}"


def generate_state(nbytes: int = 16) -> str:
    return secrets.token_hex(nbytes)


def safe_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def verify_and_consume_state(store: StateStore, key: str, expected: str) -> bool:
    """Compare the stored state against ``expected`` and remove it.

    The record is deleted whether or not it matched. Stores exposing ``pop``
    are consumed in one atomic step, so two concurrent callbacks carrying the
    same state cannot both succeed.
    """
    if isinstance(store, ConsumableStateStore):
        actual = store.pop(key)
    else:
        actual = store.get(key)
        if actual:
            store.delete(key)
    if not actual:
        logger.info("state not found or already used", extra={"state": expected[:8] + "..."})
        return False
    ok = safe_equal(actual, expected)
    if not ok:
        logger.warning("state mismatch", extra={"state": expected[:8] + "..."})
    return ok
