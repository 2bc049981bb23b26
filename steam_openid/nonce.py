from __future__ import annotations

from typing import Protocol, runtime_checkable


# must outlive the 2 x skew window in which a nonce timestamp is fresh
DEFAULT_NONCE_TTL = 660  # seconds


@runtime_checkable
class NonceStore(Protocol):
    def insert_if_absent(self, nonce: str, ttl: float) -> bool:
        """Record ``nonce``; True only for the first caller to present it.

        Must be atomic across concurrent callbacks.
        """
        ...


def store_nonce_once(store: NonceStore, nonce: str, ttl: float = DEFAULT_NONCE_TTL) -> bool:
    return bool(store.insert_if_absent(nonce, ttl))
