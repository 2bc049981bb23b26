"""Results handed back to the host framework.

``SteamStrategy.authenticate`` returns exactly one of Redirect, Success, Fail
or Error. Frameworks that prefer callbacks can pass the outcome to
``deliver`` together with an object implementing AuthHandler.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union


@dataclass(frozen=True)
class Redirect:
    url: str


@dataclass(frozen=True)
class Success:
    user: Any
    info: Optional[Any] = None


@dataclass(frozen=True)
class Fail:
    code: str
    message: str
    status: int = 400

    def challenge(self) -> dict:
        return {"error": self.code, "message": self.message}


@dataclass(frozen=True)
class Error:
    error: BaseException


Outcome = Union[Redirect, Success, Fail, Error]


class AuthHandler(Protocol):
    def redirect(self, url: str) -> Any: ...

    def success(self, user: Any, info: Optional[Any] = None) -> Any: ...

    def fail(self, challenge: dict, status: int) -> Any: ...

    def error(self, err: BaseException) -> Any: ...


def deliver(outcome: Outcome, handler: AuthHandler) -> Any:
    if isinstance(outcome, Redirect):
        return handler.redirect(outcome.url)
    if isinstance(outcome, Success):
        return handler.success(outcome.user, outcome.info)
    if isinstance(outcome, Fail):
        return handler.fail(outcome.challenge(), outcome.status)
    if isinstance(outcome, Error):
        return handler.error(outcome.error)
    raise TypeError(f"not an outcome: {outcome!r}")
