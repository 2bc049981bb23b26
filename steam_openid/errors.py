from __future__ import annotations


class SteamOpenIDError(Exception):
    """Base class for errors raised by the Steam OpenID relying party."""


class ConfigurationError(SteamOpenIDError):
    """Strategy options or settings are unusable."""


class AssertionCheckError(SteamOpenIDError):
    """The check_authentication round trip to Steam did not complete.

    Raised for transport failures, timeouts and non-2xx responses. A completed
    round trip reporting ``is_valid:false`` is a rejection, not this error.
    """
