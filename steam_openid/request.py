from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple
from urllib.parse import parse_qsl


@dataclass(frozen=True)
class AuthenticationRequest:
    """The parts of an inbound HTTP request the strategy looks at.

    ``url`` is the path plus query string as received (``/auth/steam/return?...``).
    Header names are matched case-insensitively.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    protocol: str = ""

    @classmethod
    def from_flask(cls, request) -> "AuthenticationRequest":
        path = request.script_root + request.path
        query = request.query_string.decode("latin-1")
        return cls(
            method=request.method,
            url=f"{path}?{query}" if query else path,
            headers={k: v for k, v in request.headers.items()},
            protocol=request.scheme,
        )

    def header(self, name: str) -> str:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return ""

    @property
    def query_string(self) -> str:
        return self.url.split("?", 1)[1] if "?" in self.url else ""

    @property
    def query_pairs(self) -> List[Tuple[str, str]]:
        """All query parameters in order, repeats included."""
        return parse_qsl(self.query_string, keep_blank_values=True)

    @property
    def query(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for key, value in self.query_pairs:
            out.setdefault(key, value)
        return out

    def absolute_url(self) -> str:
        # proxies report the original scheme in X-Forwarded-Proto (first hop wins)
        forwarded = self.header("X-Forwarded-Proto").split(",")[0].strip()
        proto = forwarded or self.protocol or "https"
        host = self.header("Host")
        path = self.url if self.url.startswith("/") else "/" + self.url
        return f"{proto}://{host}{path}"
