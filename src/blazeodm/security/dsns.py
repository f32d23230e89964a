"""DSN parsing and redaction utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse


@dataclass
class DSNConfig:
    scheme: str
    username: Optional[str]
    password: Optional[str]
    netloc_hosts: str
    database: Optional[str]
    path: str
    query: dict[str, str]

    def redacted(self) -> str:
        """
        Return the DSN with the password masked but structure preserved.
        """

        netloc = ""
        if self.username:
            netloc += self.username
            if self.password:
                netloc += ":***"
            netloc += "@"
        netloc += self.netloc_hosts

        result = f"{self.scheme}://{netloc}{self.path}"
        if self.query:
            result += f"?{urlencode(self.query)}"
        return result


def parse_dsn(dsn: str) -> DSNConfig:
    """
    Parse ``dsn`` without resolving ports, so multi-host document store URIs
    such as ``mongodb://a:27017,b:27017/db`` are accepted.
    """

    parsed = urlparse(dsn)
    query = {key: values[0] for key, values in parse_qs(parsed.query).items()}
    hosts = parsed.netloc.rpartition("@")[2]
    return DSNConfig(
        scheme=parsed.scheme,
        username=parsed.username,
        password=parsed.password,
        netloc_hosts=hosts,
        database=parsed.path.lstrip("/") or None,
        path=parsed.path or "",
        query=query,
    )
