"""Shared URL utilities: validate navigation targets before touching the driver."""

from __future__ import annotations

from urllib.parse import urlparse

from webtest.errors import InvalidUrlError

_NETWORK_SCHEMES = ("http", "https")
_LOCAL_SCHEMES = ("file", "about", "data")


def validate_url(url: str | None) -> str:
    """Return ``url`` unchanged if it can be navigated to, else raise InvalidUrlError."""
    if not url or not url.strip():
        raise InvalidUrlError(url or "", "URL is required")
    parsed = urlparse(url.strip())
    if parsed.scheme in _NETWORK_SCHEMES:
        if not parsed.netloc:
            raise InvalidUrlError(url, "missing host")
        return url
    if parsed.scheme in _LOCAL_SCHEMES:
        return url
    raise InvalidUrlError(url, f"unsupported scheme '{parsed.scheme}'" if parsed.scheme else "missing scheme")
