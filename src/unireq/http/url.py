"""src/unireq/http/url.py

URL formatting and parsing for Unireq.
"""

import urllib.parse
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from unireq.client.request import Request

__all__ = ["URL", "UriFormatter"]


class URL:
    """Utility class for URL parsing and information."""

    __slots__ = ("parsed", "scheme", "host", "port", "target")

    def __init__(self, url: str):
        self.parsed = urllib.parse.urlsplit(url)
        self.scheme = self.parsed.scheme.lower()
        if self.scheme not in ("http", "https"):
            raise ValueError(f"Unsupported URL scheme: {url!r}")
        if not self.parsed.hostname:
            raise ValueError(f"Invalid URL: could not determine host: {url}")

        self.host: str = self.parsed.hostname
        self.port: int = self.parsed.port or (443 if self.scheme == "https" else 80)
        self.target = self.parsed.path or "/"
        if self.parsed.query:
            self.target += f"?{self.parsed.query}"

    @property
    def use_ssl(self) -> bool:
        """Whether the URL needs TLS."""
        return self.scheme == "https"

    @property
    def host_header(self) -> str:
        """Value for the ``Host`` header (port only when non-default)."""
        host = self.host
        if ":" in host:
            host = f"[{host}]"
        default_port = 443 if self.use_ssl else 80
        if self.port != default_port:
            return f"{host}:{self.port}"
        return host


class UriFormatter:
    """
    Turns a request's URL template into the final URL.

    ``{name}`` placeholders are replaced with the percent-encoded route
    parameter, query parameters are appended, and relative URLs are resolved
    against ``base_url`` when one is set.
    """

    __slots__ = ("base_url",)

    def __init__(self, base_url: Optional[str] = None) -> None:
        self.base_url = base_url

    def format(self, request: "Request") -> str:
        """Return the final URL for ``request``."""
        url = request.url
        for name, value in request.route_params.items():
            url = url.replace(
                "{" + name + "}", urllib.parse.quote(str(value), safe="")
            )

        if request.query_params:
            query = urllib.parse.urlencode(request.query_params, doseq=True)
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{query}"

        return self._resolve(url)

    __call__ = format

    def _resolve(self, url: str) -> str:
        """
        Resolve URL against base_url if the URL is relative.

        Args:
            url: URL to resolve (absolute or relative).

        Returns:
            Resolved absolute URL.
        """
        if self.base_url and not urllib.parse.urlparse(url).scheme:
            return urllib.parse.urljoin(self.base_url, url)
        return url
