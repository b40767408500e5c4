"""Input validation utilities."""

import ipaddress
from urllib.parse import urlparse

from app.utils.exceptions import InvalidRequest

_BLOCKED_HOSTS = {"localhost", "localhost.localdomain", "0.0.0.0"}


def validate_url(url: str) -> str:
    """
    Validate a caller- or model-supplied URL before fetching it (SSRF guard).

    Args:
        url: URL to validate

    Returns:
        The stripped URL

    Raises:
        InvalidRequest: If the URL is malformed, not http(s), or points at
            localhost or a private/reserved address
    """
    if not url or not isinstance(url, str):
        raise InvalidRequest("URL must be a non-empty string")

    url = url.strip()

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise InvalidRequest(f"Invalid URL format: {e}") from e

    if parsed.scheme not in ("http", "https"):
        raise InvalidRequest("URL must use http or https protocol")

    if not hostname:
        raise InvalidRequest("URL must have a valid hostname")

    if hostname.lower() in _BLOCKED_HOSTS:
        raise InvalidRequest("URL cannot point to localhost")

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return url  # a DNS name

    if (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
    ):
        raise InvalidRequest("URL cannot point to private IP ranges")

    return url
