"""
Outbound URL safety checks.

Every URL the pipeline fetches on someone else's behalf (audio references,
source videos, finished renders announced by the render callback) passes
through is_safe_url first, so the service cannot be pointed at loopback,
cloud metadata or private network addresses.
"""

import ipaddress
from typing import Optional, Union
from urllib.parse import urlsplit

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

BLOCKED_HOSTNAMES: set[str] = {
    "localhost",
    "metadata",
    "metadata.google.internal",
}

BLOCKED_SUFFIXES: tuple[str, ...] = (
    ".localhost",
    ".internal",
    ".local",
)


def _parse_ip(hostname: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        pass
    # Integer spelling such as 2130706433
    if hostname.isdigit():
        try:
            return ipaddress.ip_address(int(hostname))
        except ValueError:
            return None
    return None


def _is_blocked_ip(ip: IPAddress) -> bool:
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def is_safe_url(url: str) -> bool:
    """
    Return True when url may be fetched by the pipeline.

    Rules:
    - scheme must be https
    - no embedded credentials, surrounding whitespace or control characters
    - hostname must not be localhost, a *.internal / *.local name, or an IP
      literal in a loopback, link-local, private (RFC1918), reserved,
      multicast or unspecified range

    Example:
        >>> is_safe_url("https://cdn.example.com/render.mp4")
        True
        >>> is_safe_url("https://169.254.169.254/latest/meta-data")
        False
        >>> is_safe_url("http://cdn.example.com/render.mp4")
        False
    """
    if not isinstance(url, str) or not url:
        return False
    # urlsplit silently drops tab, CR and LF; the fetcher does not
    if url != url.strip() or any(ord(c) < 0x20 or ord(c) == 0x7F for c in url):
        return False

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        # Accessing .port validates it
        parts.port
    except ValueError:
        return False

    if parts.scheme.lower() != "https" or not hostname:
        return False
    if parts.username or parts.password:
        return False

    hostname = hostname.lower().rstrip(".")

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(BLOCKED_SUFFIXES):
        return False

    ip = _parse_ip(hostname)
    if ip is not None and _is_blocked_ip(ip):
        return False

    # Dotted names made only of digits and dots that ip_address rejected
    # (e.g. "0177.0.0.1") are ambiguous across resolvers.
    if ip is None and hostname.replace(".", "").isdigit():
        return False

    return True
