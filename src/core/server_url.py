"""Validation for user-supplied Karakeep server addresses.

Users point the bot at arbitrary hosts, so only public https endpoints are
accepted to keep the bot from being used against internal networks.
"""

from __future__ import annotations

import ipaddress
import socket
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

from core.errors import InvalidServerURL

_LOCAL_HOSTNAMES = {"localhost", "localhost.localdomain"}


def is_disallowed_ip(address: str) -> bool:
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return True
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return (
        ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_unspecified
        or ip.is_private
    )


def _resolve(host: str) -> Iterable[str]:
    try:
        infos = socket.getaddrinfo(host, None)
    except (socket.gaierror, UnicodeError):
        # Unresolvable hosts are allowed; the first API call will fail loudly.
        return []
    return {info[4][0] for info in infos}


def validate_server_base_url(raw: str) -> str:
    """Return the normalized `https://host[:port]` or raise InvalidServerURL."""

    raw = raw.strip()
    if not raw:
        raise InvalidServerURL("empty url")

    parts = urlsplit(raw)
    if not parts.scheme or not parts.netloc:
        raise InvalidServerURL(f"invalid url: {raw!r}")
    if parts.scheme != "https":
        raise InvalidServerURL("only https is allowed")

    host = parts.hostname or ""
    if not host:
        raise InvalidServerURL("empty hostname")
    if host.lower().rstrip(".") in _LOCAL_HOSTNAMES:
        raise InvalidServerURL("localhost is not allowed")

    for address in _resolve(host):
        if is_disallowed_ip(address):
            raise InvalidServerURL(f"host resolves to disallowed ip: {address}")

    return urlunsplit(("https", parts.netloc.rpartition("@")[2], "", "", ""))
