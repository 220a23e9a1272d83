"""Hostname resolution."""

from __future__ import annotations

import socket


def resolve_host(host: str) -> list[str]:
    """Resolve *host* over both address families (``family=0``).

    Returns the distinct addresses in resolver order. Raises
    :class:`socket.gaierror` when the name does not resolve.
    """
    infos = socket.getaddrinfo(host, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    addresses: list[str] = []
    for _family, _type, _proto, _canon, sockaddr in infos:
        addr = str(sockaddr[0])
        if addr not in addresses:
            addresses.append(addr)
    return addresses
