"""Classification of advertised HTTP addresses.

Loopback and link-local addresses are useless to a node joining from another
host, so they are dropped whenever something routable is available. Private
(RFC 1918) ranges count as routable: enrollment usually happens inside one
private network.
"""

from __future__ import annotations

import ipaddress
from typing import Sequence

from core.domain.errors import AddressParseError


def split_host(address: str) -> str:
    """Return the host part of `ip:port` or `[ipv6]:port`."""

    value = address.strip()
    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            raise AddressParseError(address, "unterminated IPv6 literal")
        return value[1:end]
    if value.count(":") == 1:
        return value.rsplit(":", 1)[0]
    # Bare literal without a port (IPv4, or unbracketed IPv6).
    return value


def parse_ip(address: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    host = split_host(address)
    try:
        return ipaddress.ip_address(host)
    except ValueError as exc:
        raise AddressParseError(address, "not a valid IP address literal") from exc


def is_restricted(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    # ::ffff:a.b.c.d is classified by its IPv4 address.
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return ip.is_loopback or ip.is_link_local


def filter_addresses(addresses: Sequence[str]) -> list[str]:
    """Keep the routable addresses, or all of them if none is routable.

    Every entry is parsed before anything is returned; one bad entry fails
    the whole call.
    """

    parsed = [(address, parse_ip(address)) for address in addresses]
    routable = [address for address, ip in parsed if not is_restricted(ip)]
    if routable:
        return routable
    return list(addresses)
