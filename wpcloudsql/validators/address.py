"""Address checks for database hosts and load balancer peers."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

# Ranges a Cloud SQL private IP can be allocated from (RFC 1918, RFC 6598, ULA)
_PRIVATE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("100.64.0.0/10"),
    ipaddress.ip_network("fc00::/7"),
]


def is_private_address(value: str) -> bool:
    """Check if ``value`` is a literal IP address inside a private range.

    Hostnames and malformed strings are not private addresses.
    """
    try:
        addr = ipaddress.ip_address(value.strip("[]"))
    except ValueError:
        return False
    return any(addr in network for network in _PRIVATE_NETWORKS)


def parse_networks(entries: Iterable[str]) -> list[IPNetwork]:
    """Turn a list of IPs / CIDRs into networks (single IPs become /32 or /128)."""
    return [ipaddress.ip_network(entry, strict=False) for entry in entries]


def is_trusted_peer(peer: str | None, networks: Iterable[IPNetwork]) -> bool:
    """Return True if the immediate peer address belongs to a trusted network."""
    if not peer:
        return False
    try:
        addr = ipaddress.ip_address(peer)
    except ValueError:
        return False
    return any(addr in network for network in networks)
