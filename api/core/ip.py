"""
IP literal helpers: normalization, version check, private-range classification
and client address extraction.

Parsing is delegated to the standard `ipaddress` module.
"""

from __future__ import annotations

import enum
import ipaddress
import re
from typing import Any

from fastapi import Request

IPV4_MAPPED_PREFIX = "::ffff:"

_PORT_RE = re.compile(r"^\d+$")

PRIVATE_NETWORKS = (
    ipaddress.ip_network("127.0.0.1/32"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("fc00::/7"),
)


class IpVersion(enum.Enum):
    INVALID = 0
    V4 = 4
    V6 = 6


class IpClass(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


def _clean(ip: str) -> str:
    ip = ip.strip()

    # "[::1]" -> "::1"
    if ip.startswith("[") and ip.endswith("]"):
        ip = ip[1:-1].strip()

    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        ip = ip[len(IPV4_MAPPED_PREFIX):]

    # Zone index: "fe80::1%lo0" -> "fe80::1"
    zone = ip.find("%")
    if zone != -1:
        ip = ip[:zone]

    # Port suffix only for the IPv4 form; ":" is part of an IPv6 address.
    if "." in ip and ":" in ip:
        head, _, port = ip.rpartition(":")
        if _PORT_RE.match(port):
            ip = head

    return ip.strip()


def normalize(raw: Any) -> str | None:
    """
    Return the canonical text form of an IP literal, or None.

    Never raises. Non-strings, empty strings and anything that does not
    parse as IPv4/IPv6 after cleanup give None.
    """
    if not isinstance(raw, str):
        return None

    ip = raw
    # Cleanup only ever shortens the string, so this reaches a fixed point.
    while True:
        cleaned = _clean(ip)
        if cleaned == ip:
            break
        ip = cleaned

    if not ip:
        return None

    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return None

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return str(address.ipv4_mapped)
    return str(address)


def validate_version(ip: Any) -> IpVersion:
    if not isinstance(ip, str):
        return IpVersion.INVALID
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return IpVersion.INVALID
    return IpVersion.V4 if address.version == 4 else IpVersion.V6


def is_valid(ip: Any) -> bool:
    return validate_version(ip) is not IpVersion.INVALID


def classify(ip: str) -> IpClass:
    """
    Raises ValueError when `ip` is not a valid address.
    """
    address = ipaddress.ip_address(ip.strip())
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    if any(address in network for network in PRIVATE_NETWORKS if network.version == address.version):
        return IpClass.PRIVATE
    return IpClass.PUBLIC


def is_private(ip: str) -> bool:
    return classify(ip) is IpClass.PRIVATE


def client_ip(request: Request) -> str | None:
    """
    Best guess at the caller's address.

    Priority: X-Forwarded-For (first entry), X-Real-IP, then the peer address.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip = normalize(forwarded_for.split(",")[0])
        if ip:
            return ip

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        ip = normalize(real_ip)
        if ip:
            return ip

    if request.client is not None:
        return normalize(request.client.host)
    return None
