"""Network-prefix reduction for client-address labels.

Raw client addresses are unbounded cardinality. Metrics that carry a peer
address label (the "expensive" variants) attach the containing network
instead: a /20 for IPv4 (4096 addresses per series) and a /32 for IPv6.

IPv4-mapped IPv6 addresses (``::ffff:a.b.c.d``, as reported by dual-stack
sockets) reduce as the IPv4 address they carry.

Pure functions, no state, no I/O. A reduction that cannot be computed
yields ``None`` and the caller drops the observation; the original address
is never used as a label.
"""

from __future__ import annotations

import ipaddress
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network
from typing import Union

IPV4_PREFIX_LEN = 20
IPV6_PREFIX_LEN = 32

PeerAddress = Union[IPv4Address, IPv6Address, str]
NetworkPrefix = Union[IPv4Network, IPv6Network]


def reduce_peer_ip(address: PeerAddress) -> NetworkPrefix | None:
    """Return the fixed-length network containing ``address``.

    >>> reduce_peer_ip("203.0.113.77")
    IPv4Network('203.0.112.0/20')
    >>> reduce_peer_ip("2001:db8:abcd:ef01::1")
    IPv6Network('2001:db8::/32')
    >>> reduce_peer_ip("::ffff:203.0.113.77")
    IPv4Network('203.0.112.0/20')
    """
    # ip_address() also accepts ints (and so bools); only text and address
    # objects are peer addresses.
    if not isinstance(address, (str, IPv4Address, IPv6Address)):
        return None
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return None
    if isinstance(ip, IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    prefix = IPV4_PREFIX_LEN if ip.version == 4 else IPV6_PREFIX_LEN
    try:
        return ipaddress.ip_network((ip, prefix), strict=False)
    except ValueError:
        return None


def peer_ip_label(address: PeerAddress) -> str | None:
    """Label value for an expensive metric: the reduced network in CIDR form."""
    network = reduce_peer_ip(address)
    if network is None:
        return None
    return network.with_prefixlen
