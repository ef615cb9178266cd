"""
TCP port occupancy probe.

Binding is the test: if a listener can be bound the port is free, and the
socket is released immediately. Without a host, both the IPv4 and the IPv6
wildcard are tried, so a backend listening on only one of them still counts.
The answer can be stale by the time the caller acts on it.
"""

import errno
import logging
import socket
import sys
from typing import List, Tuple

logger = logging.getLogger(__name__)


def _bind_targets(host: str) -> List[Tuple[int, str]]:
    if host:
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        return [(family, host)]
    targets = [(socket.AF_INET, "")]
    if socket.has_ipv6:
        targets.append((socket.AF_INET6, "::"))
    return targets


def _bind_fails(family: int, host: str, port: int) -> bool:
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError as e:
        # Address family not supported by this host
        logger.debug(f"Skipping probe of {host or '*'}:{port}: {e}")
        return False
    try:
        if sys.platform != "win32":
            # Lets the bind succeed over TIME_WAIT leftovers but not over a live listener
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if family == socket.AF_INET6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.bind((host, port))
        sock.listen(1)
    except OSError as e:
        if e.errno == errno.EADDRNOTAVAIL:
            logger.debug(f"Address {host or '*'} unavailable for port {port}: {e}")
            return False
        logger.debug(f"Port {port} is occupied on {host or '*'}: {e}")
        return True
    finally:
        sock.close()
    return False


def is_port_occupied(port: int, host: str = "") -> bool:
    """
    Check whether something already listens on ``port``.

    Args:
        port: TCP port to probe
        host: Address to bind, empty for all IPv4 and IPv6 interfaces

    Returns:
        True if any bind failed
    """
    return any(_bind_fails(family, address, port) for family, address in _bind_targets(host))
