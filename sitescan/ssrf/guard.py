import ipaddress
import socket
from urllib.parse import urlparse

BLOCKED_HOSTNAMES = {"localhost", "metadata.google.internal"}

BLOCKED_NETS = [
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("100.64.0.0/10"),   # CGNAT
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # link-local (includes cloud metadata)
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("224.0.0.0/4"),     # multicast
]


class BlockedTarget(ValueError):
    pass


def is_ip_blocked(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return True
    if addr.version == 6:
        return addr.is_loopback or addr.is_link_local or addr.is_multicast or addr.is_private
    return any(addr in net for net in BLOCKED_NETS)


def resolve_all_ips(host: str) -> list[str]:
    ips: list[str] = []
    for _family, _type, _proto, _canon, sockaddr in socket.getaddrinfo(host, None):
        if sockaddr[0] not in ips:
            ips.append(sockaddr[0])
    return ips


def validate_url_target(url: str) -> str:
    """
    Scanned sites are public pages only: http(s), a real hostname, and no
    resolved address inside private/loopback/link-local space.
    Returns the normalised hostname.
    """
    p = urlparse(url)
    if p.scheme not in ("http", "https"):
        raise BlockedTarget("Only http/https allowed")
    host = (p.hostname or "").lower().strip(".")
    if not host:
        raise BlockedTarget("Invalid host")
    if host in BLOCKED_HOSTNAMES:
        raise BlockedTarget("Blocked hostname")

    try:
        ips = resolve_all_ips(host)
    except OSError as e:
        raise BlockedTarget(f"Cannot resolve host {host}") from e
    if not ips:
        raise BlockedTarget(f"Cannot resolve host {host}")
    for ip in ips:
        if is_ip_blocked(ip):
            raise BlockedTarget(f"Blocked resolved IP: {ip}")

    return host
