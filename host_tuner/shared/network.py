from typing import Any
import psutil
import socket

def _family_to_label(fam: object) -> str:
    """
    Convert a psutil "address family" value into a human-readable label.

    psutil returns families as platform-specific values (enums / ints);
    for reports it's nicer to see "IPv4", "IPv6", "MAC".
    """
    if fam == socket.AF_INET:
        return "IPv4"
    if fam == socket.AF_INET6:
        return "IPv6"

    # MAC address family is AF_PACKET on Linux; psutil exposes it as an
    # enum (or psutil.AF_LINK) whose name contains PACKET/LINK.
    name = getattr(fam, "name", None)
    if isinstance(name, str) and ("LINK" in name or "PACKET" in name):
        return "MAC"
    if fam == getattr(psutil, "AF_LINK", object()):
        return "MAC"

    return str(fam)


def first_up_ipv4_interface() -> str | None:
    """
    Pick the interface host-tuner should tune when the routing table gives
    no answer: the first interface (by name) that is up, is not loopback,
    and carries an IPv4 address.
    """
    try:
        if_addr = psutil.net_if_addrs()
        if_stats = psutil.net_if_stats()
    except OSError:
        return None

    for iface_name in sorted(if_addr):
        if iface_name == "lo" or iface_name.startswith("lo:"):
            continue
        stats = if_stats.get(iface_name)
        if stats is None or not stats.isup:
            continue
        if any(_family_to_label(a.family) == "IPv4" for a in if_addr[iface_name]):
            return iface_name
    return None


def get_interface_stats(iface: str | None) -> dict[str, Any] | None:
    """
    Link facts for the tuned interface, for the report header.

    Shape:
      { "name": "ens5", "isup": true, "speed_mbps": 10000, "mtu": 9001,
        "addresses": [{"family": "IPv4", "address": "10.0.0.5"}, ...] }
    """
    if not iface:
        return None
    try:
        stats = psutil.net_if_stats().get(iface)
        addrs = psutil.net_if_addrs().get(iface, [])
    except OSError:
        return None
    if stats is None:
        return None

    return {
        "name": iface,
        "isup": stats.isup,
        # Link speed in Mbps. Often 0 on virtual NICs.
        "speed_mbps": stats.speed,
        "mtu": stats.mtu,
        "addresses": [
            {"family": _family_to_label(a.family), "address": a.address}
            for a in addrs
            if _family_to_label(a.family) in ("IPv4", "IPv6")
        ],
    }
