import re
from typing import Any

from host_tuner.helpers.unix import Runner, get_evidence, run_cmd
from host_tuner.shared.network import first_up_ipv4_interface

# -----------------------------
# 1) Primary interface
# -----------------------------
def get_linux_default_route(runner: Runner = run_cmd) -> dict[str, Any]:
    """
    Linux: default route (gateway + primary interface).

    Primary command (modern Linux):
      - ip -o -4 route show to default

    Fallback commands:
      - route -n
      - psutil: first interface that is up, not loopback, with an IPv4 address

    Output:
      {
        "gateway": "10.0.0.1",
        "interface": "ens5",
        "source": "ip" | "route" | "psutil" | None,
        "not_checked": False,
        "error": None,
        "remediation": None,
        "evidence": {...}
      }

    Notes:
      - ip route output is NOT key:value.
        Typical: "default via 10.0.0.1 dev ens5 proto dhcp src 10.0.0.5 metric 100"
        Parse tokens after "via" (gateway) and "dev" (interface).
    """
    cmd = ["ip", "-o", "-4", "route", "show", "to", "default"]
    rc, stdout, stderr = runner(cmd)
    evidence = get_evidence(cmd, rc, stdout, stderr)

    if rc == 0 and stdout:
        gateway, iface = _parse_ip_route(stdout)
        if iface:
            return _route_result(gateway, iface, "ip", evidence)

    # Fallback #1: route -n
    # Columns: Destination Gateway Genmask Flags Metric Ref Use Iface
    #   0.0.0.0     10.0.0.1    0.0.0.0 UG    100    0   0   ens5
    cmd2 = ["route", "-n"]
    rc2, out2, err2 = runner(cmd2)
    evidence2 = get_evidence(cmd2, rc2, out2, err2)

    if rc2 == 0 and out2:
        for line in out2.splitlines():
            parts = line.split()
            if len(parts) >= 8 and parts[0] in ("0.0.0.0", "default"):
                return _route_result(parts[1], parts[-1], "route", evidence2)

    # Fallback #2: psutil inventory (no routing table needed)
    iface = first_up_ipv4_interface()
    if iface:
        return _route_result(None, iface, "psutil", {"primary": evidence, "fallback_route": evidence2})

    return {
        "gateway": None,
        "interface": None,
        "source": None,
        "not_checked": True,
        "error": stderr or err2 or "Could not determine default route",
        "remediation": "Ensure the host has a default IPv4 route and iproute2 (ip command) is installed.",
        "evidence": {"primary": evidence, "fallback_route": evidence2},
    }


def _parse_ip_route(stdout: str) -> tuple[str | None, str | None]:
    gateway: str | None = None
    iface: str | None = None
    for line in stdout.splitlines():
        tokens = line.split()
        if "via" in tokens:
            i = tokens.index("via")
            if i + 1 < len(tokens):
                gateway = tokens[i + 1]
        if "dev" in tokens:
            i = tokens.index("dev")
            if i + 1 < len(tokens):
                iface = tokens[i + 1]
        if iface:
            break
    return gateway, iface


def _route_result(gateway, iface, source, evidence) -> dict[str, Any]:
    return {
        "gateway": gateway,
        "interface": iface,
        "source": source,
        "not_checked": False,
        "error": None,
        "remediation": None,
        "evidence": evidence,
    }


# -----------------------------
# 2) ethtool output parsers
# -----------------------------
_UNSUPPORTED = {"n/a", "", "unknown"}


def parse_coalesce(stdout: str) -> dict[str, str]:
    """
    Parse `ethtool -c <iface>`.

    Mostly "key: value" lines, except the adaptive line which packs two
    pairs:  "Adaptive RX: off  TX: off"  -> adaptive-rx / adaptive-tx.
    Values reported as n/a are left out.
    """
    values: dict[str, str] = {}
    for line in stdout.splitlines():
        s = line.strip()
        if s.startswith("Adaptive RX:"):
            m = re.match(r"Adaptive RX:\s*(\S+)\s+TX:\s*(\S+)", s)
            if m:
                _put(values, "adaptive-rx", m.group(1))
                _put(values, "adaptive-tx", m.group(2))
            continue
        if ":" not in s or s.startswith("Coalesce parameters"):
            continue
        key, val = s.split(":", 1)
        _put(values, key.strip(), val.strip())
    return values


def parse_features(stdout: str) -> dict[str, str]:
    """
    Parse `ethtool -k <iface>` into feature -> "on" | "off".

    Example lines:
      tcp-segmentation-offload: off
              tx-tcp-segmentation: off
      generic-receive-offload: on [fixed]
    """
    features: dict[str, str] = {}
    for line in stdout.splitlines():
        s = line.strip()
        if ":" not in s or s.startswith("Features for"):
            continue
        key, val = s.split(":", 1)
        tokens = val.split()
        if tokens:
            _put(features, key.strip(), tokens[0])
    return features


def parse_rings(stdout: str) -> dict[str, dict[str, int]]:
    """
    Parse `ethtool -g <iface>`.

      Pre-set maximums:
      RX:             4096
      TX:             4096
      Current hardware settings:
      RX:             256
      TX:             256

    Returns {"maximum": {"RX": 4096, ...}, "current": {"RX": 256, ...}}.
    Non-numeric values (n/a) are skipped.
    """
    rings: dict[str, dict[str, int]] = {"maximum": {}, "current": {}}
    section: str | None = None
    for line in stdout.splitlines():
        s = line.strip()
        if s.startswith("Pre-set maximums"):
            section = "maximum"
            continue
        if s.startswith("Current hardware settings"):
            section = "current"
            continue
        if section is None or ":" not in s:
            continue
        key, val = s.split(":", 1)
        try:
            rings[section][key.strip()] = int(val.strip())
        except ValueError:
            continue
    return rings


def _put(d: dict[str, str], key: str, value: str) -> None:
    if key and value.lower() not in _UNSUPPORTED:
        d[key] = value


# -----------------------------
# 3) Connectivity
# -----------------------------
_RTT_RE = re.compile(r"(?:rtt|round-trip)[^=]*=\s*([\d.]+)/([\d.]+)/([\d.]+)")


def parse_ping_rtt(stdout: str) -> float | None:
    """
    Average RTT in ms from the ping summary line:
      rtt min/avg/max/mdev = 20.1/24.3/31.0/3.9 ms          (iputils)
      round-trip min/avg/max = 20.1/24.3/31.0 ms             (busybox)
    """
    m = _RTT_RE.search(stdout)
    if not m:
        return None
    return float(m.group(2))


def ping_host(host: str, count: int, timeout_s: int, runner: Runner = run_cmd) -> dict[str, Any]:
    cmd = ["ping", "-c", str(count), "-W", str(timeout_s), host]
    # bounded wait: every probe may use its full per-reply timeout
    rc, stdout, stderr = runner(cmd, timeout_s=count * timeout_s + 5)
    return {
        "reachable": rc == 0,
        "avg_ms": parse_ping_rtt(stdout) if rc == 0 else None,
        "evidence": get_evidence(cmd, rc, stdout, stderr),
    }
